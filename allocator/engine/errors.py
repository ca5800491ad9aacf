"""
Ошибки движка распределения таймлайна.

Ограничение ширины при перетаскивании (5%) не является ошибкой,
значение просто зажимается. Вырожденное распределение (нулевой вес
или нулевой интервал) тоже не бросается: см. allocation.apportion.
"""


class AllocationError(Exception):
    pass


class InvalidBoundary(AllocationError):
    """Правка схлопывает или выворачивает интервал. Черновик не меняется."""


class EmptyTimeline(AllocationError):
    """Попытка удалить последнюю сессию таймлайна."""


class UnknownSegment(AllocationError, LookupError):
    pass


class NoActiveDrag(AllocationError):
    pass


class StaleTimeline(AllocationError):
    """Таймлайн успел измениться в другом редакторе после загрузки."""

    def __init__(self, timeline_id: int, expected: int, actual: int | None = None):
        self.timeline_id = timeline_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"timeline {timeline_id} was modified concurrently "
            f"(loaded version {expected}, stored version {actual})"
        )


class PersistenceWriteFailed(AllocationError):
    """Одна неудачная запись при commit(). Соседние записи не откатываются."""

    def __init__(self, target: str, target_id, cause: BaseException):
        self.target = target
        self.target_id = target_id
        self.cause = cause
        super().__init__(f"failed to write {target} {target_id!r}: {cause}")

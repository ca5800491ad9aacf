"""
Перераспределение веса между двумя соседними сессиями при перетаскивании
разделителя.

Каждое движение указателя пересчитывается от снимка, сделанного в начале
жеста, а не от предыдущего промежуточного результата: сколько бы раз ни
пришло одно и то же положение указателя, веса получатся одинаковыми.
"""
import logging
import math
from dataclasses import dataclass

from .allocation import percentages, round_half_up

log = logging.getLogger(__name__)

DEFAULT_MIN_PERCENT = 5


@dataclass(frozen=True)
class DragSnapshot:
    handle: int
    weights: tuple[float, ...]
    shares: tuple[int, ...]

    @property
    def left_weight(self) -> float:
        return self.weights[self.handle]

    @property
    def right_weight(self) -> float:
        return self.weights[self.handle + 1]

    @property
    def pair_weight(self) -> float:
        return self.left_weight + self.right_weight

    @property
    def combined(self) -> int:
        return self.shares[self.handle] + self.shares[self.handle + 1]

    @property
    def offset(self) -> int:
        """Процент таймлайна левее пары"""
        return sum(self.shares[:self.handle])


def snapshot(weights: list[float], handle: int) -> DragSnapshot:
    if not 0 <= handle < len(weights) - 1:
        raise IndexError(f"no handle {handle} between {len(weights)} sessions")
    return DragSnapshot(handle=handle, weights=tuple(weights), shares=tuple(percentages(list(weights))))


def target_percent(snap: DragSnapshot, pointer_fraction: float, min_percent: int = DEFAULT_MIN_PERCENT) -> float:
    pointer_percent = min(max(pointer_fraction, 0.0), 1.0) * 100
    return min(max(pointer_percent - snap.offset, min_percent), snap.combined - min_percent)


def _settles(snap: DragSnapshot, left: float, right: float, min_percent: int) -> bool:
    weights = list(snap.weights)
    weights[snap.handle] = left
    weights[snap.handle + 1] = right
    shares = percentages(weights)
    pair = (snap.handle, snap.handle + 1)
    if any(shares[j] != snap.shares[j] for j in range(len(shares)) if j not in pair):
        return False
    return shares[snap.handle] >= min_percent and shares[snap.handle + 1] >= min_percent


def renegotiate(
    snap: DragSnapshot,
    pointer_fraction: float,
    min_percent: int = DEFAULT_MIN_PERCENT,
) -> tuple[float, float]:
    """
    Новые веса пары (левая, правая) для положения указателя 0.0..1.0
    по всей ширине таймлайна. Сумма весов пары не меняется.
    """
    combined = snap.combined
    pair_weight = snap.pair_weight
    if combined < 2 * min_percent or pair_weight < 2:
        return snap.left_weight, snap.right_weight

    target = target_percent(snap, pointer_fraction, min_percent)
    ideal = max(1, round_half_up(target / combined * pair_weight))

    # integer weights can shift a reconciled point onto a neighbour;
    # take the closest weight that leaves every other share untouched
    radius = max(8, math.ceil(2 * sum(snap.weights) / 100))
    for step in range(radius + 1):
        for left in ((ideal,) if step == 0 else (ideal - step, ideal + step)):
            right = pair_weight - left
            if left < 1 or right < 1:
                continue
            if _settles(snap, left, right, min_percent):
                return float(left), float(right)

    log.debug("No stable split near weight %s for handle %s, keeping drag-start weights", ideal, snap.handle)
    return snap.left_weight, snap.right_weight

from datetime import datetime
from typing import Any, Protocol, TypedDict

from .models import SegmentId, Timeline


class SegmentPatch(TypedDict, total=False):
    weight: float
    duration_minutes: int
    start_at: datetime
    end_at: datetime
    position: int


class BoundaryPatch(TypedDict, total=False):
    start_at: datetime
    end_at: datetime


class TimelineStore(Protocol):
    """
    Всё, что движку нужно от хранилища. Каждая запись это идемпотентная
    перезапись полей: повтор после частичного сбоя безопасен.
    Неудачная запись сообщается исключением.
    """

    async def fetch_timeline(self, owner_id: int) -> Timeline: ...

    async def persist_segment(self, segment_id: SegmentId, patch: SegmentPatch) -> None: ...

    async def persist_timeline_boundary(self, timeline_id: int, patch: BoundaryPatch) -> None: ...

    async def create_segment(self, timeline_id: int, fields: dict[str, Any]) -> SegmentId: ...

    async def delete_segment(self, segment_id: SegmentId) -> None: ...

    async def claim_version(self, timeline_id: int, expected: int) -> int: ...

from datetime import datetime, timedelta

import pytest

from allocator.engine.allocation import allocate
from allocator.engine.errors import StaleTimeline
from allocator.engine.models import Segment, Timeline

START = datetime(2024, 3, 4, 9, 0)


def make_timeline(weights: list[float], minutes: int = 300, timeline_id: int = 1) -> Timeline:
    return Timeline(
        id=timeline_id,
        start=START,
        end=START + timedelta(minutes=minutes),
        segments=[Segment(id=i + 1, weight=w, title=f"Session {i + 1}") for i, w in enumerate(weights)],
    )


class MemoryStore:
    """In-memory persistence with switchable failures."""

    def __init__(self, timeline: Timeline):
        stored = timeline.model_copy(deep=True)
        stored.segments = allocate(stored)
        self.timeline = stored
        self.failing: set = set()
        self.fail_boundary = False
        self.segment_writes: list[tuple] = []
        self.boundary_writes: list[dict] = []
        self.created: list[dict] = []
        self.deleted: list = []
        self._next_id = 100

    async def fetch_timeline(self, owner_id: int) -> Timeline:
        if owner_id != self.timeline.id:
            raise LookupError(owner_id)
        return self.timeline.model_copy(deep=True)

    async def persist_segment(self, segment_id, patch) -> None:
        if segment_id in self.failing:
            raise ConnectionError(f"write of {segment_id} refused")
        self.segment_writes.append((segment_id, dict(patch)))

    async def persist_timeline_boundary(self, timeline_id, patch) -> None:
        if self.fail_boundary:
            raise ConnectionError("boundary write refused")
        self.boundary_writes.append(dict(patch))

    async def create_segment(self, timeline_id, fields) -> int:
        self._next_id += 1
        self.created.append(dict(fields))
        return self._next_id

    async def delete_segment(self, segment_id) -> None:
        self.deleted.append(segment_id)

    async def claim_version(self, timeline_id, expected) -> int:
        if expected != self.timeline.version:
            raise StaleTimeline(timeline_id, expected, self.timeline.version)
        self.timeline.version += 1
        return self.timeline.version


@pytest.fixture
def store():
    return MemoryStore(make_timeline([100, 100, 100]))

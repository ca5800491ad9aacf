import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from allocator.api.v1.projects import crud as project_crud
from allocator.api.v1.segments import crud as segment_crud
from allocator.api.v1.segments.orm import Segment as SegmentORM
from allocator.database import db
from allocator.engine.errors import StaleTimeline
from allocator.engine.models import Difficulty, Segment, SegmentId, Timeline, default_weight
from allocator.engine.store import BoundaryPatch, SegmentPatch

log = logging.getLogger(__name__)


def _difficulty(value: str | None) -> Difficulty | None:
    try:
        return Difficulty(value) if value else None
    except ValueError:
        return None


def to_segment(row: SegmentORM) -> Segment:
    difficulty = _difficulty(row.difficulty)
    return Segment(
        id=row.iid,
        weight=row.weight if row.weight and row.weight > 0 else default_weight(difficulty),
        title=row.title,
        difficulty=difficulty,
        duration_minutes=row.duration_minutes or 0,
        start_at=row.start_at,
        end_at=row.end_at,
    )


class SqlTimelineStore:
    """Таймлайн проекта в БД: проект задаёт границы, его сессии делят интервал"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self.session_factory = session_factory or db.session_factory

    async def fetch_timeline(self, owner_id: int) -> Timeline:
        async with self.session_factory() as session:
            project = await project_crud.get_project(session, owner_id)
            if project is None:
                raise LookupError(f"project {owner_id} not found")
            rows = await segment_crud.get_segments(session, project_iid=owner_id, limit=None)
            return Timeline(
                id=project.iid,
                start=project.start_at,
                end=project.end_at,
                version=project.version,
                segments=[to_segment(row) for row in rows],
            )

    async def persist_segment(self, segment_id: SegmentId, patch: SegmentPatch) -> None:
        async with self.session_factory() as session:
            segment = await segment_crud.get_segment(session, int(segment_id))
            if segment is None:
                raise LookupError(f"segment {segment_id} not found")
            await segment_crud.update_segment(session, segment, dict(patch))

    async def persist_timeline_boundary(self, timeline_id: int, patch: BoundaryPatch) -> None:
        async with self.session_factory() as session:
            project = await project_crud.get_project(session, timeline_id)
            if project is None:
                raise LookupError(f"project {timeline_id} not found")
            await project_crud.update_project(session, project, dict(patch))

    async def create_segment(self, timeline_id: int, fields: dict[str, Any]) -> SegmentId:
        async with self.session_factory() as session:
            segment = await segment_crud.create_segment(session, timeline_id, **fields)
            log.debug("Created segment %s in project %s", segment.iid, timeline_id)
            return segment.iid

    async def delete_segment(self, segment_id: SegmentId) -> None:
        async with self.session_factory() as session:
            segment = await segment_crud.get_segment(session, int(segment_id))
            if segment is None:
                log.debug("Segment %s already gone", segment_id)
                return
            await segment_crud.delete_segment(session, segment)

    async def claim_version(self, timeline_id: int, expected: int) -> int:
        async with self.session_factory() as session:
            if await project_crud.bump_version(session, timeline_id, expected):
                return expected + 1
            actual = await project_crud.get_version(session, timeline_id)
        raise StaleTimeline(timeline_id, expected, actual)

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .orm import Segment


async def get_segments(
    session: AsyncSession,
    project_iid: int | None = None,
    limit: int | None = 200,
    offset: int = 0,
) -> list[Segment]:
    stmt = select(Segment)
    if project_iid is not None:
        stmt = stmt.where(Segment.project_iid == project_iid)
    stmt = stmt.order_by(Segment.project_iid, Segment.position, Segment.iid).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_segment(session: AsyncSession, segment_iid: int) -> Segment | None:
    return await session.get(Segment, segment_iid)


async def create_segment(session: AsyncSession, project_iid: int, **fields) -> Segment:
    segment = Segment(project_iid=project_iid, **fields)
    session.add(segment)
    await session.commit()
    await session.refresh(segment)
    return segment


async def update_segment(session: AsyncSession, segment: Segment, data: dict) -> Segment:
    for key, value in data.items():
        setattr(segment, key, value)
    await session.commit()
    await session.refresh(segment)
    return segment


async def delete_segment(session: AsyncSession, segment: Segment) -> None:
    await session.delete(segment)
    await session.commit()

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from allocator.database import db
from allocator.utils.structures import Status, resp
from . import crud
from .schemas import Segment as SegmentSchema

router = APIRouter(prefix="/segments", tags=["Segments"])


@router.get(
    "/",
    summary="Сохранённые сессии",
    description=(
        "Возвращает сессии в том виде, в каком они записаны последним commit. "
        "Используйте `?project_iid=1` для конкретного проекта."
    ),
)
async def list_segments(
    session: AsyncSession = Depends(db.scoped_session_dependency),
    project_iid: int | None = Query(default=None, description="Фильтр по проекту"),
    limit: int = Query(default=200, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
):
    segments = await crud.get_segments(session, project_iid=project_iid, limit=limit, offset=offset)
    return resp(Status.OK, [SegmentSchema.model_validate(s).model_dump() for s in segments])


@router.get(
    "/{segment_iid}",
    summary="Получить сессию по ID",
)
async def get_segment(
    segment_iid: int,
    session: AsyncSession = Depends(db.scoped_session_dependency),
):
    segment = await crud.get_segment(session, segment_iid)
    if segment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Segment {segment_iid} not found")
    return resp(Status.OK, SegmentSchema.model_validate(segment).model_dump())

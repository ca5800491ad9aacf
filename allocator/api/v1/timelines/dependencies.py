from typing import Annotated

from fastapi import Path, HTTPException, status

from allocator.api.v1.services.store import SqlTimelineStore
from allocator.engine.models import SegmentId
from allocator.engine.session import TimelineSession

# one draft per project; two editors of the same project share it
_editors: dict[int, TimelineSession] = {}


async def editor_by_project(project_iid: Annotated[int, Path]) -> TimelineSession:
    editor = _editors.get(project_iid)
    if editor is not None:
        return editor

    editor = TimelineSession(SqlTimelineStore())
    try:
        await editor.open(project_iid)
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"project {project_iid} not found!",
        )
    # a concurrent first request may have registered its own editor meanwhile
    return _editors.setdefault(project_iid, editor)


def release_editor(project_iid: int, editor: TimelineSession) -> None:
    """Забывает черновик без несохранённых правок; следующий запрос перечитает БД"""
    if not editor.dirty and not editor.dragging and _editors.get(project_iid) is editor:
        del _editors[project_iid]


def parse_segment_id(segment_id: Annotated[str, Path]) -> SegmentId:
    return int(segment_id) if segment_id.isdigit() else segment_id

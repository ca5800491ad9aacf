from contextlib import contextmanager

from fastapi import APIRouter, Depends, HTTPException, status

from allocator.engine.errors import (
    EmptyTimeline,
    InvalidBoundary,
    NoActiveDrag,
    StaleTimeline,
    UnknownSegment,
)
from allocator.engine.models import SegmentId
from allocator.engine.session import TimelineSession
from allocator.utils.structures import Status, resp
from .dependencies import editor_by_project, parse_segment_id, release_editor
from .schemas import (
    BoundaryEdit,
    CommitResult,
    DragMove,
    DragStart,
    SegmentAdd,
    SegmentView,
    SpanEdit,
    TimelineView,
)

router = APIRouter(prefix="/timelines", tags=["Timelines"])


@contextmanager
def engine_errors():
    try:
        yield
    except UnknownSegment as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except EmptyTimeline as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except InvalidBoundary as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    except (NoActiveDrag, IndexError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _view(editor: TimelineSession) -> dict:
    return resp(Status.OK, TimelineView.of(editor).model_dump())


@router.get(
    "/{project_iid}",
    summary="Черновик таймлайна",
    description=(
        "Открывает таймлайн проекта (или возвращает уже открытый черновик): "
        "длительности, даты и проценты каждой сессии. "
        "`state` показывает, есть ли несохранённые правки (`DIRTY`)."
    ),
)
async def get_timeline(editor: TimelineSession = Depends(editor_by_project)):
    return _view(editor)


@router.post(
    "/{project_iid}/drag/start",
    summary="Начать перетаскивание разделителя",
    description="Запоминает веса пары сессий `handle` и `handle+1`; все движения считаются от этого снимка.",
)
async def start_drag(body: DragStart, editor: TimelineSession = Depends(editor_by_project)):
    with engine_errors():
        editor.begin_drag(body.handle)
    return _view(editor)


@router.post(
    "/{project_iid}/drag",
    summary="Движение указателя",
    description=(
        "Перераспределяет вес между соседними сессиями по положению указателя "
        "(`pointer_fraction` от 0 до 1 по всей дорожке). Остальные сессии не меняются, "
        "каждая из двух сохраняет не меньше 5% таймлайна."
    ),
)
async def move_drag(body: DragMove, editor: TimelineSession = Depends(editor_by_project)):
    with engine_errors():
        editor.apply_drag(body.handle, body.pointer_fraction)
    return _view(editor)


@router.post("/{project_iid}/drag/end", summary="Отпустить разделитель")
async def end_drag(editor: TimelineSession = Depends(editor_by_project)):
    with engine_errors():
        editor.end_drag()
    return _view(editor)


@router.post(
    "/{project_iid}/drag/cancel",
    summary="Отменить перетаскивание",
    description="Возвращает веса, которые были до начала жеста.",
)
async def cancel_drag(editor: TimelineSession = Depends(editor_by_project)):
    with engine_errors():
        editor.cancel_drag()
    return _view(editor)


@router.patch(
    "/{project_iid}/segments/{segment_id}/boundary",
    summary="Изменить начало или конец сессии",
    description=(
        "Вес сессии пересчитывается так, чтобы она заняла новый интервал. "
        "Начало первой или конец последней сессии двигают границу всего проекта."
    ),
)
async def edit_boundary(
    body: BoundaryEdit,
    segment_id: SegmentId = Depends(parse_segment_id),
    editor: TimelineSession = Depends(editor_by_project),
):
    with engine_errors():
        editor.apply_boundary_edit(segment_id, body.edge, body.moment)
    return _view(editor)


@router.patch(
    "/{project_iid}/span",
    summary="Сдвинуть или растянуть проект",
    description=(
        "`start` сдвигает весь проект с сохранением длительности, `end` меняет только конец. "
        "Веса сессий не меняются."
    ),
)
async def edit_span(body: SpanEdit, editor: TimelineSession = Depends(editor_by_project)):
    with engine_errors():
        if body.start is not None:
            editor.shift_timeline(body.start)
        if body.end is not None:
            editor.resize_timeline(body.end)
    return _view(editor)


@router.post(
    "/{project_iid}/segments",
    status_code=status.HTTP_201_CREATED,
    summary="Добавить сессию в конец",
    description="Без `weight` вес берётся из сложности: easy 60, medium 100, hard 140.",
)
async def add_segment(body: SegmentAdd, editor: TimelineSession = Depends(editor_by_project)):
    with engine_errors():
        segment = editor.add_segment(body.weight, title=body.title, difficulty=body.difficulty)
    return resp(Status.OK, {
        "segment": SegmentView.model_validate(segment).model_dump(),
        "timeline": TimelineView.of(editor).model_dump(),
    })


@router.delete(
    "/{project_iid}/segments/{segment_id}",
    summary="Удалить сессию",
    description="Оставшиеся сессии делят прежний интервал в прежних пропорциях. Последнюю удалить нельзя.",
)
async def remove_segment(
    segment_id: SegmentId = Depends(parse_segment_id),
    editor: TimelineSession = Depends(editor_by_project),
):
    with engine_errors():
        editor.remove_segment(segment_id)
    return _view(editor)


@router.post(
    "/{project_iid}/commit",
    summary="Сохранить черновик",
    description=(
        "Записывает изменённые сессии и границы проекта. При частичном сбое "
        "черновик остаётся `DIRTY`, повторный commit дописывает недостающее. "
        "Если проект успели изменить в другом редакторе, вернётся 409."
    ),
)
async def commit_timeline(
    project_iid: int,
    editor: TimelineSession = Depends(editor_by_project),
):
    try:
        report = await editor.commit()
    except StaleTimeline as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    result = CommitResult.of(report)
    if not report.ok:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.model_dump())
    body = {"commit": result.model_dump(), "timeline": TimelineView.of(editor).model_dump()}
    release_editor(project_iid, editor)
    return resp(Status.OK, body)


@router.post(
    "/{project_iid}/discard",
    summary="Отменить несохранённые правки",
)
async def discard_timeline(
    project_iid: int,
    editor: TimelineSession = Depends(editor_by_project),
):
    editor.discard()
    body = _view(editor)
    release_editor(project_iid, editor)
    return body


@router.post(
    "/{project_iid}/reload",
    summary="Перечитать таймлайн из БД",
    description="Отбрасывает черновик и загружает сохранённое состояние, например после 409 на commit.",
)
async def reload_timeline(editor: TimelineSession = Depends(editor_by_project)):
    await editor.reload()
    return _view(editor)

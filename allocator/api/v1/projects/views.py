from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from allocator.database import db
from allocator.utils.structures import Status, resp
from . import crud, dependencies
from .schemas import Project as ProjectSchema, ProjectCreate

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Создать проект",
    description="Создаёт пустой проект с интервалом `start_at`..`end_at`. Сессии добавляются через редактор таймлайна.",
)
async def create_project(
    body: ProjectCreate,
    session: AsyncSession = Depends(db.scoped_session_dependency),
):
    project = await crud.create_project(session, body.start_at, body.end_at, title=body.title)
    return resp(Status.OK, ProjectSchema.model_validate(project).model_dump())


@router.get(
    "/",
    summary="Список проектов",
    description="Возвращает проекты с пагинацией, отсортированные от новых к старым.",
)
async def list_projects(
    session: AsyncSession = Depends(db.scoped_session_dependency),
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
):
    projects = await crud.get_projects(session, limit, offset)
    return resp(Status.OK, [ProjectSchema.model_validate(p).model_dump() for p in projects])


@router.get(
    "/{project_iid}",
    summary="Получить проект по ID",
    description="Сохранённые границы проекта и текущая версия таймлайна.",
)
async def get_project(
    project=Depends(dependencies.project_by_id),
):
    return resp(Status.OK, ProjectSchema.model_validate(project).model_dump())

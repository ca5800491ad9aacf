import logging

from fastapi import FastAPI
from contextlib import asynccontextmanager

from allocator.utils.structures import Status, resp
from allocator.config import settings
from allocator.database import db
from allocator.api.v1.base_model import Base
from allocator.api.v1 import router as api_v1_router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

OPENAPI_TAGS = [
    {
        "name": "Projects",
        "description": (
            "Проект задаёт общий интервал `start_at`..`end_at`, который делят сессии. "
            "`version` растёт на каждый успешный commit таймлайна."
        ),
    },
    {
        "name": "Segments",
        "description": (
            "Сохранённые сессии проекта: вес, длительность в минутах и даты. "
            "Фильтрация по проекту: `?project_iid=1`."
        ),
    },
    {
        "name": "Timelines",
        "description": (
            "Редактор таймлайна. Все правки копятся в черновике проекта. "
            "**Флоу:** `GET /{id}` → `drag/start` → `drag` (много раз) → `drag/end` → "
            "`commit`. Даты сессий правятся через `PATCH /{id}/segments/{sid}/boundary`."
        ),
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await db.engine.dispose()


app = FastAPI(
    lifespan=lifespan,
    title=settings.app_name,
    description=settings.app_description,
    openapi_tags=OPENAPI_TAGS,
    version="1.0.0",
)

app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def get_health():
    return resp(Status.OK, {"name": settings.app_name, "db_echo": settings.db_echo})


@app.get("/")
def root():
    return resp(Status.OK, {"message": "Timeline Allocator API. See /docs for documentation."})

from fastapi import APIRouter

from .projects.views import router as projects_router
from .segments.views import router as segments_router
from .timelines.views import router as timelines_router

router = APIRouter()
router.include_router(projects_router)
router.include_router(segments_router)
router.include_router(timelines_router)

from typing import Annotated

from fastapi import Path, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .orm import Project
from allocator.database import db

from . import crud


async def project_by_id(
    project_iid: Annotated[int, Path],
    session: AsyncSession = Depends(db.scoped_session_dependency),
) -> Project:
    project = await crud.get_project(session=session, project_iid=project_iid)
    if project is not None:
        return project

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"project {project_iid} not found!",
    )

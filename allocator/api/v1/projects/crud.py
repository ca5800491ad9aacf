from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .orm import Project


async def get_projects(session: AsyncSession, limit: int, offset: int) -> list[Project]:
    stmt = select(Project).order_by(Project.iid.desc()).limit(limit).offset(offset)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_project(session: AsyncSession, project_iid: int) -> Project | None:
    return await session.get(Project, project_iid)


async def create_project(
    session: AsyncSession,
    start_at: datetime,
    end_at: datetime,
    title: str = "",
) -> Project:
    project = Project(title=title, start_at=start_at, end_at=end_at, version=0)
    session.add(project)
    await session.commit()
    await session.refresh(project)
    return project


async def update_project(session: AsyncSession, project: Project, data: dict) -> Project:
    for key, value in data.items():
        setattr(project, key, value)
    await session.commit()
    await session.refresh(project)
    return project


async def bump_version(session: AsyncSession, project_iid: int, expected: int) -> bool:
    stmt = (
        update(Project)
        .where(Project.iid == project_iid, Project.version == expected)
        .values(version=expected + 1)
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount == 1


async def get_version(session: AsyncSession, project_iid: int) -> int | None:
    return await session.scalar(select(Project.version).where(Project.iid == project_iid))

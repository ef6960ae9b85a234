"""Project service - create, read and edit project metadata."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from flow_pipeline.core.errors import ProjectNotFoundError
from flow_pipeline.models.project import Project

log = structlog.get_logger(__name__)

SUPPORTED_LANGUAGES = ("pt", "en")


class ProjectService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_project(self, client_name: str, language: str = "pt") -> Project:
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language {language!r}")
        project = Project(client_name=client_name, language=language)
        self.db.add(project)
        await self.db.flush()
        log.info("project.created", project_id=str(project.id), language=language)
        return project

    async def get_project(self, project_id: uuid.UUID) -> Project:
        project = await self.db.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return project

    async def list_projects(self) -> list[Project]:
        result = await self.db.execute(select(Project).order_by(desc(Project.created_at)))
        return list(result.scalars().all())

    async def update_project(
        self,
        project_id: uuid.UUID,
        *,
        client_name: str | None = None,
        language: str | None = None,
    ) -> Project:
        """Edit metadata only; ownership and history are untouched."""
        project = await self.get_project(project_id)
        if client_name is not None:
            project.client_name = client_name
        if language is not None:
            if language not in SUPPORTED_LANGUAGES:
                raise ValueError(f"Unsupported language {language!r}")
            project.language = language
        await self.db.flush()
        await self.db.refresh(project)
        return project

"""Artifact store - append-only typed storage for stage inputs and outputs.

Artifacts are never updated in place. "The current research pack" means the
most recent artifact of that type for the project, which is what
latest_artifact() returns. Two concurrent regenerations of the same stage are
an accepted race: whichever row has the later timestamp wins.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from flow_pipeline.agent.payloads import validate_payload
from flow_pipeline.core.errors import ArtifactNotFoundError, InvalidArtifactError, ProjectNotFoundError
from flow_pipeline.models.artifact import Artifact, ArtifactFormat
from flow_pipeline.models.project import Project

log = structlog.get_logger(__name__)


def _check_format(
    format: str,
    content: str | None,
    content_json: Any | None,
    file_url: str | None,
) -> None:
    if format == ArtifactFormat.JSON:
        if content_json is None:
            raise InvalidArtifactError("json artifacts require content_json")
    elif format == ArtifactFormat.MARKDOWN:
        if not content:
            raise InvalidArtifactError("markdown artifacts require non-empty content")
    elif format == ArtifactFormat.BINARY_REFERENCE:
        if not file_url:
            raise InvalidArtifactError("binary_reference artifacts require file_url")
    else:
        raise InvalidArtifactError(f"Unknown artifact format: {format!r}")


class ArtifactStore:
    """Service for writing and reading immutable artifacts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def put_artifact(
        self,
        project_id: uuid.UUID,
        type: str,
        format: str,
        *,
        title: str = "",
        content: str | None = None,
        content_json: Any | None = None,
        file_url: str | None = None,
    ) -> Artifact:
        """Insert a new artifact row. Never overwrites an existing one.

        Raises:
            ProjectNotFoundError: if the project does not exist
            InvalidArtifactError: if the payload does not match the format or
                the registered shape for ``type``
        """
        if await self.db.get(Project, project_id) is None:
            raise ProjectNotFoundError(f"Project {project_id} not found")

        _check_format(format, content, content_json, file_url)
        if format == ArtifactFormat.JSON:
            content_json = validate_payload(type, content_json)

        artifact = Artifact(
            project_id=project_id,
            type=str(type),
            format=str(format),
            title=title,
            content=content,
            content_json=content_json,
            file_url=file_url,
        )
        self.db.add(artifact)
        await self.db.flush()

        log.info(
            "artifact.stored",
            artifact_id=str(artifact.id),
            project_id=str(project_id),
            type=artifact.type,
            format=artifact.format,
        )
        return artifact

    async def get_artifact(self, artifact_id: uuid.UUID) -> Artifact:
        artifact = await self.db.get(Artifact, artifact_id)
        if artifact is None:
            raise ArtifactNotFoundError(f"Artifact {artifact_id} not found")
        return artifact

    async def list_artifacts(
        self,
        project_id: uuid.UUID,
        type: str | None = None,
    ) -> list[Artifact]:
        """All artifacts of a project (optionally one type), most recent first."""
        stmt = select(Artifact).where(Artifact.project_id == project_id)
        if type is not None:
            stmt = stmt.where(Artifact.type == type)
        stmt = stmt.order_by(desc(Artifact.created_at))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def latest_artifact(self, project_id: uuid.UUID, type: str) -> Artifact | None:
        stmt = (
            select(Artifact)
            .where(Artifact.project_id == project_id, Artifact.type == type)
            .order_by(desc(Artifact.created_at))
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def latest_of_types(
        self,
        project_id: uuid.UUID,
        types: tuple[str, ...],
    ) -> Artifact | None:
        """Most recent artifact whose type is any of ``types``."""
        stmt = (
            select(Artifact)
            .where(Artifact.project_id == project_id, Artifact.type.in_(types))
            .order_by(desc(Artifact.created_at))
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

"""Job ledger - one row per stage execution attempt.

Status writes go through update_status(), which enforces the job state
machine (see flow_pipeline.models.job.ALLOWED_TRANSITIONS) and issues a
conditional UPDATE on the status it observed, so two racing writers cannot
both move the same job to a terminal status.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

import structlog
from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from flow_pipeline.core.errors import (
    ArtifactNotFoundError,
    InvalidJobTransitionError,
    JobAlreadyTerminalError,
    JobNotFoundError,
    ProjectNotFoundError,
)
from flow_pipeline.models.artifact import Artifact
from flow_pipeline.models.job import ALLOWED_TRANSITIONS, AgentType, Job, JobStatus, is_terminal
from flow_pipeline.models.project import Project

log = structlog.get_logger(__name__)


class JobLedger:
    """Service for creating jobs and moving them through their lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_job(
        self,
        project_id: uuid.UUID,
        type: AgentType | str,
        input_artifact_id: uuid.UUID,
    ) -> Job:
        """Persist a new job in ``running``.

        Raises:
            ProjectNotFoundError: if the project does not exist
            ArtifactNotFoundError: if the input artifact does not exist or
                belongs to another project
        """
        agent_type = AgentType(type)
        if await self.db.get(Project, project_id) is None:
            raise ProjectNotFoundError(f"Project {project_id} not found")

        artifact = await self.db.get(Artifact, input_artifact_id)
        if artifact is None or artifact.project_id != project_id:
            raise ArtifactNotFoundError(
                f"Input artifact {input_artifact_id} not found in project {project_id}"
            )

        job = Job(
            project_id=project_id,
            type=agent_type.value,
            status=JobStatus.RUNNING.value,
            input_artifact_id=input_artifact_id,
        )
        self.db.add(job)
        await self.db.flush()

        log.info(
            "job.created",
            job_id=str(job.id),
            project_id=str(project_id),
            type=job.type,
            input_artifact_id=str(input_artifact_id),
        )
        return job

    async def get_job(self, job_id: uuid.UUID) -> Job:
        job = await self.db.get(Job, job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    async def list_jobs(self, project_id: uuid.UUID) -> list[Job]:
        """All jobs of a project, most recent first."""
        result = await self.db.execute(
            select(Job).where(Job.project_id == project_id).order_by(desc(Job.created_at))
        )
        return list(result.scalars().all())

    async def update_status(
        self,
        job_id: uuid.UUID,
        status: JobStatus | str,
        error: str | None = None,
        output_artifact_id: uuid.UUID | None = None,
    ) -> Job:
        """Move a job to ``status``.

        Raises:
            JobNotFoundError: if the job does not exist
            JobAlreadyTerminalError: if the job is already done, needs_approval
                or failed (also raised when a concurrent writer got there first)
            InvalidJobTransitionError: if the transition is not allowed
            ArtifactNotFoundError: if ``output_artifact_id`` does not exist
        """
        new_status = JobStatus(status)
        job = await self.get_job(job_id)
        observed = JobStatus(job.status)

        if is_terminal(observed):
            raise JobAlreadyTerminalError(
                f"Job {job_id} is already {observed.value}; cannot move to {new_status.value}",
                status=observed.value,
            )
        if new_status not in ALLOWED_TRANSITIONS[observed]:
            raise InvalidJobTransitionError(
                f"Job {job_id}: transition {observed.value} -> {new_status.value} not allowed"
            )
        if output_artifact_id is not None and await self.db.get(Artifact, output_artifact_id) is None:
            raise ArtifactNotFoundError(f"Output artifact {output_artifact_id} not found")

        now = datetime.now(UTC)
        values: dict[str, object] = {
            "status": new_status.value,
            "error": error,
            "updated_at": now,
        }
        if output_artifact_id is not None:
            values["output_artifact_id"] = output_artifact_id
        if is_terminal(new_status):
            values["completed_at"] = now

        result = await self.db.execute(
            update(Job)
            .where(Job.id == job_id, Job.status == observed.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.refresh(job)
            raise JobAlreadyTerminalError(
                f"Job {job_id} changed status concurrently; {new_status.value} not applied",
                status=job.status,
            )

        await self.db.refresh(job)
        log.info(
            "job.status_updated",
            job_id=str(job_id),
            from_status=observed.value,
            to_status=new_status.value,
            output_artifact_id=str(output_artifact_id) if output_artifact_id else None,
        )
        return job

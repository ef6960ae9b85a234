"""Job ledger endpoints.

POST /api/v1/projects/{id}/jobs  - Check preconditions and create a running job
GET  /api/v1/projects/{id}/jobs  - List jobs, most recent first
GET  /api/v1/jobs/{id}           - Poll one job
GET  /api/v1/jobs/{id}/runs      - Usage log of a job

Creating a job does not start it; the caller dispatches it to
POST /api/v1/workers/{agent_type} afterwards.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from flow_pipeline.agent.orchestrator import check_preconditions
from flow_pipeline.api.schemas import AgentRunResponse, JobCreate, JobResponse
from flow_pipeline.database import get_db_session
from flow_pipeline.services.job_ledger import JobLedger
from flow_pipeline.services.projects import ProjectService
from flow_pipeline.services.run_log import RunLogger

router = APIRouter(tags=["jobs"])


@router.post(
    "/projects/{project_id}/jobs",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_job(
    project_id: uuid.UUID,
    body: JobCreate,
    db: AsyncSession = Depends(get_db_session),
) -> JobResponse:
    """Create a job in ``running``.

    Missing inputs are reported (409) before any job row is written.
    """
    input_artifact = await check_preconditions(
        db, project_id, body.type, body.input_artifact_id
    )
    job = await JobLedger(db).create_job(project_id, body.type, input_artifact.id)
    # Visible to the dispatch that follows this response
    await db.commit()
    return JobResponse.model_validate(job)


@router.get("/projects/{project_id}/jobs", response_model=list[JobResponse])
async def list_jobs(
    project_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> list[JobResponse]:
    await ProjectService(db).get_project(project_id)
    jobs = await JobLedger(db).list_jobs(project_id)
    return [JobResponse.model_validate(j) for j in jobs]


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> JobResponse:
    job = await JobLedger(db).get_job(job_id)
    return JobResponse.model_validate(job)


@router.get("/jobs/{job_id}/runs", response_model=list[AgentRunResponse])
async def list_job_runs(
    job_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> list[AgentRunResponse]:
    await JobLedger(db).get_job(job_id)
    runs = await RunLogger(db).list_runs(job_id)
    return [AgentRunResponse.model_validate(r) for r in runs]

"""Dispatch endpoint.

POST /api/v1/workers/{agent_type}

Accepts an already-created job and starts its stage as a background task.
The response only confirms acceptance; success or failure of the agent is
reported exclusively through the job's status (GET /api/v1/jobs/{id}).
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, status

from flow_pipeline.agent.orchestrator import DispatchRequest, Orchestrator
from flow_pipeline.api.deps import get_orchestrator
from flow_pipeline.api.schemas import DispatchAccepted, DispatchBody
from flow_pipeline.models.job import AgentType

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/workers", tags=["workers"])


@router.post(
    "/{agent_type}",
    response_model=DispatchAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def dispatch(
    agent_type: AgentType,
    body: DispatchBody,
    background_tasks: BackgroundTasks,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> DispatchAccepted:
    request = DispatchRequest(
        job_id=body.job_id,
        project_id=body.project_id,
        agent_type=agent_type,
        input_artifact_id=body.input_artifact_id,
        channels=body.channels,
    )
    background_tasks.add_task(orchestrator.run, request)
    log.info(
        "dispatch.accepted",
        job_id=str(body.job_id),
        project_id=str(body.project_id),
        agent_type=agent_type.value,
    )
    return DispatchAccepted(job_id=body.job_id)

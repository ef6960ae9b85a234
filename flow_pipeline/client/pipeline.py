"""HTTP client that drives pipeline stages the way the portal UI does.

run_stage() sequence:
1. Check the stage's inputs against the cached project snapshot
2. Create the job (POST /projects/{id}/jobs)
3. Dispatch it (POST /workers/{agent_type}) and invalidate the snapshot
4. Poll until terminal or budget exhausted; invalidate again on terminal
"""

from __future__ import annotations

import uuid
from typing import Any

import httpx
import structlog

from flow_pipeline.agent.stages import MISSING_ARTIFACT_HINTS, get_stage
from flow_pipeline.client.cache import ProjectCache, ProjectSnapshot
from flow_pipeline.client.poller import JobPoller, PollOutcome, PollState
from flow_pipeline.core.errors import MissingInputArtifactError, PreconditionError
from flow_pipeline.models.job import AgentType

log = structlog.get_logger(__name__)


class PipelineClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        poll_interval: float = 5.0,
        poll_budget: float = 360.0,
        poller: JobPoller | None = None,
    ) -> None:
        self._http = http
        self.cache = ProjectCache(self._load_snapshot)
        self.poller = poller or JobPoller(http, interval=poll_interval, budget=poll_budget)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def _get(self, path: str, **params: Any) -> Any:
        response = await self._http.get(path, params=params or None)
        response.raise_for_status()
        return response.json()

    async def _load_snapshot(self, project_id: uuid.UUID) -> ProjectSnapshot:
        return ProjectSnapshot(
            project=await self._get(f"/api/v1/projects/{project_id}"),
            artifacts=await self._get(f"/api/v1/projects/{project_id}/artifacts"),
            jobs=await self._get(f"/api/v1/projects/{project_id}/jobs"),
        )

    async def snapshot(self, project_id: uuid.UUID) -> ProjectSnapshot:
        return await self.cache.get(project_id)

    async def job_status(self, job_id: uuid.UUID) -> dict[str, Any]:
        return await self.poller.fetch(job_id)

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def create_project(self, client_name: str, language: str = "pt") -> dict[str, Any]:
        response = await self._http.post(
            "/api/v1/projects", json={"client_name": client_name, "language": language}
        )
        response.raise_for_status()
        return response.json()

    async def upload_onboarding_report(
        self,
        project_id: uuid.UUID,
        *,
        content_json: dict[str, Any] | None = None,
        content: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if content_json is not None:
            body["content_json"] = content_json
        if content is not None:
            body["content"] = content
        response = await self._http.post(
            f"/api/v1/projects/{project_id}/onboarding-report", json=body
        )
        response.raise_for_status()
        self.cache.invalidate(project_id)
        return response.json()

    async def run_stage(
        self,
        project_id: uuid.UUID,
        agent_type: AgentType | str,
        *,
        channels: list[str] | None = None,
    ) -> PollOutcome:
        """Create, dispatch and wait for one stage.

        Raises:
            MissingInputArtifactError: the snapshot lacks an input; no job is created
            PreconditionError: the service refused to create the job
        """
        stage = get_stage(agent_type)
        snapshot = await self.cache.get(project_id)

        input_artifact = snapshot.latest_artifact(stage.input_types)
        if input_artifact is None:
            raise MissingInputArtifactError(
                f"No {stage.input_types[0]} found. "
                + MISSING_ARTIFACT_HINTS.get(stage.input_types[0], "")
            )
        for aux_type in stage.required_aux:
            if snapshot.latest_artifact((aux_type,)) is None:
                raise MissingInputArtifactError(
                    f"{stage.label} needs a {aux_type}. "
                    + MISSING_ARTIFACT_HINTS.get(aux_type, "")
                )

        response = await self._http.post(
            f"/api/v1/projects/{project_id}/jobs",
            json={"type": stage.agent_type.value, "input_artifact_id": input_artifact["id"]},
        )
        if response.status_code == httpx.codes.CONFLICT:
            raise PreconditionError(response.json().get("detail", "Precondition failed"))
        response.raise_for_status()
        job = response.json()

        dispatch_body: dict[str, Any] = {
            "project_id": str(project_id),
            "input_artifact_id": input_artifact["id"],
            "job_id": job["id"],
        }
        if channels:
            dispatch_body["channels"] = channels
        response = await self._http.post(
            f"/api/v1/workers/{stage.agent_type.value}", json=dispatch_body
        )
        response.raise_for_status()
        self.cache.invalidate(project_id)
        log.info("pipeline_client.dispatched", job_id=job["id"], agent_type=stage.agent_type.value)

        outcome = await self.poller.wait(job["id"])
        if outcome.state == PollState.TERMINAL:
            self.cache.invalidate(project_id)
        return outcome

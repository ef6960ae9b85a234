"""Stage orchestrator - runs one agent for one job, detached from the request.

Flow for one dispatch:
1. LOAD     - job, project, input artifact and auxiliary artifacts
2. CHECK    - re-run the preconditions; a missing input fails the job fast
3. INVOKE   - one generation call through the stage's invoker
4. PERSIST  - all output artifacts, committed in one transaction
5. FINISH   - run log, terminal status (+ approvals), in a second transaction

Artifacts are always committed before the terminal status, so a client that
observes ``done`` can read the outputs. Any exception in any step marks the
job ``failed`` with the message, except that a job which is already terminal
is left untouched. run() itself never raises, since nothing awaits it once
the dispatch response has been sent.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flow_pipeline.agent.invokers import AgentContext, AgentResult
from flow_pipeline.agent.llm import LLMClient
from flow_pipeline.agent.payloads import (
    DEFAULT_CHANNELS,
    ContentPlannerOutput,
    KBFileBundle,
    PresentationContent,
    QAAgentOutput,
    QAReport,
    QASummary,
    ResearchAgentOutput,
)
from flow_pipeline.agent.stages import MISSING_ARTIFACT_HINTS, StageSpec, get_stage
from flow_pipeline.config import Settings
from flow_pipeline.core.errors import (
    JobAlreadyTerminalError,
    MissingInputArtifactError,
    PreconditionError,
    ProjectNotFoundError,
)
from flow_pipeline.database import session_scope
from flow_pipeline.models.artifact import Artifact, ArtifactFormat, ArtifactType
from flow_pipeline.models.job import AgentType, JobStatus
from flow_pipeline.models.project import Project
from flow_pipeline.rendering import render_deck
from flow_pipeline.services.approvals import ApprovalService
from flow_pipeline.services.artifact_store import ArtifactStore
from flow_pipeline.services.file_storage import LocalFileStorage
from flow_pipeline.services.job_ledger import JobLedger
from flow_pipeline.services.run_log import RunLogger
from flow_pipeline.telemetry.logging import bind_job_context, unbind_job_context

log = structlog.get_logger(__name__)

_MAX_ERROR_CHARS = 1000


@dataclass
class DispatchRequest:
    """What the dispatch endpoint hands to the orchestrator."""

    job_id: uuid.UUID
    project_id: uuid.UUID
    agent_type: AgentType
    input_artifact_id: uuid.UUID
    channels: list[str] | None = None


@dataclass
class StageOutcome:
    job_id: uuid.UUID
    status: JobStatus
    output_artifact_ids: list[uuid.UUID] = field(default_factory=list)
    error: str | None = None


@dataclass
class _Persisted:
    artifacts: list[Artifact]
    primary: Artifact
    needs_approval: list[Artifact] = field(default_factory=list)


# ------------------------------------------------------------------ #
# Preconditions
# ------------------------------------------------------------------ #


async def check_preconditions(
    db: AsyncSession,
    project_id: uuid.UUID,
    agent_type: AgentType | str,
    input_artifact_id: uuid.UUID | None = None,
) -> Artifact:
    """Resolve the input artifact for a stage and verify its auxiliary inputs.

    With an explicit ``input_artifact_id`` the artifact must belong to the
    project and be of an accepted type; otherwise the most recent artifact of
    any accepted type is used.

    Raises:
        ProjectNotFoundError: unknown project
        MissingInputArtifactError: an input or required auxiliary artifact
            has not been produced yet
        PreconditionError: the explicit input artifact cannot feed this stage
    """
    stage = get_stage(agent_type)
    if await db.get(Project, project_id) is None:
        raise ProjectNotFoundError(f"Project {project_id} not found")

    store = ArtifactStore(db)
    if input_artifact_id is not None:
        artifact = await db.get(Artifact, input_artifact_id)
        if artifact is None or artifact.project_id != project_id:
            raise MissingInputArtifactError(
                f"Input artifact {input_artifact_id} not found in this project"
            )
        if artifact.type not in stage.input_types:
            raise PreconditionError(
                f"{stage.label} cannot run on a {artifact.type} artifact; "
                f"expected {' or '.join(stage.input_types)}"
            )
    else:
        artifact = await store.latest_of_types(project_id, stage.input_types)
        if artifact is None:
            raise MissingInputArtifactError(
                f"No {stage.input_types[0]} found. "
                + MISSING_ARTIFACT_HINTS.get(stage.input_types[0], "")
            )

    for aux_type in stage.required_aux:
        if await store.latest_artifact(project_id, aux_type) is None:
            raise MissingInputArtifactError(
                f"{stage.label} needs a {aux_type}. "
                + MISSING_ARTIFACT_HINTS.get(aux_type, "")
            )

    return artifact


def _payload_of(artifact: Artifact) -> Any:
    if artifact.format == ArtifactFormat.JSON:
        return artifact.content_json
    return artifact.content


# ------------------------------------------------------------------ #
# Orchestrator
# ------------------------------------------------------------------ #


class Orchestrator:
    """Runs dispatched stages end to end.

    Each step opens its own short unit of work so no transaction is held open
    across the generation call.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        llm_client: LLMClient,
        file_storage: LocalFileStorage,
        settings: Settings,
    ) -> None:
        self._session_factory = session_factory
        self._llm = llm_client
        self._files = file_storage
        self._settings = settings

    async def run(self, request: DispatchRequest) -> StageOutcome:
        """Execute one dispatched job. Never raises."""
        started = time.monotonic()
        bind_job_context(request.job_id, request.project_id, str(request.agent_type))
        log.info("orchestrator.stage_started")
        try:
            outcome = await self._execute(request, started)
            log.info(
                "orchestrator.job.done",
                status=outcome.status.value,
                outputs=len(outcome.output_artifact_ids),
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            return outcome
        except JobAlreadyTerminalError as exc:
            # Re-dispatch of a finished job: leave it as it is
            log.info("orchestrator.job_already_terminal", status=exc.status, reason=str(exc))
            return StageOutcome(job_id=request.job_id, status=JobStatus(exc.status))
        except Exception as exc:
            message = (str(exc) or type(exc).__name__)[:_MAX_ERROR_CHARS]
            log.error(
                "orchestrator.stage_failed",
                error=message,
                error_type=type(exc).__name__,
                exc_info=True,
            )
            await self._mark_failed(request, message, started)
            return StageOutcome(job_id=request.job_id, status=JobStatus.FAILED, error=message)
        finally:
            unbind_job_context()

    async def _execute(self, request: DispatchRequest, started: float) -> StageOutcome:
        stage = get_stage(request.agent_type)

        # 1-2. Load and re-check
        async with session_scope(self._session_factory) as db:
            job = await JobLedger(db).get_job(request.job_id)
            if job.is_terminal:
                raise JobAlreadyTerminalError(
                    f"Job {job.id} is already {job.status}", status=job.status
                )
            if job.type != stage.agent_type or job.project_id != request.project_id:
                raise PreconditionError(
                    f"Job {job.id} is a {job.type} job for project {job.project_id}; "
                    f"dispatched as {stage.agent_type} for {request.project_id}"
                )
            if job.input_artifact_id != request.input_artifact_id:
                raise PreconditionError(
                    f"Dispatched input artifact {request.input_artifact_id} does not "
                    f"match job input {job.input_artifact_id}"
                )
            project = await db.get(Project, job.project_id)
            input_artifact = await check_preconditions(
                db, job.project_id, stage.agent_type, job.input_artifact_id
            )
            payload = _payload_of(input_artifact)
            context = await self._build_context(ArtifactStore(db), stage, project, request)

        # 3. Invoke
        invoker = stage.invoker_cls(
            self._llm,
            timeout=self._settings.agent_timeout_for(stage.agent_type),
            enable_search=self._settings.enable_search_grounding,
        )
        result = await invoker.invoke(payload, context)

        # 4. Persist artifacts
        deck_url: str | None = None
        if stage.agent_type == AgentType.PRESENTATION:
            deck_url = await self._store_deck(
                f"{project.id}/presentation-{job.id}.pptx", result.output
            )
        async with session_scope(self._session_factory) as db:
            persisted = await self._persist(
                ArtifactStore(db), stage, project.id, result, deck_url
            )

        # 5. Run log, terminal status, approvals
        async with session_scope(self._session_factory) as db:
            await RunLogger(db).log_run(
                job.id,
                model=result.model,
                tokens_in=result.tokens_in,
                tokens_out=result.tokens_out,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            await JobLedger(db).update_status(
                job.id,
                stage.success_status,
                output_artifact_id=persisted.primary.id,
            )
            if persisted.needs_approval:
                await ApprovalService(db).create_for_artifacts(
                    project.id, [a.id for a in persisted.needs_approval]
                )

        return StageOutcome(
            job_id=job.id,
            status=stage.success_status,
            output_artifact_ids=[a.id for a in persisted.artifacts],
        )

    async def _store_deck(self, key: str, content: PresentationContent) -> str:
        """Render the deck and write it to file storage off the event loop."""

        def _sync_store() -> str:
            return self._files.save(key, render_deck(content))

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _sync_store)

    async def _build_context(
        self,
        store: ArtifactStore,
        stage: StageSpec,
        project: Project,
        request: DispatchRequest,
    ) -> AgentContext:
        context = AgentContext(
            client_name=project.client_name,
            language=project.language,
            channels=list(request.channels or DEFAULT_CHANNELS),
        )

        if ArtifactType.KB_FILE in stage.optional_aux:
            # Latest version of each file, in filename order
            latest_by_title: dict[str, Artifact] = {}
            for artifact in await store.list_artifacts(project.id, ArtifactType.KB_FILE):
                latest_by_title.setdefault(artifact.title, artifact)
            context.kb_files = [
                {"title": title, "content": latest_by_title[title].content or ""}
                for title in sorted(latest_by_title)
            ]

        if ArtifactType.RESEARCH_FOUNDATION_PACK_JSON in stage.required_aux:
            pack = await store.latest_artifact(
                project.id, ArtifactType.RESEARCH_FOUNDATION_PACK_JSON
            )
            foundations = (pack.content_json or {}).get("campaign_foundations") or {}
            context.strategy_context = {
                "positioning_statement": foundations.get("positioning_statement", ""),
                "brand_voice": foundations.get("brand_voice", ""),
                "messaging_pillars": foundations.get("messaging_pillars", []),
                "claims_rules": foundations.get("claims_rules", {}),
                "content_themes": foundations.get("content_themes", []),
            }

        return context

    async def _persist(
        self,
        store: ArtifactStore,
        stage: StageSpec,
        project_id: uuid.UUID,
        result: AgentResult,
        deck_url: str | None,
    ) -> _Persisted:
        output = result.output

        if isinstance(output, ResearchAgentOutput):
            pack = await store.put_artifact(
                project_id,
                ArtifactType.RESEARCH_FOUNDATION_PACK_JSON,
                ArtifactFormat.JSON,
                title="Research Foundation Pack",
                content_json=output.research_foundation_pack_json.model_dump(mode="json"),
            )
            md = await store.put_artifact(
                project_id,
                ArtifactType.RESEARCH_FOUNDATION_PACK_MD,
                ArtifactFormat.MARKDOWN,
                title="Research Foundation Pack",
                content=result.markdown,
            )
            return _Persisted(artifacts=[pack, md], primary=pack)

        if isinstance(output, KBFileBundle):
            files = [
                await store.put_artifact(
                    project_id,
                    ArtifactType.KB_FILE,
                    ArtifactFormat.MARKDOWN,
                    title=kb_file.filename,
                    content=kb_file.content,
                )
                for kb_file in output.files
            ]
            return _Persisted(artifacts=files, primary=files[0], needs_approval=files)

        if isinstance(output, PresentationContent):
            content = await store.put_artifact(
                project_id,
                ArtifactType.PRESENTATION_CONTENT_JSON,
                ArtifactFormat.JSON,
                title=output.deck_title,
                content_json=output.model_dump(mode="json"),
            )
            deck = await store.put_artifact(
                project_id,
                ArtifactType.PRESENTATION,
                ArtifactFormat.BINARY_REFERENCE,
                title=output.deck_title,
                file_url=deck_url,
            )
            return _Persisted(artifacts=[content, deck], primary=deck)

        if isinstance(output, ContentPlannerOutput):
            plan = await store.put_artifact(
                project_id,
                ArtifactType.CONTENT_PLAN_JSON,
                ArtifactFormat.JSON,
                title="30-Day Content Plan",
                content_json=output.model_dump(
                    mode="json", include={"strategy_overview", "posts"}
                ),
            )
            md = await store.put_artifact(
                project_id,
                ArtifactType.CONTENT_PLAN_MD,
                ArtifactFormat.MARKDOWN,
                title="30-Day Content Plan",
                content=result.markdown,
            )
            return _Persisted(artifacts=[plan, md], primary=plan)

        if isinstance(output, QAAgentOutput):
            report = QAReport(
                results=output.results,
                summary=QASummary.from_results(output.results),
            )
            qa = await store.put_artifact(
                project_id,
                ArtifactType.QA_RESULTS_JSON,
                ArtifactFormat.JSON,
                title="QA Review",
                content_json=report.model_dump(mode="json"),
            )
            return _Persisted(artifacts=[qa], primary=qa)

        raise TypeError(f"No persistence rule for {stage.agent_type} output")

    async def _mark_failed(
        self,
        request: DispatchRequest,
        message: str,
        started: float,
    ) -> None:
        """Best effort: move the job to failed and log the attempt."""
        try:
            async with session_scope(self._session_factory) as db:
                await JobLedger(db).update_status(
                    request.job_id, JobStatus.FAILED, error=message
                )
                await RunLogger(db).log_run(
                    request.job_id,
                    model=self._llm.default_model,
                    tokens_in=None,
                    tokens_out=None,
                    duration_ms=int((time.monotonic() - started) * 1000),
                )
        except Exception as exc:
            log.error(
                "orchestrator.mark_failed_error",
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )

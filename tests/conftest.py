"""
Shared test fixtures for pytest.

Provides a real SQLite database per test and offline collaborators:
- fake_settings: Test environment configuration (SQLite file in tmp_path)
- db_engine: Initialized engine + schema, closed after the test
- db_session: Plain async session (tests commit explicitly when needed)
- llm: FakeLLMClient with canned, schema-valid payloads
- file_storage: LocalFileStorage rooted in tmp_path
- orchestrator: Orchestrator wired to all of the above
- project, onboarding_artifact: Seeded, committed rows
- run_stage: Helper that creates a job and runs it through the orchestrator
- test_app, client: FastAPI app and httpx client over ASGITransport
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession

from flow_pipeline.agent.orchestrator import (
    DispatchRequest,
    Orchestrator,
    StageOutcome,
    check_preconditions,
)
from flow_pipeline.config import Environment, Settings, get_settings
from flow_pipeline.database import (
    close_db,
    create_schema,
    get_engine,
    get_session_factory,
    init_db,
    session_scope,
)
from flow_pipeline.models.artifact import Artifact, ArtifactFormat, ArtifactType
from flow_pipeline.models.job import AgentType
from flow_pipeline.models.project import Project
from flow_pipeline.services.artifact_store import ArtifactStore
from flow_pipeline.services.file_storage import LocalFileStorage
from flow_pipeline.services.job_ledger import JobLedger
from flow_pipeline.services.projects import ProjectService
from flow_pipeline.testing.fake_llm import FakeLLMClient

ONBOARDING_REPORT: dict[str, Any] = {
    "company_name": "Acme Bakery",
    "industry": "Food & beverage",
    "products": ["sourdough", "pastries"],
    "goals": ["brand awareness", "weekday footfall"],
    "tone": "warm and local",
}


# ------------------------------------------------------------------ #
# Session-scoped: clear settings cache between test sessions
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True, scope="session")
def _clear_settings_cache():
    """Clear the lru_cache on get_settings so test overrides take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ------------------------------------------------------------------ #
# Settings & Database
# ------------------------------------------------------------------ #


@pytest.fixture
def fake_settings(tmp_path) -> Settings:
    """Test environment settings with safe defaults."""
    return Settings(
        environment=Environment.TEST,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'pipeline.db'}",
        litellm_api_key="sk-test-key",
        auto_create_schema=False,
        agent_timeout_seconds=2.0,
        dispatch_execution_ceiling_seconds=5.0,
        stage_timeout_seconds={"qa": 1.5},
        stage_execution_ceiling_seconds={"qa": 3.0},
        poll_interval_seconds=0.01,
        poll_budget_seconds=1.0,
        artifact_storage_dir=str(tmp_path / "artifacts"),
        public_base_url="http://testserver",
        db_echo_sql=False,
    )


@pytest.fixture
async def db_engine(fake_settings: Settings) -> AsyncGenerator[None, None]:
    """Initialize the module-level engine on a fresh SQLite file."""
    init_db(fake_settings, for_test=True)

    # Enforce foreign keys on SQLite
    @event.listens_for(get_engine().sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    await create_schema()
    yield
    await close_db()


@pytest.fixture
async def db_session(db_engine: None) -> AsyncGenerator[AsyncSession, None]:
    async with get_session_factory()() as session:
        yield session


# ------------------------------------------------------------------ #
# Collaborators
# ------------------------------------------------------------------ #


@pytest.fixture
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def file_storage(fake_settings: Settings) -> LocalFileStorage:
    return LocalFileStorage.from_settings(fake_settings)


@pytest.fixture
def orchestrator(
    db_engine: None,
    llm: FakeLLMClient,
    file_storage: LocalFileStorage,
    fake_settings: Settings,
) -> Orchestrator:
    return Orchestrator(
        session_factory=get_session_factory(),
        llm_client=llm,
        file_storage=file_storage,
        settings=fake_settings,
    )


# ------------------------------------------------------------------ #
# Seed data
# ------------------------------------------------------------------ #


@pytest.fixture
async def project(db_engine: None) -> Project:
    async with session_scope() as db:
        return await ProjectService(db).create_project("Acme Bakery", "en")


@pytest.fixture
async def onboarding_artifact(project: Project) -> Artifact:
    async with session_scope() as db:
        return await ArtifactStore(db).put_artifact(
            project.id,
            ArtifactType.ONBOARDING_REPORT_JSON,
            ArtifactFormat.JSON,
            title="Onboarding Report",
            content_json=ONBOARDING_REPORT,
        )


RunStage = Callable[..., Awaitable[StageOutcome]]


@pytest.fixture
def run_stage(orchestrator: Orchestrator) -> RunStage:
    """Create a job the way the API does, then run it to completion."""

    async def _run(
        project_id: uuid.UUID,
        agent_type: AgentType,
        *,
        channels: list[str] | None = None,
        orchestrator_override: Orchestrator | None = None,
    ) -> StageOutcome:
        async with session_scope() as db:
            input_artifact = await check_preconditions(db, project_id, agent_type)
            job = await JobLedger(db).create_job(project_id, agent_type, input_artifact.id)
        runner = orchestrator_override or orchestrator
        return await runner.run(
            DispatchRequest(
                job_id=job.id,
                project_id=project_id,
                agent_type=agent_type,
                input_artifact_id=input_artifact.id,
                channels=channels,
            )
        )

    return _run


# ------------------------------------------------------------------ #
# App Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture
def test_app(fake_settings: Settings, db_engine: None, llm: FakeLLMClient) -> FastAPI:
    """FastAPI app bound to the test database and the fake LLM.

    The lifespan is not run by ASGITransport; db_engine has already
    initialized the database.
    """
    from flow_pipeline.main import create_app

    return create_app(fake_settings, llm_client=llm)


@pytest.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client for the test app.

    ASGITransport returns only after the app call completes, background
    tasks included, so a dispatched job is terminal when the response
    arrives.
    """
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

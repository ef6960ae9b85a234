"""FastAPI dependencies for objects created once per app (see main.create_app)."""

from __future__ import annotations

from fastapi import Request

from flow_pipeline.agent.orchestrator import Orchestrator
from flow_pipeline.config import Settings
from flow_pipeline.database import get_session_factory
from flow_pipeline.services.file_storage import LocalFileStorage


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_file_storage(request: Request) -> LocalFileStorage:
    return request.app.state.file_storage


def get_orchestrator(request: Request) -> Orchestrator:
    state = request.app.state
    return Orchestrator(
        session_factory=get_session_factory(),
        llm_client=state.llm_client,
        file_storage=state.file_storage,
        settings=state.settings,
    )

"""FastAPI application entrypoint.

Application startup order:
1. Load settings (from environment)
2. Configure logging
3. Initialize database engine and session factory
4. Create missing tables (AUTO_CREATE_SCHEMA)

Shutdown order:
1. Close DB connection pool
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flow_pipeline import __version__
from flow_pipeline.agent.llm import LLMClient
from flow_pipeline.api.router import api_v1_router, public_router
from flow_pipeline.config import Settings, get_settings
from flow_pipeline.core.errors import (
    ApprovalAlreadyDecidedError,
    InvalidArtifactError,
    InvalidJobTransitionError,
    NotFoundError,
    PipelineError,
    PreconditionError,
)
from flow_pipeline.database import close_db, create_schema, init_db
from flow_pipeline.services.file_storage import LocalFileStorage
from flow_pipeline.telemetry.logging import RequestIdMiddleware, configure_logging
from flow_pipeline.testing.fake_llm import FakeLLMClient

log = structlog.get_logger(__name__)

# Domain error family -> HTTP status
_ERROR_STATUS: tuple[tuple[type[PipelineError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PreconditionError, status.HTTP_409_CONFLICT),
    (InvalidJobTransitionError, status.HTTP_409_CONFLICT),
    (ApprovalAlreadyDecidedError, status.HTTP_409_CONFLICT),
    (InvalidArtifactError, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    settings: Settings = app.state.settings

    # Configure structured logging first (before any log calls)
    configure_logging(
        json_logs=settings.is_prod,
        log_level="DEBUG" if settings.debug else settings.log_level,
    )

    log.info(
        "app.starting",
        environment=settings.environment,
        db_url=settings.database_url.split("@")[-1],
        offline_llm=settings.llm_offline_mode,
    )

    init_db(settings)
    if settings.auto_create_schema:
        await create_schema()

    log.info("app.ready")
    yield

    await close_db()
    log.info("app.shutdown")


def create_app(
    settings: Settings | None = None,
    *,
    llm_client: LLMClient | FakeLLMClient | None = None,
) -> FastAPI:
    """Application factory."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Flow Agent Pipeline",
        description=(
            "Runs the agency's research, knowledge base, presentation, content "
            "planning and QA agents as tracked jobs over immutable artifacts."
        ),
        version=__version__,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
        openapi_url="/openapi.json" if settings.is_dev else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    if llm_client is None:
        llm_client = FakeLLMClient() if settings.llm_offline_mode else LLMClient(settings)
    app.state.llm_client = llm_client
    app.state.file_storage = LocalFileStorage.from_settings(settings)

    # ------------------------------------------------------------------ #
    # Middleware (added in reverse order - last added = first executed)
    # ------------------------------------------------------------------ #

    # In dev mode, allow all origins; in production, only configured ones
    cors_origins = ["*"] if settings.is_dev else settings.cors_allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.is_prod,
        allow_methods=["*"],
        allow_headers=["Content-Type"],
    )

    # Unique request ID for log correlation
    app.add_middleware(RequestIdMiddleware)

    # ------------------------------------------------------------------ #
    # Routers
    # ------------------------------------------------------------------ #
    app.include_router(public_router)
    app.include_router(api_v1_router)

    # ------------------------------------------------------------------ #
    # Exception handlers
    # ------------------------------------------------------------------ #

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
        status_code = next(
            (code for family, code in _ERROR_STATUS if isinstance(exc, family)),
            status.HTTP_400_BAD_REQUEST,
        )
        log.info(
            "app.domain_error",
            path=request.url.path,
            error_type=type(exc).__name__,
            status_code=status_code,
        )
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        log.error(
            "app.unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    return app


# Module-level app instance for uvicorn
app = create_app()

"""Health endpoints.

/health/live   - the process is up
/health/ready  - the database answers and rendered decks can be stored
"""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from flow_pipeline import __version__
from flow_pipeline.api.deps import get_file_storage
from flow_pipeline.database import get_engine
from flow_pipeline.services.file_storage import LocalFileStorage

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict:
    return {"status": "ok", "version": __version__, "timestamp": datetime.now(UTC).isoformat()}


async def _check_database() -> str:
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        log.warning("health.database_unavailable", error=str(exc))
        return f"error: {exc}"
    return "ok"


def _check_storage(storage: LocalFileStorage) -> str:
    try:
        storage.check_writable()
    except OSError as exc:
        log.warning("health.storage_unavailable", root=str(storage.root), error=str(exc))
        return f"error: {exc}"
    return "ok"


@router.get("/ready")
async def readiness(storage: LocalFileStorage = Depends(get_file_storage)) -> JSONResponse:
    """503 until every dependency a stage run needs is usable."""
    checks = {
        "database": await _check_database(),
        "storage": _check_storage(storage),
    }
    is_ready = all(value == "ok" for value in checks.values())
    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={
            "status": "ready" if is_ready else "not_ready",
            **checks,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )

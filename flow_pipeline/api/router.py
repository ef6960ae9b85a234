"""Main API router - aggregates all sub-routers.

All routes are versioned under /api/v1 except health checks.
"""

from __future__ import annotations

from fastapi import APIRouter

from flow_pipeline.api import approvals, files, health, jobs, projects, workers

# Public router
public_router = APIRouter()
public_router.include_router(health.router)

# Versioned API router
api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(projects.router)
api_v1_router.include_router(jobs.router)
api_v1_router.include_router(workers.router)
api_v1_router.include_router(approvals.router)
api_v1_router.include_router(files.router)

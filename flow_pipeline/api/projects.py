"""Project and artifact endpoints.

POST  /api/v1/projects                              - Create a project
GET   /api/v1/projects                              - List projects
GET   /api/v1/projects/{id}                         - Get a project
PATCH /api/v1/projects/{id}                         - Edit name / language
POST  /api/v1/projects/{id}/onboarding-report       - Upload the onboarding report
GET   /api/v1/projects/{id}/artifacts?type=         - List artifacts, most recent first
GET   /api/v1/projects/{id}/artifacts/latest?type=  - Current artifact of a type
GET   /api/v1/artifacts/{id}                        - Get one artifact
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from flow_pipeline.api.deps import get_app_settings
from flow_pipeline.api.schemas import (
    ArtifactResponse,
    OnboardingReportUpload,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)
from flow_pipeline.config import Settings
from flow_pipeline.database import get_db_session
from flow_pipeline.models.artifact import ArtifactFormat, ArtifactType
from flow_pipeline.services.artifact_store import ArtifactStore
from flow_pipeline.services.projects import ProjectService

router = APIRouter(tags=["projects"])


@router.post(
    "/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_project(
    body: ProjectCreate,
    db: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> ProjectResponse:
    project = await ProjectService(db).create_project(
        body.client_name, body.language or settings.default_language
    )
    await db.commit()
    return ProjectResponse.model_validate(project)


@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects(db: AsyncSession = Depends(get_db_session)) -> list[ProjectResponse]:
    projects = await ProjectService(db).list_projects()
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    project = await ProjectService(db).get_project(project_id)
    return ProjectResponse.model_validate(project)


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    project = await ProjectService(db).update_project(
        project_id, client_name=body.client_name, language=body.language
    )
    await db.commit()
    return ProjectResponse.model_validate(project)


@router.post(
    "/projects/{project_id}/onboarding-report",
    response_model=ArtifactResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_onboarding_report(
    project_id: uuid.UUID,
    body: OnboardingReportUpload,
    db: AsyncSession = Depends(get_db_session),
) -> ArtifactResponse:
    """Store the onboarding report as the Research stage's input artifact."""
    store = ArtifactStore(db)
    if body.content_json is not None:
        artifact = await store.put_artifact(
            project_id,
            ArtifactType.ONBOARDING_REPORT_JSON,
            ArtifactFormat.JSON,
            title=body.title,
            content_json=body.content_json,
        )
    else:
        artifact = await store.put_artifact(
            project_id,
            ArtifactType.ONBOARDING_REPORT,
            ArtifactFormat.MARKDOWN,
            title=body.title,
            content=body.content,
        )
    await db.commit()
    return ArtifactResponse.model_validate(artifact)


@router.get("/projects/{project_id}/artifacts", response_model=list[ArtifactResponse])
async def list_artifacts(
    project_id: uuid.UUID,
    type: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> list[ArtifactResponse]:
    await ProjectService(db).get_project(project_id)
    artifacts = await ArtifactStore(db).list_artifacts(project_id, type)
    return [ArtifactResponse.model_validate(a) for a in artifacts]


@router.get("/projects/{project_id}/artifacts/latest", response_model=ArtifactResponse)
async def latest_artifact(
    project_id: uuid.UUID,
    type: str = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> ArtifactResponse:
    await ProjectService(db).get_project(project_id)
    artifact = await ArtifactStore(db).latest_artifact(project_id, type)
    if artifact is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No {type} artifact in project {project_id}",
        )
    return ArtifactResponse.model_validate(artifact)


@router.get("/artifacts/{artifact_id}", response_model=ArtifactResponse)
async def get_artifact(
    artifact_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ArtifactResponse:
    artifact = await ArtifactStore(db).get_artifact(artifact_id)
    return ArtifactResponse.model_validate(artifact)

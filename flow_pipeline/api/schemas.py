"""Request/response models shared by the API routers."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from flow_pipeline.models.job import AgentType

Language = Literal["pt", "en"]


# ------------------------------------------------------------------ #
# Projects
# ------------------------------------------------------------------ #


class ProjectCreate(BaseModel):
    client_name: str = Field(min_length=1, max_length=255)
    language: Language | None = None  # DEFAULT_LANGUAGE when omitted


class ProjectUpdate(BaseModel):
    client_name: str | None = Field(default=None, min_length=1, max_length=255)
    language: Language | None = None


class ProjectResponse(BaseModel):
    id: uuid.UUID
    client_name: str
    language: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ------------------------------------------------------------------ #
# Artifacts
# ------------------------------------------------------------------ #


class OnboardingReportUpload(BaseModel):
    """Structured questionnaire answers, or free-text markdown as a fallback."""

    content_json: dict[str, Any] | None = None
    content: str | None = None
    title: str = "Onboarding Report"

    @model_validator(mode="after")
    def _exactly_one(self) -> OnboardingReportUpload:
        if (self.content_json is None) == (self.content is None):
            raise ValueError("Provide exactly one of content_json or content")
        return self


class ArtifactResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    type: str
    format: str
    title: str
    content: str | None
    content_json: Any | None
    file_url: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


# ------------------------------------------------------------------ #
# Jobs
# ------------------------------------------------------------------ #


class JobCreate(BaseModel):
    type: AgentType
    input_artifact_id: uuid.UUID | None = None


class JobResponse(BaseModel):
    """Poll shape: clients only need ``status``, ``error`` and ``output_artifact_id``."""

    id: uuid.UUID
    project_id: uuid.UUID
    type: str
    status: str
    input_artifact_id: uuid.UUID
    output_artifact_id: uuid.UUID | None
    error: str | None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None

    model_config = {"from_attributes": True}


class AgentRunResponse(BaseModel):
    id: uuid.UUID
    job_id: uuid.UUID
    model: str
    tokens_in: int | None
    tokens_out: int | None
    cost_estimate: float | None
    duration_ms: int
    created_at: datetime

    model_config = {"from_attributes": True}


# ------------------------------------------------------------------ #
# Dispatch
# ------------------------------------------------------------------ #


class DispatchBody(BaseModel):
    project_id: uuid.UUID
    input_artifact_id: uuid.UUID
    job_id: uuid.UUID
    channels: list[str] | None = Field(default=None, min_length=1)


class DispatchAccepted(BaseModel):
    success: bool = True
    job_id: uuid.UUID
    status: str = "running"


# ------------------------------------------------------------------ #
# Approvals
# ------------------------------------------------------------------ #


class ApprovalDecision(BaseModel):
    status: Literal["approved", "rejected"]


class ApprovalResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    artifact_id: uuid.UUID
    status: str
    created_at: datetime
    decided_at: datetime | None

    model_config = {"from_attributes": True}

"""ORM models package.

Import all models here so that SQLAlchemy's metadata is fully populated
before create_schema() runs. The order of imports matters for foreign
key resolution.
"""

from flow_pipeline.models.project import Project
from flow_pipeline.models.artifact import Artifact, ArtifactFormat, ArtifactType
from flow_pipeline.models.job import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    AgentType,
    Job,
    JobStatus,
    is_terminal,
)
from flow_pipeline.models.approval import Approval, ApprovalStatus
from flow_pipeline.models.run import AgentRun

__all__ = [
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "AgentRun",
    "AgentType",
    "Approval",
    "ApprovalStatus",
    "Artifact",
    "ArtifactFormat",
    "ArtifactType",
    "Job",
    "JobStatus",
    "Project",
    "is_terminal",
]

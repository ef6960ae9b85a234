"""Artifact model - immutable typed outputs (and inputs) of pipeline stages.

An artifact is written once and never updated. Regenerating a stage inserts
a new row with the same ``type``; readers pick the most recent one by
``created_at`` (see ArtifactStore.latest_artifact).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from flow_pipeline.core.errors import ImmutableArtifactError
from flow_pipeline.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


class ArtifactType(StrEnum):
    """Semantic role tags for artifacts produced or consumed by stages."""

    ONBOARDING_REPORT_JSON = "onboarding_report_json"
    ONBOARDING_REPORT = "onboarding_report"
    RESEARCH_FOUNDATION_PACK_JSON = "research_foundation_pack_json"
    RESEARCH_FOUNDATION_PACK_MD = "research_foundation_pack_md"
    KB_FILE = "kb_file"
    CONTENT_PLAN_JSON = "content_plan_json"
    CONTENT_PLAN_MD = "content_plan_md"
    PRESENTATION_CONTENT_JSON = "presentation_content_json"
    PRESENTATION = "presentation"
    QA_RESULTS_JSON = "qa_results_json"


class ArtifactFormat(StrEnum):
    JSON = "json"
    MARKDOWN = "markdown"
    BINARY_REFERENCE = "binary_reference"


class Artifact(Base):
    """One immutable stage output.

    Exactly one payload column is meaningful, chosen by ``format``:
    ``content_json`` for json, ``content`` for markdown, ``file_url`` for
    binary references.
    """

    __tablename__ = "artifacts"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Open string tag; ArtifactType lists the ones the stages know about
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    format: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_json: Mapped[Any | None] = mapped_column(JSONPayload, nullable=True)
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        # "latest artifact of type X for project P"
        Index("ix_artifacts_project_type_created", "project_id", "type", "created_at"),
    )

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("title", "")
        kwargs.setdefault("created_at", datetime.now(UTC))
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<Artifact id={self.id} type={self.type} format={self.format}>"


@event.listens_for(Artifact, "before_update")
def _reject_artifact_update(mapper: Any, connection: Any, target: Artifact) -> None:
    raise ImmutableArtifactError(
        f"Artifact {target.id} is immutable; store a new artifact instead"
    )

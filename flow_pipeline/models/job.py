"""Job model - one execution attempt of one agent for one project.

Lifecycle::

    running -> done
            -> needs_approval
            -> failed

Jobs are created directly in ``running`` by the caller that dispatches the
stage. ``pending`` and ``queued`` are declared for a future queue but no
code path enters them today. Terminal statuses are sinks.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from flow_pipeline.database import Base


class AgentType(StrEnum):
    """Pipeline stages, one agent each."""

    RESEARCH = "research"
    KB_PACKAGER = "kb_packager"
    PRESENTATION = "presentation"
    CONTENT_PLANNER = "content_planner"
    QA = "qa"


class JobStatus(StrEnum):
    PENDING = "pending"
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    NEEDS_APPROVAL = "needs_approval"
    FAILED = "failed"


TERMINAL_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.DONE, JobStatus.NEEDS_APPROVAL, JobStatus.FAILED}
)

ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.QUEUED, JobStatus.RUNNING, JobStatus.FAILED}),
    JobStatus.QUEUED: frozenset({JobStatus.RUNNING, JobStatus.FAILED}),
    JobStatus.RUNNING: frozenset(TERMINAL_STATUSES),
    JobStatus.DONE: frozenset(),
    JobStatus.NEEDS_APPROVAL: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


class Job(Base):
    """Ledger row for one stage invocation.

    ``input_artifact_id`` is the dependency edge to the producing stage and
    must reference an existing artifact when the job is created.
    ``output_artifact_id`` points at the primary artifact produced and is
    only set together with a terminal status.
    """

    __tablename__ = "jobs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)

    # Stored as VARCHAR (avoids enum migration pain)
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=JobStatus.RUNNING.value,
        comment="pending | queued | running | done | needs_approval | failed",
    )

    input_artifact_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("artifacts.id"),
        nullable=False,
    )
    output_artifact_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("artifacts.id"),
        nullable=True,
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_jobs_project_created", "project_id", "created_at"),
        Index("ix_jobs_project_status", "project_id", "status"),
    )

    def __init__(self, **kwargs: Any) -> None:
        """Set Python-level defaults so new objects are usable before a flush."""
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("status", JobStatus.RUNNING.value)
        kwargs.setdefault("created_at", datetime.now(UTC))
        kwargs.setdefault("updated_at", datetime.now(UTC))
        super().__init__(**kwargs)

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    def __repr__(self) -> str:
        return f"<Job id={self.id} type={self.type} status={self.status!r}>"

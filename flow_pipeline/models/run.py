"""Agent run model - usage accounting (tokens, cost, time) keyed by job."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from flow_pipeline.database import Base


class AgentRun(Base):
    """One orchestrator attempt for a job, successful or not.

    Token counts are null when the attempt failed before the backend
    reported usage; ``cost_estimate`` is null in that case too.
    """

    __tablename__ = "agent_runs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    model: Mapped[str] = mapped_column(String(200), nullable=False)
    tokens_in: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tokens_out: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cost_estimate: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
        comment="Estimated USD cost from the per-model price table",
    )
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("created_at", datetime.now(UTC))
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return (
            f"<AgentRun id={self.id} job={self.job_id} model={self.model!r} "
            f"tokens_in={self.tokens_in} tokens_out={self.tokens_out}>"
        )

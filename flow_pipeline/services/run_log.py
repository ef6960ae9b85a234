"""Agent run log - token usage, cost estimate and duration per job attempt."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flow_pipeline.models.run import AgentRun

log = structlog.get_logger(__name__)

# USD per million tokens: (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "gemini-3-flash-preview": (0.075, 0.30),
    "gemini-1.5-flash": (0.075, 0.30),
    "gemini-1.5-pro": (1.25, 5.00),
    "default": (0.10, 0.40),
}


def calculate_cost_estimate(model: str, tokens_in: int, tokens_out: int) -> float:
    """Estimated USD cost of one call, rounded to 6 decimals.

    Provider prefixes ("gemini/...") are ignored; unknown models use the
    default row.
    """
    name = model.rsplit("/", 1)[-1]
    price_in, price_out = MODEL_PRICING.get(name, MODEL_PRICING["default"])
    cost = (tokens_in / 1_000_000) * price_in + (tokens_out / 1_000_000) * price_out
    return round(cost, 6)


class RunLogger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_run(
        self,
        job_id: uuid.UUID,
        model: str,
        tokens_in: int | None,
        tokens_out: int | None,
        duration_ms: int,
    ) -> AgentRun:
        cost = (
            calculate_cost_estimate(model, tokens_in, tokens_out)
            if tokens_in and tokens_out
            else None
        )
        run = AgentRun(
            job_id=job_id,
            model=model,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            cost_estimate=cost,
            duration_ms=duration_ms,
        )
        self.db.add(run)
        await self.db.flush()
        log.info(
            "run.logged",
            job_id=str(job_id),
            model=model,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            cost_estimate=cost,
            duration_ms=duration_ms,
        )
        return run

    async def list_runs(self, job_id: uuid.UUID) -> list[AgentRun]:
        result = await self.db.execute(
            select(AgentRun).where(AgentRun.job_id == job_id).order_by(AgentRun.created_at)
        )
        return list(result.scalars().all())

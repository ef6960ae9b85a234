"""Job poller - waits for a dispatched job to reach a terminal status.

The poller is strictly read-only: it only issues GET /api/v1/jobs/{id}. When
its absolute budget runs out it reports "still running" and leaves the job
alone; the job may still finish later and is picked up on the next read.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from flow_pipeline.models.job import is_terminal

log = structlog.get_logger(__name__)

STILL_RUNNING_MESSAGE = (
    "The agent is still running. Check back in a minute; results will appear "
    "once the job completes."
)


class PollState(StrEnum):
    TERMINAL = "terminal"
    STILL_RUNNING = "still_running"


@dataclass
class PollOutcome:
    state: PollState
    job: dict[str, Any] | None
    polls: int
    message: str | None = None

    @property
    def status(self) -> str | None:
        return self.job["status"] if self.job else None


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code >= 500


def _still_running(job: dict[str, Any] | None) -> bool:
    return job is None or not is_terminal(job["status"])


class JobPoller:
    """Fixed-interval poller with an absolute time budget.

    Args:
        http: Client whose base_url points at the service
        interval: Seconds between polls
        budget: Absolute wall-clock budget in seconds
        sleep: Sleep coroutine (injectable for tests)
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        interval: float = 5.0,
        budget: float = 360.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._http = http
        self.interval = interval
        self.budget = budget
        self._sleep = sleep

    async def fetch(self, job_id: uuid.UUID | str) -> dict[str, Any]:
        response = await self._http.get(f"/api/v1/jobs/{job_id}")
        response.raise_for_status()
        return response.json()

    async def wait(self, job_id: uuid.UUID | str) -> PollOutcome:
        """Poll until the job is terminal or the budget elapses.

        Raises:
            httpx.HTTPStatusError: on a 4xx answer (e.g. unknown job)
        """
        last_job: dict[str, Any] | None = None
        polls = 0

        async def tick() -> dict[str, Any]:
            nonlocal last_job, polls
            polls += 1
            last_job = await self.fetch(job_id)
            return last_job

        def budget_exhausted(state: RetryCallState) -> None:
            return None

        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_transient) | retry_if_result(_still_running),
            wait=wait_fixed(self.interval),
            stop=stop_after_delay(self.budget),
            sleep=self._sleep,
            retry_error_callback=budget_exhausted,
        )
        job = await retrying(tick)

        if job is not None and is_terminal(job["status"]):
            log.info("poller.terminal", job_id=str(job_id), status=job["status"], polls=polls)
            return PollOutcome(state=PollState.TERMINAL, job=job, polls=polls)

        log.info("poller.budget_exhausted", job_id=str(job_id), polls=polls)
        return PollOutcome(
            state=PollState.STILL_RUNNING,
            job=last_job,
            polls=polls,
            message=STILL_RUNNING_MESSAGE,
        )

"""Tests for the job poller, using httpx.MockTransport."""

from __future__ import annotations

import uuid

import httpx
import pytest

from flow_pipeline.client.poller import STILL_RUNNING_MESSAGE, JobPoller, PollState

JOB_ID = str(uuid.uuid4())


def _job(status: str, **extra) -> dict:
    return {"id": JOB_ID, "status": status, "error": None, "output_artifact_id": None, **extra}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://svc")


def _sequence(*answers):
    """Handler returning the given answers in order, repeating the last one."""
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        answer = answers[min(len(calls), len(answers)) - 1]
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, int):
            return httpx.Response(answer, json={"detail": "error"})
        return httpx.Response(200, json=answer)

    return handler, calls


async def test_stops_at_first_terminal_status():
    handler, calls = _sequence(_job("running"), _job("running"), _job("done"))
    async with _client(handler) as http:
        outcome = await JobPoller(http, interval=0.01, budget=5).wait(JOB_ID)

    assert outcome.state == PollState.TERMINAL
    assert outcome.status == "done"
    assert outcome.polls == 3
    assert outcome.message is None
    assert all(r.method == "GET" and r.url.path == f"/api/v1/jobs/{JOB_ID}" for r in calls)


@pytest.mark.parametrize("status", ["done", "needs_approval", "failed"])
async def test_every_terminal_status_ends_polling(status):
    handler, _ = _sequence(_job(status))
    async with _client(handler) as http:
        outcome = await JobPoller(http, interval=0.01, budget=5).wait(JOB_ID)

    assert outcome.state == PollState.TERMINAL
    assert outcome.status == status
    assert outcome.polls == 1


async def test_budget_exhausted_reports_still_running():
    handler, calls = _sequence(_job("running"))
    async with _client(handler) as http:
        outcome = await JobPoller(http, interval=0.01, budget=0.1).wait(JOB_ID)

    assert outcome.state == PollState.STILL_RUNNING
    assert outcome.message == STILL_RUNNING_MESSAGE
    assert outcome.status == "running"
    assert outcome.polls == len(calls) > 1
    # Read-only: the poller never writes to the job
    assert {r.method for r in calls} == {"GET"}


async def test_transient_errors_are_retried():
    handler, _ = _sequence(
        httpx.ConnectError("connection refused"),
        503,
        _job("done"),
    )
    async with _client(handler) as http:
        outcome = await JobPoller(http, interval=0.01, budget=5).wait(JOB_ID)

    assert outcome.state == PollState.TERMINAL
    assert outcome.polls == 3


async def test_client_errors_propagate():
    handler, calls = _sequence(404)
    async with _client(handler) as http:
        with pytest.raises(httpx.HTTPStatusError):
            await JobPoller(http, interval=0.01, budget=5).wait(JOB_ID)

    assert len(calls) == 1


async def test_unreachable_service_until_budget():
    handler, _ = _sequence(httpx.ConnectError("connection refused"))
    async with _client(handler) as http:
        outcome = await JobPoller(http, interval=0.01, budget=0.1).wait(JOB_ID)

    assert outcome.state == PollState.STILL_RUNNING
    assert outcome.job is None
    assert outcome.status is None

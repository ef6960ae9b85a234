"""flow-pipeline CLI - operator toolkit for the agent pipeline service.

Commands::

    flow-pipeline serve [--host H] [--port P]     - Run the API with uvicorn
    flow-pipeline init-db                         - Create missing tables
    flow-pipeline run-stage <project> <agent>     - Create, dispatch and wait for a stage
    flow-pipeline job-status <job>                - Print one job as JSON

run-stage and job-status talk to a running service (--base-url, default
PUBLIC_BASE_URL).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import textwrap
import uuid

import httpx

from flow_pipeline.client.pipeline import PipelineClient
from flow_pipeline.client.poller import PollState
from flow_pipeline.config import get_settings
from flow_pipeline.core.errors import PreconditionError
from flow_pipeline.database import close_db, create_schema, init_db
from flow_pipeline.models.job import AgentType

_RESET = "\033[0m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RED = "\033[31m"


def _ok(msg: str) -> None:
    print(f"{_GREEN}  [OK]{_RESET}  {msg}")


def _warn(msg: str) -> None:
    print(f"{_YELLOW} [WARN]{_RESET} {msg}")


def _err(msg: str) -> None:
    print(f"{_RED}[ERROR]{_RESET} {msg}", file=sys.stderr)


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("flow_pipeline.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


async def _init_db() -> None:
    init_db(get_settings())
    try:
        await create_schema()
    finally:
        await close_db()


def cmd_init_db(args: argparse.Namespace) -> int:
    asyncio.run(_init_db())
    _ok("Schema created")
    return 0


async def _run_stage(args: argparse.Namespace) -> int:
    settings = get_settings()
    async with httpx.AsyncClient(base_url=args.base_url, timeout=30.0) as http:
        client = PipelineClient(
            http,
            poll_interval=settings.poll_interval_seconds,
            poll_budget=settings.poll_budget_seconds,
        )
        try:
            outcome = await client.run_stage(
                uuid.UUID(args.project_id), args.agent_type, channels=args.channel
            )
        except PreconditionError as exc:
            _err(str(exc))
            return 2

    if outcome.state == PollState.STILL_RUNNING:
        _warn(outcome.message or "Still running")
        return 0

    print(json.dumps(outcome.job, indent=2))
    if outcome.status == "failed":
        _err(outcome.job.get("error") or "Job failed")
        return 1
    _ok(f"Job {outcome.job['id']} finished with status {outcome.status}")
    return 0


def cmd_run_stage(args: argparse.Namespace) -> int:
    try:
        return asyncio.run(_run_stage(args))
    except httpx.HTTPError as exc:
        _err(f"Request failed: {exc}")
        return 1


async def _job_status(args: argparse.Namespace) -> int:
    async with httpx.AsyncClient(base_url=args.base_url, timeout=30.0) as http:
        job = await PipelineClient(http).job_status(uuid.UUID(args.job_id))
    print(json.dumps(job, indent=2))
    return 0


def cmd_job_status(args: argparse.Namespace) -> int:
    try:
        return asyncio.run(_job_status(args))
    except httpx.HTTPError as exc:
        _err(f"Request failed: {exc}")
        return 1


# ------------------------------------------------------------------ #
# Parser
# ------------------------------------------------------------------ #


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flow-pipeline",
        description="Flow agent pipeline operator CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(
            """\
            Examples:
              flow-pipeline init-db
              flow-pipeline serve --port 8000
              flow-pipeline run-stage <project-id> research
              flow-pipeline run-stage <project-id> content_planner --channel instagram --channel tiktok
              flow-pipeline job-status <job-id>
            """
        ),
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true", help="Auto-reload (dev)")

    subparsers.add_parser("init-db", help="Create missing database tables")

    default_base_url = get_settings().public_base_url

    run_parser = subparsers.add_parser("run-stage", help="Run one pipeline stage")
    run_parser.add_argument("project_id", help="Project UUID")
    run_parser.add_argument(
        "agent_type", choices=[a.value for a in AgentType], help="Stage to run"
    )
    run_parser.add_argument(
        "--channel",
        action="append",
        help="Active channel (repeatable; content_planner only)",
    )
    run_parser.add_argument("--base-url", default=default_base_url)

    status_parser = subparsers.add_parser("job-status", help="Show one job")
    status_parser.add_argument("job_id", help="Job UUID")
    status_parser.add_argument("--base-url", default=default_base_url)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the flow-pipeline CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        return cmd_serve(args)
    elif args.command == "init-db":
        return cmd_init_db(args)
    elif args.command == "run-stage":
        return cmd_run_stage(args)
    elif args.command == "job-status":
        return cmd_job_status(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())

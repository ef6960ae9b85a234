"""Read-through cache of per-project state for clients.

A snapshot is loaded on first access and served from memory until it is
explicitly invalidated. Callers invalidate after every successful dispatch
and whenever polling observes a terminal status.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

log = structlog.get_logger(__name__)


@dataclass
class ProjectSnapshot:
    project: dict[str, Any]
    artifacts: list[dict[str, Any]] = field(default_factory=list)  # most recent first
    jobs: list[dict[str, Any]] = field(default_factory=list)  # most recent first

    def latest_artifact(self, types: Iterable[str]) -> dict[str, Any] | None:
        wanted = set(types)
        return next((a for a in self.artifacts if a["type"] in wanted), None)


SnapshotLoader = Callable[[uuid.UUID], Awaitable[ProjectSnapshot]]


class ProjectCache:
    def __init__(self, loader: SnapshotLoader) -> None:
        self._loader = loader
        self._entries: dict[uuid.UUID, ProjectSnapshot] = {}

    def __contains__(self, project_id: uuid.UUID) -> bool:
        return project_id in self._entries

    async def get(self, project_id: uuid.UUID) -> ProjectSnapshot:
        snapshot = self._entries.get(project_id)
        if snapshot is None:
            snapshot = await self._loader(project_id)
            self._entries[project_id] = snapshot
            log.debug("project_cache.loaded", project_id=str(project_id))
        return snapshot

    def invalidate(self, project_id: uuid.UUID) -> None:
        if self._entries.pop(project_id, None) is not None:
            log.debug("project_cache.invalidated", project_id=str(project_id))

"""Local file storage for binary artifacts (rendered decks).

Binary artifacts are stored as ``binary_reference`` rows whose ``file_url``
points at GET /api/v1/files/{key}; the bytes live under
ARTIFACT_STORAGE_DIR.
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from flow_pipeline.config import Settings

log = structlog.get_logger(__name__)


class LocalFileStorage:
    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> LocalFileStorage:
        return cls(settings.artifact_storage_dir, settings.public_base_url)

    def resolve(self, key: str) -> Path:
        """Map a storage key to a path under the root.

        Raises:
            ValueError: if the key escapes the storage root
        """
        path = (self.root / key).resolve()
        if path == self.root or not path.is_relative_to(self.root):
            raise ValueError(f"Invalid storage key: {key!r}")
        return path

    def check_writable(self) -> None:
        """Raise OSError unless the storage root is a directory this process can write."""
        self.root.mkdir(parents=True, exist_ok=True)
        if not os.access(self.root, os.W_OK):
            raise PermissionError(f"Storage root {self.root} is not writable")

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/api/v1/files/{key}"

    def save(self, key: str, data: bytes) -> str:
        """Write ``data`` under ``key`` and return its public URL."""
        path = self.resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        log.info("file_storage.saved", key=key, size=len(data))
        return self.url_for(key)

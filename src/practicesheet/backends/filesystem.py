"""FilesystemBackend: keep snapshots as JSON files in a directory."""

from __future__ import annotations

import os
from pathlib import Path

from practicesheet.backends.protocol import SnapshotBackend
from practicesheet.errors import PersistenceError
from practicesheet.logging import get_logger

logger = get_logger(__name__)


class FilesystemBackend(SnapshotBackend):
    """Backend storing each key as `<root_dir>/<key>.json`."""

    def __init__(self, root_dir: str | Path, key: str) -> None:
        """Initialize filesystem backend.

        Args:
            root_dir: Directory holding the snapshot files; created on first write.
            key: Storage key of the snapshot.
        """
        super().__init__(key)
        self.root = Path(root_dir).resolve()

    def _resolve_path(self, key: str) -> Path:
        """Resolve a key to a file path with security checks."""
        if "/" in key or "\\" in key or key.startswith(".") or ".." in key:
            raise PersistenceError(f"Invalid snapshot key {key!r}")
        full = (self.root / f"{key}.json").resolve()
        try:
            full.relative_to(self.root)
        except ValueError:
            raise PersistenceError(f"Path {full} outside root directory {self.root}") from None
        return full

    def get(self, key: str) -> str | None:
        resolved_path = self._resolve_path(key)
        if not resolved_path.exists():
            return None

        try:
            fd = os.open(resolved_path, os.O_RDONLY | getattr(os, "O_NOFOLLOW", 0))
            with os.fdopen(fd, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Error reading snapshot '{resolved_path}': {e}") from e

    def put(self, key: str, value: str) -> None:
        resolved_path = self._resolve_path(key)
        tmp_path = resolved_path.with_name(f".{resolved_path.name}.tmp")

        try:
            resolved_path.parent.mkdir(parents=True, exist_ok=True)
            flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
            if hasattr(os, "O_NOFOLLOW"):
                flags |= os.O_NOFOLLOW
            fd = os.open(tmp_path, flags, 0o644)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            # Readers never see a half-written snapshot.
            os.replace(tmp_path, resolved_path)
        except (OSError, UnicodeEncodeError) as e:
            raise PersistenceError(f"Error writing snapshot '{resolved_path}': {e}") from e

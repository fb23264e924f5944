"""Snapshot backends for the practice sheet.

Each backend is a key-value store holding the serialized tree under one key.
"""

from __future__ import annotations

from practicesheet.backends.filesystem import FilesystemBackend
from practicesheet.backends.memory import MemoryBackend
from practicesheet.backends.protocol import SnapshotBackend
from practicesheet.backends.redis_store import RedisBackend
from practicesheet.config import Settings


def build_backend(settings: Settings) -> SnapshotBackend:
    """Create the backend selected by `settings.storage_backend`."""

    if settings.storage_backend == "memory":
        return MemoryBackend(settings.storage_key)
    if settings.storage_backend == "redis":
        return RedisBackend(
            settings.redis_url,
            settings.storage_key,
            key_prefix=settings.redis_key_prefix,
        )
    return FilesystemBackend(settings.storage_dir, settings.storage_key)


__all__ = [
    "FilesystemBackend",
    "MemoryBackend",
    "RedisBackend",
    "SnapshotBackend",
    "build_backend",
]

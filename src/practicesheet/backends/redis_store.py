"""Redis-based snapshot backend.

This is optional and complements the filesystem backend. It lets several processes (CLI, API
server) share one sheet without reading local disk.
"""

from __future__ import annotations

from typing import Any

import redis

from practicesheet.backends.protocol import SnapshotBackend
from practicesheet.errors import PersistenceError


class RedisBackend(SnapshotBackend):
    """Backend storing each key as a Redis string."""

    def __init__(
        self,
        redis_url: str,
        key: str,
        *,
        key_prefix: str = "practicesheet",
        client: Any | None = None,
    ) -> None:
        super().__init__(key)
        self.key_prefix = key_prefix
        self._client = client if client is not None else redis.Redis.from_url(redis_url, decode_responses=True)

    def _redis_key(self, key: str) -> str:
        return f"{self.key_prefix}:sheet:{key}"

    def get(self, key: str) -> str | None:
        try:
            value = self._client.get(self._redis_key(key))
        except redis.RedisError as e:
            raise PersistenceError(f"Error reading snapshot {key!r} from Redis: {e}") from e
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def put(self, key: str, value: str) -> None:
        try:
            self._client.set(self._redis_key(key), value)
        except redis.RedisError as e:
            raise PersistenceError(f"Error writing snapshot {key!r} to Redis: {e}") from e

"""ID utilities."""

from __future__ import annotations

import itertools
import re
import threading
from uuid import uuid4

_WS_RE = re.compile(r"\s+")


class IdFactory:
    """Generate ids for topics, subtopics and questions created at runtime.

    Ids combine a per-factory random token with a monotonic counter, so two creations in the same
    clock tick still get distinct ids, and ids from different processes do not collide.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token or uuid4().hex[:12]
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def new(self, prefix: str) -> str:
        """Return a fresh id such as ``topic-3f2a9c01b4de-0001``."""

        with self._lock:
            n = next(self._counter)
        return format_id(prefix, self._token, n)


def format_id(prefix: str, token: str, n: int) -> str:
    """Format a counter value to an id."""

    return f"{prefix}-{token}-{n:04d}"


def slugify(text: str) -> str:
    """Lowercase and join whitespace runs with ``-``."""

    return _WS_RE.sub("-", text.strip().lower())


def topic_id_for(name: str) -> str:
    """Deterministic id for a topic materialized from a source payload."""

    return f"topic-{slugify(name)}"


def subtopic_id_for(topic_name: str, subtopic_name: str) -> str:
    """Deterministic id for a subtopic materialized from a source payload."""

    return f"subtopic-{slugify(topic_name)}-{slugify(subtopic_name)}"

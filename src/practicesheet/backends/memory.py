"""In-process snapshot backend, used by tests and the `memory` storage setting."""

from __future__ import annotations

from practicesheet.backends.protocol import SnapshotBackend


class MemoryBackend(SnapshotBackend):
    """Backend keeping values in a dict for the lifetime of the process."""

    def __init__(self, key: str = "codolio-sheet-data") -> None:
        super().__init__(key)
        self.values: dict[str, str] = {}
        self.writes = 0

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def put(self, key: str, value: str) -> None:
        self.values[key] = value
        self.writes += 1

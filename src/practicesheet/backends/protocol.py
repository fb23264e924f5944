"""Protocol definitions for pluggable snapshot backends."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import ValidationError as PydanticValidationError

from practicesheet.errors import PersistenceError
from practicesheet.logging import get_logger, log_exception
from practicesheet.models.sheet import TREE_ADAPTER, Tree

logger = get_logger(__name__)


class SnapshotBackend(ABC):
    """Key-value store holding the serialized tree under a fixed key.

    Subclasses implement raw `get`/`put` and raise :class:`PersistenceError` on failure.
    `save` and `load` are best-effort on top of them: they log failures instead of raising.
    """

    def __init__(self, key: str) -> None:
        if not key:
            raise ValueError("Snapshot key must not be empty")
        self.key = key

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under `key`, or None."""

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous value."""

    def save(self, tree: Tree) -> None:
        """Write a full snapshot of `tree`. Never raises."""

        payload = TREE_ADAPTER.dump_json(tree, by_alias=True).decode("utf-8")
        try:
            self.put(self.key, payload)
        except PersistenceError:
            log_exception(logger, "Saving snapshot failed", key=self.key, topics=len(tree))
            return
        logger.debug("Saved snapshot %s (%d topics)", self.key, len(tree))

    def load(self) -> Tree | None:
        """Read the last snapshot; None when absent or unreadable."""

        try:
            raw = self.get(self.key)
        except PersistenceError:
            log_exception(logger, "Reading snapshot failed", key=self.key)
            return None
        if raw is None:
            return None
        try:
            return TREE_ADAPTER.validate_json(raw)
        except PydanticValidationError:
            log_exception(logger, "Discarding undecodable snapshot", key=self.key)
            return None

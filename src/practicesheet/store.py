"""Tree store.

The store is the only owner of the canonical tree. Every operation runs under one lock, computes a
new tree with :mod:`practicesheet.tree_ops` and commits it; a commit replaces the in-memory tree
and writes a full snapshot to the backend. Snapshot writes are best-effort: a failed write is
logged and the in-memory tree stays authoritative for the rest of the process.
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
from collections.abc import Iterator, Mapping
from typing import Any

from practicesheet import tree_ops
from practicesheet.backends import SnapshotBackend, build_backend
from practicesheet.config import Settings
from practicesheet.errors import TransportError, ValidationError
from practicesheet.fetcher import SheetFetcher
from practicesheet.logging import get_logger, operation_context
from practicesheet.models.sheet import (
    DEFAULT_SUBTOPIC_TITLE,
    Question,
    QuestionDraft,
    QuestionPatch,
    SubTopic,
    Topic,
    Tree,
)
from practicesheet.progress import Progress, topic_progress
from practicesheet.transform import WarningReporter, transform
from practicesheet.utils.ids import IdFactory

logger = get_logger(__name__)


class TreeStore:
    """Canonical topic tree with persisted, serialized mutations."""

    def __init__(
        self,
        backend: SnapshotBackend,
        *,
        fetcher: SheetFetcher | None = None,
        ids: IdFactory | None = None,
        sheet_url: str | None = None,
        on_warning: WarningReporter | None = None,
    ) -> None:
        self._backend = backend
        self._fetcher = fetcher
        self._ids = ids or IdFactory()
        self._sheet_url = sheet_url
        self._on_warning = on_warning

        self._lock = threading.RLock()
        self._topics: Tree = ()
        self._generation = 0
        self._is_loading = False
        self._error: str | None = None

    # State

    @property
    def topics(self) -> Tree:
        return self._topics

    @property
    def is_loading(self) -> bool:
        """True while a :meth:`load_from` fetch is in flight."""

        return self._is_loading

    @property
    def error(self) -> str | None:
        """Message of the last failed load, cleared by the next successful one."""

        return self._error

    @contextlib.contextmanager
    def _mutating(self, op: str) -> Iterator[None]:
        with self._lock, operation_context(op=op, sheet=self._backend.key):
            yield

    def _commit(self, tree: Tree) -> None:
        self._topics = tree
        self._backend.save(tree)

    # Loading

    def initialize(self) -> Tree:
        """Restore the persisted snapshot, or start from an empty tree."""

        with self._mutating("initialize"):
            stored = self._backend.load()
            self._topics = stored if stored is not None else ()
            logger.info("Initialized with %d topics", len(self._topics))
            return self._topics

    def load(self, payload: Any) -> Tree:
        """Replace the tree with the transform of `payload` and persist it.

        Raises:
            ValidationError: If the payload is malformed; the current tree is kept.
        """

        with self._mutating("load"):
            # An explicit load supersedes any fetch still in flight.
            self._generation += 1
            self._is_loading = False
            try:
                tree = transform(payload, on_warning=self._on_warning)
            except ValidationError as exc:
                self._error = str(exc)
                raise
            self._error = None
            self._commit(tree)
            return tree

    def load_from(self, url: str | None = None) -> Tree:
        """Fetch a payload from the sheet source and load it.

        The fetch runs outside the store lock, so mutations are not blocked by the network. When
        another load starts before this one finishes, this one's result is discarded on arrival and
        the current tree is returned unchanged.

        Raises:
            TransportError: If the fetch fails; the current tree is kept.
            ValidationError: If the fetched payload is malformed; the current tree is kept.
        """

        source = url or self._sheet_url
        if not source:
            raise ValueError("No sheet url given and none configured (PRACTICESHEET_SHEET_URL)")
        if self._fetcher is None:
            raise RuntimeError("This store has no sheet fetcher")

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._is_loading = True
            self._error = None

        with operation_context(op="load_from", sheet=source):
            try:
                tree = transform(self._fetcher.fetch(source), on_warning=self._on_warning)
            except (TransportError, ValidationError) as exc:
                with self._lock:
                    if generation == self._generation:
                        self._error = str(exc)
                raise
            finally:
                with self._lock:
                    if generation == self._generation:
                        self._is_loading = False

            with self._lock:
                if generation != self._generation:
                    logger.info("Discarding superseded load of %s", source)
                    return self._topics
                self._commit(tree)
                return tree

    async def load_from_async(self, url: str | None = None) -> Tree:
        """Async variant of :meth:`load_from`."""

        return await asyncio.to_thread(self.load_from, url)

    def replace(self, tree: Tree) -> None:
        """Replace the whole tree."""

        with self._mutating("replace"):
            self._commit(tuple(tree))

    # Topics

    def add_topic(self, title: str) -> Topic:
        """Append a topic with one empty "General" subtopic."""

        with self._mutating("add_topic"):
            topic = Topic(
                id=self._ids.new("topic"),
                title=title,
                sub_topics=(SubTopic(id=self._ids.new("subtopic"), title=DEFAULT_SUBTOPIC_TITLE),),
            )
            self._commit(tree_ops.append_topic(self._topics, topic))
            return topic

    def update_topic(self, topic_id: str, title: str) -> None:
        with self._mutating("update_topic"):
            self._commit(tree_ops.rename_topic(self._topics, topic_id, title))

    def delete_topic(self, topic_id: str) -> None:
        with self._mutating("delete_topic"):
            self._commit(tree_ops.remove_topic(self._topics, topic_id))

    def reorder_topics(self, from_index: int, to_index: int) -> None:
        with self._mutating("reorder_topics"):
            self._commit(tree_ops.move_topic(self._topics, from_index, to_index))

    # Subtopics

    def add_subtopic(self, topic_id: str, title: str) -> SubTopic | None:
        """Append a subtopic; returns None (and changes nothing) for an unknown topic."""

        with self._mutating("add_subtopic"):
            subtopic = SubTopic(id=self._ids.new("subtopic"), title=title)
            tree = tree_ops.append_subtopic(self._topics, topic_id, subtopic)
            self._commit(tree)
            return subtopic if tree_ops.find_topic(tree, topic_id) is not None else None

    def update_subtopic(self, topic_id: str, subtopic_id: str, title: str) -> None:
        with self._mutating("update_subtopic"):
            self._commit(tree_ops.rename_subtopic(self._topics, topic_id, subtopic_id, title))

    def delete_subtopic(self, topic_id: str, subtopic_id: str) -> None:
        with self._mutating("delete_subtopic"):
            self._commit(tree_ops.remove_subtopic(self._topics, topic_id, subtopic_id))

    def reorder_subtopics(self, topic_id: str, from_index: int, to_index: int) -> None:
        with self._mutating("reorder_subtopics"):
            if tree_ops.find_topic(self._topics, topic_id) is None:
                logger.debug("Ignoring reorder in unknown topic %s", topic_id)
                return
            self._commit(tree_ops.move_subtopic(self._topics, topic_id, from_index, to_index))

    # Questions

    def add_question(
        self,
        topic_id: str,
        subtopic_id: str,
        data: QuestionDraft | Mapping[str, Any] | None = None,
    ) -> Question | None:
        """Append a question; unset fields take the question defaults.

        Returns None (and changes nothing) when the subtopic does not exist.
        """

        draft = data if isinstance(data, QuestionDraft) else QuestionDraft.model_validate(dict(data or {}))
        with self._mutating("add_question"):
            question = Question(id=self._ids.new("question"), **draft.changes())
            tree = tree_ops.append_question(self._topics, topic_id, subtopic_id, question)
            self._commit(tree)
            if tree_ops.find_subtopic(tree, topic_id, subtopic_id) is None:
                return None
            return question

    def update_question(
        self,
        topic_id: str,
        subtopic_id: str,
        question_id: str,
        patch: QuestionPatch | Mapping[str, Any],
    ) -> None:
        """Overwrite the fields present in `patch`; other fields are kept."""

        changes = patch if isinstance(patch, QuestionPatch) else QuestionPatch.model_validate(dict(patch))
        with self._mutating("update_question"):
            self._commit(
                tree_ops.patch_question(self._topics, topic_id, subtopic_id, question_id, changes.changes())
            )

    def delete_question(self, topic_id: str, subtopic_id: str, question_id: str) -> None:
        with self._mutating("delete_question"):
            self._commit(tree_ops.remove_question(self._topics, topic_id, subtopic_id, question_id))

    def toggle_question_solved(self, topic_id: str, subtopic_id: str, question_id: str) -> bool | None:
        """Flip the solved flag; returns the new value, or None for an unknown question."""

        with self._mutating("toggle_question_solved"):
            question = tree_ops.find_question(self._topics, topic_id, subtopic_id, question_id)
            if question is None:
                logger.debug("Ignoring toggle of unknown question %s", question_id)
                return None
            solved = not question.solved
            self._commit(
                tree_ops.patch_question(self._topics, topic_id, subtopic_id, question_id, {"solved": solved})
            )
            return solved

    def reorder_questions(self, topic_id: str, subtopic_id: str, from_index: int, to_index: int) -> None:
        with self._mutating("reorder_questions"):
            if tree_ops.find_subtopic(self._topics, topic_id, subtopic_id) is None:
                logger.debug("Ignoring reorder in unknown subtopic %s", subtopic_id)
                return
            self._commit(tree_ops.move_question(self._topics, topic_id, subtopic_id, from_index, to_index))

    # Reporting

    def progress(self) -> dict[str, Progress]:
        """Per-topic progress keyed by topic id, in topic order."""

        tree = self._topics
        return {topic.id: topic_progress(topic) for topic in tree}


def build_store(settings: Settings, *, initialize: bool = True) -> TreeStore:
    """Compose a store from settings: backend, fetcher and default sheet url."""

    store = TreeStore(
        build_backend(settings),
        fetcher=SheetFetcher(settings),
        sheet_url=settings.sheet_url,
    )
    if initialize:
        store.initialize()
    return store

"""Tests for the tree store."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from conftest import make_payload, make_record
from practicesheet.backends import MemoryBackend
from practicesheet.config import Settings
from practicesheet.errors import PersistenceError, ReorderIndexError, TransportError, ValidationError
from practicesheet.fetcher import SheetFetcher
from practicesheet.models.sheet import TREE_ADAPTER, Difficulty
from practicesheet.store import TreeStore
from practicesheet.utils.ids import IdFactory


class FakeFetcher:
    """Serve canned payloads by url; urls in `blocked` wait for `release`."""

    def __init__(self, payloads: dict[str, Any], blocked: set[str] | None = None) -> None:
        self.payloads = payloads
        self.blocked = blocked or set()
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls: list[str] = []

    def fetch(self, url: str) -> Any:
        self.calls.append(url)
        if url in self.blocked:
            self.started.set()
            self.release.wait(timeout=5)
        payload = self.payloads[url]
        if isinstance(payload, Exception):
            raise payload
        return payload


class BrokenBackend(MemoryBackend):
    def put(self, key: str, value: str) -> None:
        raise PersistenceError("disk full")


def _persisted(backend: MemoryBackend) -> Any:
    return TREE_ADAPTER.validate_json(backend.values[backend.key])


def test_dp_scenario(store: TreeStore, backend: MemoryBackend) -> None:
    """It should add, fill, toggle and delete a topic, persisting each step."""

    topic = store.add_topic("DP")
    assert len(store.topics) == 1
    assert store.topics[0].title == "DP"
    assert [s.title for s in store.topics[0].sub_topics] == ["General"]
    assert store.topics[0].sub_topics[0].questions == ()

    subtopic_id = store.topics[0].sub_topics[0].id
    question = store.add_question(topic.id, subtopic_id, {"title": "LIS", "difficulty": "Medium"})
    assert question is not None
    stored = store.topics[0].sub_topics[0].questions[0]
    assert stored.title == "LIS"
    assert stored.difficulty == Difficulty.MEDIUM
    assert stored.platform == "Unknown"
    assert stored.solved is False

    assert store.toggle_question_solved(topic.id, subtopic_id, question.id) is True
    assert store.topics[0].sub_topics[0].questions[0].solved is True
    assert _persisted(backend) == store.topics

    store.delete_topic(topic.id)
    assert store.topics == ()
    assert _persisted(backend) == ()
    assert backend.writes == 4


def test_sibling_ids_are_unique(store: TreeStore) -> None:
    """It should never hand out the same id twice, even in a tight loop."""

    topics = [store.add_topic("Same") for _ in range(50)]
    topic = topics[0]
    subtopics = [store.add_subtopic(topic.id, "Same") for _ in range(50)]
    general_id = topic.sub_topics[0].id
    questions = [store.add_question(topic.id, general_id) for _ in range(50)]

    assert len({t.id for t in store.topics}) == 50
    assert len({s.id for s in store.topics[0].sub_topics}) == 51
    assert len({q.id for q in store.topics[0].sub_topics[0].questions}) == 50
    assert all(s is not None for s in subtopics)
    assert all(q is not None for q in questions)


def test_ids_do_not_collide_across_factories() -> None:
    a, b = IdFactory(), IdFactory()

    assert a.new("topic") != b.new("topic")


def test_add_question_defaults(store: TreeStore) -> None:
    """It should apply the question defaults to unset or empty fields."""

    topic = store.add_topic("T")
    question = store.add_question(topic.id, topic.sub_topics[0].id, {"title": "", "platform": ""})

    assert question is not None
    assert question.title == "Untitled Question"
    assert question.link == ""
    assert question.difficulty == Difficulty.EASY
    assert question.platform == "Unknown"


def test_add_to_unknown_parent_returns_none(store: TreeStore) -> None:
    topic = store.add_topic("T")

    assert store.add_subtopic("nope", "X") is None
    assert store.add_question(topic.id, "nope", {"title": "X"}) is None
    assert store.topics[0].sub_topics[0].questions == ()


def test_update_question_keeps_unpatched_fields(store: TreeStore) -> None:
    topic = store.add_topic("T")
    sid = topic.sub_topics[0].id
    question = store.add_question(topic.id, sid, {"title": "Q", "link": "https://a", "platform": "cf"})
    assert question is not None

    store.update_question(topic.id, sid, question.id, {"title": "Q2"})

    updated = store.topics[0].sub_topics[0].questions[0]
    assert updated.title == "Q2"
    assert updated.link == "https://a"
    assert updated.platform == "cf"


def test_double_toggle_restores_state(store: TreeStore) -> None:
    topic = store.add_topic("T")
    sid = topic.sub_topics[0].id
    question = store.add_question(topic.id, sid, {"solved": True})
    assert question is not None

    store.toggle_question_solved(topic.id, sid, question.id)
    store.toggle_question_solved(topic.id, sid, question.id)

    assert store.topics[0].sub_topics[0].questions[0].solved is True


def test_unknown_ids_are_tolerated(store: TreeStore, backend: MemoryBackend) -> None:
    """It should not raise for unknown ids; toggles and scoped reorders skip the write."""

    store.add_topic("T")
    before = store.topics
    writes = backend.writes

    store.update_topic("nope", "X")
    store.delete_topic("nope")
    store.update_subtopic("nope", "nope", "X")
    store.delete_question("nope", "nope", "nope")
    assert store.topics == before
    assert backend.writes == writes + 4

    assert store.toggle_question_solved("nope", "nope", "nope") is None
    store.reorder_subtopics("nope", 0, 9)
    store.reorder_questions("nope", "nope", 0, 9)
    assert backend.writes == writes + 4


def test_reorders(store: TreeStore) -> None:
    a, b, c = (store.add_topic(name) for name in "ABC")
    store.add_subtopic(a.id, "Second")
    general_id = a.sub_topics[0].id
    for title in ("x", "y", "z"):
        store.add_question(a.id, general_id, {"title": title})

    store.reorder_topics(2, 0)
    store.reorder_subtopics(a.id, 1, 0)
    store.reorder_questions(a.id, general_id, 0, 2)

    assert [t.title for t in store.topics] == ["C", "A", "B"]
    topic_a = store.topics[1]
    assert [s.title for s in topic_a.sub_topics] == ["Second", "General"]
    assert [q.title for q in topic_a.sub_topics[1].questions] == ["y", "z", "x"]
    assert {t.id for t in store.topics} == {a.id, b.id, c.id}


def test_out_of_range_reorder_raises_and_keeps_tree(store: TreeStore, backend: MemoryBackend) -> None:
    store.add_topic("A")
    before = store.topics
    writes = backend.writes

    with pytest.raises(ReorderIndexError):
        store.reorder_topics(0, 1)

    assert store.topics == before
    assert backend.writes == writes


def test_delete_subtopic_cascades(store: TreeStore) -> None:
    topic = store.add_topic("T")
    sid = topic.sub_topics[0].id
    store.add_question(topic.id, sid, {"title": "gone"})

    store.delete_subtopic(topic.id, sid)

    assert store.topics[0].sub_topics == ()


def test_initialize_restores_snapshot(backend: MemoryBackend) -> None:
    """It should start from the persisted snapshot when one exists."""

    first = TreeStore(backend)
    assert first.initialize() == ()
    first.add_topic("Kept")

    second = TreeStore(backend)
    assert [t.title for t in second.initialize()] == ["Kept"]


def test_failed_write_does_not_abort_mutation(caplog: pytest.LogCaptureFixture) -> None:
    """It should log the persistence failure and keep the in-memory result."""

    store = TreeStore(BrokenBackend())

    with caplog.at_level("ERROR"):
        store.add_topic("Still here")

    assert [t.title for t in store.topics] == ["Still here"]
    assert "Saving snapshot failed" in caplog.text


def test_load_replaces_tree_and_persists(store: TreeStore, backend: MemoryBackend, sample_payload: Any) -> None:
    store.add_topic("Old")

    tree = store.load(sample_payload)

    assert store.topics == tree
    assert [t.title for t in tree] == ["Arrays", "Graphs", "Strings"]
    assert _persisted(backend) == tree
    assert store.error is None


def test_load_rejects_malformed_payload(store: TreeStore, backend: MemoryBackend) -> None:
    """It should keep the prior tree and record the error."""

    store.add_topic("Old")
    before = store.topics
    writes = backend.writes

    with pytest.raises(ValidationError):
        store.load({"data": {"sheet": {}}})

    assert store.topics == before
    assert backend.writes == writes
    assert store.error is not None


def test_load_from_uses_fetcher(backend: MemoryBackend, sample_payload: Any) -> None:
    fetcher = FakeFetcher({"https://sheet": sample_payload})
    store = TreeStore(backend, fetcher=fetcher, sheet_url="https://sheet")  # type: ignore[arg-type]

    tree = store.load_from()

    assert fetcher.calls == ["https://sheet"]
    assert store.topics == tree
    assert store.is_loading is False


def test_load_from_transport_error_keeps_tree(backend: MemoryBackend) -> None:
    fetcher = FakeFetcher({"https://down": TransportError("boom", url="https://down", status_code=503)})
    store = TreeStore(backend, fetcher=fetcher)  # type: ignore[arg-type]
    store.add_topic("Old")
    before = store.topics

    with pytest.raises(TransportError):
        store.load_from("https://down")

    assert store.topics == before
    assert store.is_loading is False
    assert store.error == "boom"


def test_load_from_requires_url(store: TreeStore) -> None:
    with pytest.raises(ValueError):
        store.load_from()


def test_superseded_load_is_discarded(backend: MemoryBackend) -> None:
    """It should drop the result of an older load that finishes after a newer one."""

    slow = make_payload(["Slow"], [], [])
    fast = make_payload(["Fast"], ["q1"], [make_record("q1", "Fast")])
    fetcher = FakeFetcher({"https://slow": slow, "https://fast": fast}, blocked={"https://slow"})
    store = TreeStore(backend, fetcher=fetcher)  # type: ignore[arg-type]
    results: list[Any] = []

    worker = threading.Thread(target=lambda: results.append(store.load_from("https://slow")))
    worker.start()
    assert fetcher.started.wait(timeout=5)
    assert store.is_loading is True

    store.load_from("https://fast")
    fetcher.release.set()
    worker.join(timeout=5)

    assert [t.title for t in store.topics] == ["Fast"]
    assert results == [store.topics]
    assert [t.title for t in _persisted(backend)] == ["Fast"]


def test_concurrent_toggles_are_serialized(store: TreeStore, backend: MemoryBackend) -> None:
    """It should not lose toggles when many threads flip the same question."""

    topic = store.add_topic("T")
    sid = topic.sub_topics[0].id
    question = store.add_question(topic.id, sid)
    assert question is not None
    writes = backend.writes

    def flip() -> None:
        for _ in range(25):
            store.toggle_question_solved(topic.id, sid, question.id)

    threads = [threading.Thread(target=flip) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.topics[0].sub_topics[0].questions[0].solved is False
    assert backend.writes == writes + 200


def test_progress(store: TreeStore, sample_payload: Any) -> None:
    store.load(sample_payload)

    progress = store.progress()

    assert list(progress) == [t.id for t in store.topics]
    arrays = progress["topic-arrays"]
    assert (arrays.solved, arrays.total) == (1, 3)
    assert round(arrays.percent, 1) == 33.3
    assert progress["topic-strings"].percent == 0.0


def test_load_from_unusable_url_clears_loading(backend: MemoryBackend) -> None:
    """It should report an unusable url as a TransportError and stop loading."""

    store = TreeStore(backend, fetcher=SheetFetcher(Settings(storage_backend="memory", http_max_retries=0)))

    with pytest.raises(TransportError):
        store.load_from("http://example.com:abc/sheet")

    assert store.is_loading is False
    assert store.error is not None
    assert store.topics == ()


def test_load_from_unexpected_error_clears_loading(backend: MemoryBackend) -> None:
    fetcher = FakeFetcher({"https://sheet": RuntimeError("bug")})
    store = TreeStore(backend, fetcher=fetcher)  # type: ignore[arg-type]

    with pytest.raises(RuntimeError):
        store.load_from("https://sheet")

    assert store.is_loading is False

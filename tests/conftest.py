"""Shared fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from practicesheet.backends import MemoryBackend
from practicesheet.store import TreeStore
from practicesheet.utils.ids import IdFactory


def make_record(
    _id: str,
    topic: str,
    *,
    sub_topic: str | None = None,
    title: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build one flat source record."""

    record: dict[str, Any] = {"_id": _id, "topic": topic, "subTopic": sub_topic}
    if title is not None:
        record["title"] = title
    record.update(extra)
    return record


def make_payload(
    topic_order: list[str],
    question_order: list[str],
    questions: list[dict[str, Any]],
    *,
    envelope: bool = True,
) -> dict[str, Any]:
    """Build a sheet payload, wrapped in the `{status, data}` envelope by default."""

    body = {
        "sheet": {"config": {"topicOrder": topic_order, "questionOrder": question_order}},
        "questions": questions,
    }
    if envelope:
        return {"status": {"code": 200, "success": True}, "data": body}
    return body


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    return make_payload(
        ["Arrays", "Graphs", "Strings"],
        ["q1", "q2", "q3", "q4"],
        [
            make_record(
                "q1",
                "Arrays",
                sub_topic="Two Pointers",
                questionId={
                    "name": "Two Sum II",
                    "difficulty": "Medium",
                    "problemUrl": "https://leetcode.com/problems/two-sum-ii",
                    "platform": "leetcode",
                },
            ),
            make_record("q2", "Arrays", title="Kadane", resource="https://example.com/kadane", isSolved=True),
            make_record("q3", "Graphs", sub_topic="BFS", questionId={"name": "Rotting Oranges", "difficulty": "hard"}),
            make_record("q4", "Arrays", sub_topic="Two Pointers", questionId={"name": "3Sum"}),
        ],
    )


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend: MemoryBackend) -> TreeStore:
    return TreeStore(backend, ids=IdFactory(token="test"))

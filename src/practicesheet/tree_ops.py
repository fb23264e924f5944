"""Pure tree operations.

Every function takes a tree and returns a new one; nothing here touches storage. Unknown ids leave
the tree unchanged. Only index-based moves validate strictly.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from practicesheet.errors import ReorderIndexError
from practicesheet.models.sheet import Question, SubTopic, Topic, Tree

T = TypeVar("T")


def reorder(items: tuple[T, ...], from_index: int, to_index: int) -> tuple[T, ...]:
    """Move the item at `from_index` so that it ends up at `to_index`.

    This is a remove-then-insert move, not a swap: items between the two positions shift by one.

    Raises:
        ReorderIndexError: If either index is outside ``[0, len(items))``.
    """

    size = len(items)
    for name, index in (("from_index", from_index), ("to_index", to_index)):
        if not 0 <= index < size:
            raise ReorderIndexError(f"{name}={index} is out of range for {size} item(s)")

    moved = list(items)
    item = moved.pop(from_index)
    moved.insert(to_index, item)
    return tuple(moved)


def find_topic(tree: Tree, topic_id: str) -> Topic | None:
    return next((t for t in tree if t.id == topic_id), None)


def find_subtopic(tree: Tree, topic_id: str, subtopic_id: str) -> SubTopic | None:
    topic = find_topic(tree, topic_id)
    if topic is None:
        return None
    return next((s for s in topic.sub_topics if s.id == subtopic_id), None)


def find_question(tree: Tree, topic_id: str, subtopic_id: str, question_id: str) -> Question | None:
    subtopic = find_subtopic(tree, topic_id, subtopic_id)
    if subtopic is None:
        return None
    return next((q for q in subtopic.questions if q.id == question_id), None)


def _map_topic(tree: Tree, topic_id: str, fn: Callable[[Topic], Topic]) -> Tree:
    return tuple(fn(t) if t.id == topic_id else t for t in tree)


def _map_subtopic(tree: Tree, topic_id: str, subtopic_id: str, fn: Callable[[SubTopic], SubTopic]) -> Tree:
    def update(topic: Topic) -> Topic:
        subtopics = tuple(fn(s) if s.id == subtopic_id else s for s in topic.sub_topics)
        return topic.model_copy(update={"sub_topics": subtopics})

    return _map_topic(tree, topic_id, update)


# Topics


def append_topic(tree: Tree, topic: Topic) -> Tree:
    return (*tree, topic)


def rename_topic(tree: Tree, topic_id: str, title: str) -> Tree:
    return _map_topic(tree, topic_id, lambda t: t.model_copy(update={"title": title}))


def remove_topic(tree: Tree, topic_id: str) -> Tree:
    return tuple(t for t in tree if t.id != topic_id)


def move_topic(tree: Tree, from_index: int, to_index: int) -> Tree:
    return reorder(tree, from_index, to_index)


# Subtopics


def append_subtopic(tree: Tree, topic_id: str, subtopic: SubTopic) -> Tree:
    return _map_topic(tree, topic_id, lambda t: t.model_copy(update={"sub_topics": (*t.sub_topics, subtopic)}))


def rename_subtopic(tree: Tree, topic_id: str, subtopic_id: str, title: str) -> Tree:
    return _map_subtopic(tree, topic_id, subtopic_id, lambda s: s.model_copy(update={"title": title}))


def remove_subtopic(tree: Tree, topic_id: str, subtopic_id: str) -> Tree:
    return _map_topic(
        tree,
        topic_id,
        lambda t: t.model_copy(update={"sub_topics": tuple(s for s in t.sub_topics if s.id != subtopic_id)}),
    )


def move_subtopic(tree: Tree, topic_id: str, from_index: int, to_index: int) -> Tree:
    topic = find_topic(tree, topic_id)
    if topic is None:
        return tree
    subtopics = reorder(topic.sub_topics, from_index, to_index)
    return _map_topic(tree, topic_id, lambda t: t.model_copy(update={"sub_topics": subtopics}))


# Questions


def append_question(tree: Tree, topic_id: str, subtopic_id: str, question: Question) -> Tree:
    return _map_subtopic(
        tree, topic_id, subtopic_id, lambda s: s.model_copy(update={"questions": (*s.questions, question)})
    )


def patch_question(
    tree: Tree,
    topic_id: str,
    subtopic_id: str,
    question_id: str,
    changes: Mapping[str, Any],
) -> Tree:
    """Overwrite the given fields of one question; other fields are kept."""

    def update(subtopic: SubTopic) -> SubTopic:
        questions = tuple(
            q.model_validate({**q.model_dump(), **changes, "id": q.id}) if q.id == question_id else q
            for q in subtopic.questions
        )
        return subtopic.model_copy(update={"questions": questions})

    return _map_subtopic(tree, topic_id, subtopic_id, update)


def remove_question(tree: Tree, topic_id: str, subtopic_id: str, question_id: str) -> Tree:
    return _map_subtopic(
        tree,
        topic_id,
        subtopic_id,
        lambda s: s.model_copy(update={"questions": tuple(q for q in s.questions if q.id != question_id)}),
    )


def move_question(tree: Tree, topic_id: str, subtopic_id: str, from_index: int, to_index: int) -> Tree:
    subtopic = find_subtopic(tree, topic_id, subtopic_id)
    if subtopic is None:
        return tree
    questions = reorder(subtopic.questions, from_index, to_index)
    return _map_subtopic(tree, topic_id, subtopic_id, lambda s: s.model_copy(update={"questions": questions}))

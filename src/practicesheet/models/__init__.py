"""Pydantic models used across the project."""

from __future__ import annotations

from practicesheet.models.payload import QuestionDefinition, Sheet, SheetConfig, SheetPayload, SheetRecord
from practicesheet.models.sheet import (
    DEFAULT_PLATFORM,
    DEFAULT_QUESTION_TITLE,
    DEFAULT_SUBTOPIC_TITLE,
    TREE_ADAPTER,
    Difficulty,
    Question,
    QuestionDraft,
    QuestionPatch,
    SubTopic,
    Topic,
    Tree,
)

__all__ = [
    "DEFAULT_PLATFORM",
    "DEFAULT_QUESTION_TITLE",
    "DEFAULT_SUBTOPIC_TITLE",
    "TREE_ADAPTER",
    "Difficulty",
    "Question",
    "QuestionDefinition",
    "QuestionDraft",
    "QuestionPatch",
    "Sheet",
    "SheetConfig",
    "SheetPayload",
    "SheetRecord",
    "SubTopic",
    "Topic",
    "Tree",
]

"""Practice sheet tree models.

Entities are frozen: a change produces a new value that replaces the old one, and sequences are
stored as tuples so they cannot be edited in place either.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

DEFAULT_SUBTOPIC_TITLE = "General"
DEFAULT_QUESTION_TITLE = "Untitled Question"
DEFAULT_PLATFORM = "Unknown"


class Difficulty(str, Enum):
    """Question difficulty."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def parse(cls, value: object) -> Difficulty | None:
        """Match a difficulty name case-insensitively, or return None."""

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        wanted = value.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None


def _coerce_difficulty(value: object) -> object:
    parsed = Difficulty.parse(value)
    return parsed if parsed is not None else value


class Question(BaseModel):
    """A single practice item."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str = DEFAULT_QUESTION_TITLE
    link: str = ""
    difficulty: Difficulty = Difficulty.EASY
    platform: str = DEFAULT_PLATFORM
    solved: bool = False

    normalize_difficulty = field_validator("difficulty", mode="before")(_coerce_difficulty)


class SubTopic(BaseModel):
    """Second-level grouping of questions."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    questions: tuple[Question, ...] = ()


class Topic(BaseModel):
    """Top-level grouping of subtopics."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    title: str
    sub_topics: tuple[SubTopic, ...] = Field(default=(), alias="subTopics")


Tree = tuple[Topic, ...]

TREE_ADAPTER: TypeAdapter[Tree] = TypeAdapter(Tree)


class QuestionDraft(BaseModel):
    """Fields supplied when creating a question.

    Anything left unset (or empty) falls back to the :class:`Question` defaults.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    link: str | None = None
    difficulty: Difficulty | None = None
    platform: str | None = None
    solved: bool | None = None

    normalize_difficulty = field_validator("difficulty", mode="before")(_coerce_difficulty)

    def changes(self) -> dict[str, object]:
        """Return the fields that carry a value."""

        return {k: v for k, v in self.model_dump(exclude_none=True).items() if v != ""}


class QuestionPatch(BaseModel):
    """Fields overwritten on an existing question; the id cannot be patched."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    link: str | None = None
    difficulty: Difficulty | None = None
    platform: str | None = None
    solved: bool | None = None

    normalize_difficulty = field_validator("difficulty", mode="before")(_coerce_difficulty)

    def changes(self) -> dict[str, object]:
        """Return the fields explicitly set to a value."""

        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}

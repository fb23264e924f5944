"""Wire models for the sheet source payload.

The source returns flat question records plus two order lists; field names follow the source's
camelCase (and Mongo-style `_id`) spelling through aliases.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QuestionDefinition(BaseModel):
    """Nested problem definition attached to a record."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    difficulty: str | None = None
    problem_url: str | None = Field(default=None, alias="problemUrl")
    platform: str | None = None


class SheetRecord(BaseModel):
    """One flat question record."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id", min_length=1)
    topic: str | None = None
    sub_topic: str | None = Field(default=None, alias="subTopic")
    title: str | None = None
    resource: str | None = None
    is_solved: bool | None = Field(default=None, alias="isSolved")
    definition: QuestionDefinition | None = Field(default=None, alias="questionId")

    @field_validator("definition", mode="before")
    @classmethod
    def drop_unexpanded_definition(cls, value: object) -> object:
        # Unpopulated references arrive as a bare id string.
        if value is not None and not isinstance(value, Mapping):
            return None
        return value


class SheetConfig(BaseModel):
    """Ordering configuration of a sheet."""

    model_config = ConfigDict(populate_by_name=True)

    topic_order: list[str] = Field(alias="topicOrder")
    question_order: list[str] = Field(alias="questionOrder")


class Sheet(BaseModel):
    config: SheetConfig


class SheetPayload(BaseModel):
    """The unwrapped `{sheet, questions}` body."""

    sheet: Sheet
    questions: list[SheetRecord] = Field(default_factory=list)

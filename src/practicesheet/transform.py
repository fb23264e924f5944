"""Sheet payload transform.

Rebuilds the ordered topic tree from the flat records served by the sheet source. Topic order
comes from `sheet.config.topicOrder`; question order (and, through it, subtopic order) comes from
`sheet.config.questionOrder`.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from practicesheet.errors import DuplicateRecordWarning, NotFoundWarning, TransformWarning, ValidationError
from practicesheet.logging import get_logger
from practicesheet.models.payload import QuestionDefinition, SheetPayload, SheetRecord
from practicesheet.models.sheet import (
    DEFAULT_PLATFORM,
    DEFAULT_QUESTION_TITLE,
    DEFAULT_SUBTOPIC_TITLE,
    Difficulty,
    Question,
    SubTopic,
    Topic,
    Tree,
)
from practicesheet.utils.ids import subtopic_id_for, topic_id_for

logger = get_logger(__name__)

WarningReporter = Callable[[TransformWarning], None]


@dataclass
class _TopicGroup:
    """A topic under construction; subtopics keep first-seen order."""

    id: str
    title: str
    subtopics: OrderedDict[str, list[Question]] = field(default_factory=OrderedDict)
    subtopic_ids: dict[str, str] = field(default_factory=dict)


def unwrap_payload(raw: Any) -> SheetPayload:
    """Validate a raw payload and return its `{sheet, questions}` body.

    Accepts either the `{status, data: {...}}` envelope or the body itself.

    Raises:
        ValidationError: If a required part of the payload is missing or malformed.
    """

    if isinstance(raw, SheetPayload):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError("Invalid sheet payload: expected a JSON object")

    data = raw.get("data")
    if data:
        if not isinstance(data, Mapping):
            raise ValidationError("Invalid sheet payload: data is not an object")
        body = data
    elif raw.get("sheet"):
        body = raw
    else:
        raise ValidationError("Invalid sheet payload: data or sheet not found")

    sheet = body.get("sheet")
    config = sheet.get("config") if isinstance(sheet, Mapping) else None
    if not isinstance(config, Mapping):
        raise ValidationError("Invalid sheet payload: sheet.config is missing")
    if not isinstance(body.get("questions"), list):
        raise ValidationError("Invalid sheet payload: questions array is missing")
    for key in ("topicOrder", "questionOrder"):
        if not isinstance(config.get(key), list):
            raise ValidationError(f"Invalid sheet payload: sheet.config.{key} is missing or not an array")

    try:
        return SheetPayload.model_validate(body)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid sheet payload: {exc.error_count()} malformed field(s)\n{exc}") from exc


def transform(payload: Any, *, on_warning: WarningReporter | None = None) -> Tree:
    """Transform a sheet payload into an ordered tree.

    Args:
        payload: Raw payload (enveloped or not) or an already validated :class:`SheetPayload`.
        on_warning: Receives every skipped record; defaults to logging a warning.

    Returns:
        Topics in `topicOrder` order. A topic that received no question has no subtopics.

    Raises:
        ValidationError: If the payload is malformed. Nothing is transformed in that case.
    """

    body = unwrap_payload(payload)
    report = on_warning or _log_warning
    config = body.sheet.config

    records: dict[str, SheetRecord] = {record.id: record for record in body.questions}

    groups: OrderedDict[str, _TopicGroup] = OrderedDict()
    topic_ids: set[str] = set()
    for name in config.topic_order:
        if name in groups:
            report(DuplicateRecordWarning(f'Topic "{name}" is listed more than once in topicOrder', ref=name))
            continue
        topic_id = _unique(topic_id_for(name), topic_ids)
        groups[name] = _TopicGroup(id=topic_id, title=name)

    placed: set[str] = set()
    for question_id in config.question_order:
        record = records.get(question_id)
        if record is None:
            report(
                NotFoundWarning(
                    f"Question with _id {question_id} not found in questions array",
                    ref=question_id,
                    kind="question",
                )
            )
            continue
        if question_id in placed:
            report(DuplicateRecordWarning(f"Question {question_id} is listed more than once in questionOrder", ref=question_id))
            continue

        group = groups.get(record.topic) if record.topic is not None else None
        if group is None:
            topic = record.topic or ""
            report(NotFoundWarning(f'Topic "{topic}" not found in topicOrder', ref=topic, kind="topic"))
            continue

        subtopic_name = record.sub_topic or DEFAULT_SUBTOPIC_TITLE
        if subtopic_name not in group.subtopics:
            group.subtopics[subtopic_name] = []
            group.subtopic_ids[subtopic_name] = _unique(
                subtopic_id_for(group.title, subtopic_name), set(group.subtopic_ids.values())
            )
        group.subtopics[subtopic_name].append(_to_question(record))
        placed.add(question_id)

    tree = tuple(
        Topic(
            id=group.id,
            title=group.title,
            sub_topics=tuple(
                SubTopic(id=group.subtopic_ids[name], title=name, questions=tuple(questions))
                for name, questions in group.subtopics.items()
            ),
        )
        for group in groups.values()
    )
    logger.info(
        "Transformed sheet payload: %d topics, %d questions (%d skipped)",
        len(tree),
        len(placed),
        len(config.question_order) - len(placed),
    )
    return tree


def _to_question(record: SheetRecord) -> Question:
    definition = record.definition or QuestionDefinition()
    return Question(
        id=record.id,
        title=record.title or definition.name or DEFAULT_QUESTION_TITLE,
        link=definition.problem_url or record.resource or "",
        difficulty=Difficulty.parse(definition.difficulty) or Difficulty.EASY,
        platform=definition.platform or DEFAULT_PLATFORM,
        solved=bool(record.is_solved),
    )


def _unique(candidate: str, taken: set[str]) -> str:
    """Suffix `candidate` until it is not in `taken`, then claim it."""

    value = candidate
    n = 2
    while value in taken:
        value = f"{candidate}-{n}"
        n += 1
    taken.add(value)
    return value


def _log_warning(warning: TransformWarning) -> None:
    logger.warning("%s", warning)

"""Solved/total counters for subtopics, topics and whole sheets."""

from __future__ import annotations

from dataclasses import dataclass

from practicesheet.models.sheet import SubTopic, Topic, Tree


@dataclass(frozen=True)
class Progress:
    """Solved and total question counts."""

    solved: int = 0
    total: int = 0

    @property
    def percent(self) -> float:
        """Share of solved questions, 0-100; an empty group counts as 0."""

        if self.total == 0:
            return 0.0
        return self.solved * 100.0 / self.total

    @property
    def complete(self) -> bool:
        return self.total > 0 and self.solved == self.total

    def __add__(self, other: Progress) -> Progress:
        return Progress(solved=self.solved + other.solved, total=self.total + other.total)


def subtopic_progress(subtopic: SubTopic) -> Progress:
    return Progress(solved=sum(1 for q in subtopic.questions if q.solved), total=len(subtopic.questions))


def topic_progress(topic: Topic) -> Progress:
    return sum((subtopic_progress(s) for s in topic.sub_topics), Progress())


def sheet_progress(tree: Tree) -> Progress:
    return sum((topic_progress(t) for t in tree), Progress())

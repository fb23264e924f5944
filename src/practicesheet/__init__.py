"""Ordered practice-sheet checklist: topics, subtopics and questions."""

__version__ = "0.1.0"

"""Shared fixtures for building session records and evaluators."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

import pytest

from coda_mentor.data_models import Reaction, SessionRecord, SessionResults
from coda_mentor.evaluation import CompetencyEvaluator

BASE_TIME = datetime(2024, 3, 4, 18, 0, tzinfo=timezone.utc)


def build_session(
    index: int = 0,
    *,
    session_id: Optional[str] = None,
    mentor_id: str = "mentor-1",
    days_apart: float = 3,
    timestamp: Optional[datetime] = None,
    duration: float = 45,
    concepts: Iterable[str] = ("greetings",),
    teaching_method: str = "visual",
    comprehension: float = 0.7,
    questions: Iterable[str] = (),
    errors: Iterable[str] = (),
    corrections_accepted: float = 0.7,
    frustration: float = 0.2,
    objectives_achieved: float = 0.7,
    new_skills: Iterable[str] = (),
    improvement: float = 0.1,
    satisfaction: float = 0.7,
) -> SessionRecord:
    """Build a session; out-of-range numbers are kept as given."""
    return SessionRecord(
        session_id=session_id or f"s-{index:03d}",
        mentor_id=mentor_id,
        timestamp=timestamp or BASE_TIME + timedelta(days=days_apart * index),
        duration=duration,
        concepts=list(concepts),
        teaching_method=teaching_method,
        reaction=Reaction(
            comprehension=comprehension,
            questions=list(questions),
            errors=list(errors),
            corrections_accepted=corrections_accepted,
            frustration=frustration,
        ),
        results=SessionResults(
            objectives_achieved=objectives_achieved,
            new_skills=list(new_skills),
            improvement=improvement,
            satisfaction=satisfaction,
        ),
    )


def build_sessions(count: int, **overrides) -> List[SessionRecord]:
    return [build_session(index, **overrides) for index in range(count)]


@pytest.fixture
def make_session():
    """Factory for single session records."""
    return build_session


@pytest.fixture
def make_sessions():
    """Factory for evenly spaced session lists."""
    return build_sessions


@pytest.fixture
def evaluator():
    """Evaluator with default configuration and fresh cache/history."""
    return CompetencyEvaluator()


@pytest.fixture(autouse=True)
def restore_logging():
    """Drop handlers installed by `configure_logging` so tests do not leak them."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if getattr(handler, "_coda_mentor", False):
            root.removeHandler(handler)
    root.setLevel(level)

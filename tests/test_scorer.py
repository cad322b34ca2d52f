"""Tests for competency scoring."""

from __future__ import annotations

import pytest

from coda_mentor.evaluation.models import CulturalTier, Dimension, EvaluationContext, TeachingLevel
from coda_mentor.evaluation.scorer import (
    DIMENSION_WEIGHTS,
    CompetencyScorer,
    consistency_factor,
    progression_factor,
    teaching_level_for,
)


@pytest.fixture
def scorer():
    return CompetencyScorer()


@pytest.fixture
def context():
    return EvaluationContext.default("mentor-1")


def test_empty_sessions_use_neutral_defaults(scorer, context):
    score = scorer.score([], context)

    assert all(value == 0.5 for value in score.dimensions().values())
    assert score.overall_score == pytest.approx(0.5)
    assert score.teaching_level is TeachingLevel.DEVELOPING


def test_single_high_quality_session(scorer, context, make_session):
    session = make_session(
        comprehension=0.95,
        errors=(),
        questions=(),
        satisfaction=0.9,
        improvement=0.2,
        objectives_achieved=0.9,
    )

    score = scorer.score([session], context)

    assert score.explanation > 0.8
    assert score.encouragement > 0.7
    assert score.explanation == pytest.approx(0.88)


def test_overall_is_weighted_sum_of_dimensions(scorer, context, make_sessions):
    sessions = make_sessions(6, comprehension=0.6, satisfaction=0.55, improvement=0.05)

    score = scorer.score(sessions, context)
    expected = sum(score.dimension(dim) * weight for dim, weight in DIMENSION_WEIGHTS.items())

    assert sum(DIMENSION_WEIGHTS.values()) == pytest.approx(1.0)
    assert score.overall_score == pytest.approx(expected)


def test_scores_stay_bounded_for_out_of_range_input(scorer, context, make_session):
    sessions = [
        make_session(
            0,
            comprehension=-3.0,
            satisfaction=7.0,
            improvement=-9.0,
            frustration=5.0,
            corrections_accepted=-1.0,
            objectives_achieved=4.0,
            duration=-10,
            errors=("a", "b", "c", "d"),
            questions=("q",) * 20,
        ),
        make_session(1, comprehension=2.5, satisfaction=-1.0, improvement=3.0, duration=500),
    ]

    score = scorer.score(sessions, context)

    for value in score.dimensions().values():
        assert 0.0 <= value <= 1.0
    assert 0.0 <= score.overall_score <= 1.0


def test_scoring_is_deterministic(scorer, context, make_sessions):
    sessions = make_sessions(5, concepts=("culture", "greetings"))

    assert scorer.score(sessions, context) == scorer.score(sessions, context)


def test_cultural_sensitivity_flat_when_authenticity_disabled(context, make_sessions):
    scorer = CompetencyScorer(cultural_authenticity=False)

    score = scorer.score(make_sessions(3, concepts=("deaf culture",)), context)

    assert score.cultural_sensitivity == pytest.approx(0.7)


def test_cultural_concepts_raise_cultural_sensitivity(scorer, make_sessions):
    context = EvaluationContext.default("mentor-1")
    rich_context = EvaluationContext(
        subject_id="mentor-1",
        total_sessions=3,
        average_session_duration=45,
        experience=context.experience,
        student_level=context.student_level,
        cultural_tier=CulturalTier.RICH,
    )
    plain = scorer.score(make_sessions(3, concepts=("numbers", "colors")), context)
    cultural = scorer.score(
        make_sessions(3, concepts=("deaf culture", "community history", "cultural norms")),
        rich_context,
    )

    assert cultural.cultural_sensitivity > plain.cultural_sensitivity


def test_session_metrics_error_recovery(scorer, make_session):
    with_concepts = scorer.session_metrics(make_session(concepts=("a", "b", "c", "d"), errors=("x",)))
    without_concepts = scorer.session_metrics(make_session(concepts=(), errors=("x", "y")))

    assert with_concepts.error_recovery == pytest.approx(0.75)
    assert without_concepts.error_recovery == 1.0


def test_content_adaptation(scorer, make_session):
    assert scorer.content_adaptation([make_session()]) == pytest.approx(0.7)

    sessions = [
        make_session(0, concepts=("a", "b"), errors=("e1", "e2", "e3")),
        make_session(1, concepts=("a", "b", "c"), errors=("e1",)),
    ]
    assert scorer.content_adaptation(sessions) == pytest.approx(1.0)

    jumpy = [
        make_session(0, concepts=("a",), errors=("e1", "e2", "e3")),
        make_session(1, concepts=("a", "b", "c", "d", "e"), errors=("e1", "e2", "e3", "e4")),
    ]
    assert scorer.content_adaptation(jumpy) == pytest.approx(0.0)


def test_progression_and_consistency_factors():
    assert progression_factor([0.5]) == 0.5
    assert progression_factor([0.4, 0.6]) == pytest.approx(0.7)
    assert progression_factor([0.2, 0.9]) == 1.0
    assert progression_factor([0.9, 0.1]) == 0.0
    assert consistency_factor([0.3]) == 1.0
    assert consistency_factor([0.0, 1.0]) == 0.0
    assert consistency_factor([0.5, 0.5, 0.5]) == pytest.approx(1.0)


@pytest.mark.parametrize(
    "overall, level",
    [
        (0.9, TeachingLevel.EXPERT),
        (0.85, TeachingLevel.EXPERT),
        (0.7, TeachingLevel.PROFICIENT),
        (0.5, TeachingLevel.DEVELOPING),
        (0.49, TeachingLevel.NOVICE),
    ],
)
def test_teaching_level_thresholds(overall, level):
    assert teaching_level_for(overall) is level


def test_dimension_lookup(scorer, context, make_sessions):
    score = scorer.score(make_sessions(2), context)

    assert score.dimension(Dimension.PATIENCE) == score.patience
    assert set(score.dimensions()) == set(Dimension)

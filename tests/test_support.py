"""Tests for remediation support bundles."""

from __future__ import annotations

import pytest

from coda_mentor.evaluation.models import (
    CompetencyScore,
    EvaluationContext,
    SupportTarget,
    SupportType,
    TeachingLevel,
)
from coda_mentor.evaluation.support import SupportGenerator, estimate_effectiveness


def make_score(value=0.5, overall=None, **overrides) -> CompetencyScore:
    dims = {
        "explanation": value,
        "patience": value,
        "adaptation": value,
        "encouragement": value,
        "cultural_sensitivity": value,
    }
    dims.update(overrides)
    return CompetencyScore(
        **dims,
        overall_score=value if overall is None else overall,
        teaching_level=TeachingLevel.DEVELOPING,
    )


@pytest.fixture
def generator():
    return SupportGenerator()


@pytest.fixture
def context():
    return EvaluationContext.default("mentor-7")


def test_each_weak_dimension_gets_one_bundle(generator, context):
    supports = generator.generate([], context, make_score(0.5))

    targets = [support.target for support in supports]
    assert targets == [
        SupportTarget.EXPLANATION,
        SupportTarget.PATIENCE,
        SupportTarget.ADAPTATION,
        SupportTarget.ENCOURAGEMENT,
        SupportTarget.CULTURAL_SENSITIVITY,
    ]
    assert len(set(targets)) == len(targets)
    by_target = {support.target: support for support in supports}
    assert by_target[SupportTarget.EXPLANATION].estimated_effectiveness == pytest.approx(0.6)
    assert by_target[SupportTarget.CULTURAL_SENSITIVITY].type is SupportType.CULTURAL_CONTEXT
    assert by_target[SupportTarget.PATIENCE].type is SupportType.EXERCISE_TEMPLATE


def test_general_bundle_for_low_overall(generator, context):
    supports = generator.generate([], context, make_score(0.4))

    general = [support for support in supports if support.target is SupportTarget.GENERAL]
    assert len(general) == 1
    assert general[0].estimated_effectiveness == pytest.approx(0.48)


def test_advanced_bundle_for_strong_mentor(generator, context):
    supports = generator.generate([], context, make_score(0.9))

    assert [support.target for support in supports] == [SupportTarget.ADVANCED]
    assert supports[0].estimated_effectiveness == pytest.approx(0.95)


def test_only_weak_dimensions_are_targeted(generator, context):
    score = make_score(0.7, overall=0.7, patience=0.59)

    supports = generator.generate([], context, score)

    assert [support.target for support in supports] == [SupportTarget.PATIENCE]
    assert supports[0].estimated_effectiveness == pytest.approx(0.7 * (0.5 + 0.41 * 0.5))


def test_effectiveness_is_bounded():
    assert estimate_effectiveness(0.9, 0.0) == pytest.approx(0.9)
    assert estimate_effectiveness(0.9, -5.0) == pytest.approx(0.9)
    assert estimate_effectiveness(0.5, 1.0) == pytest.approx(0.3)
    for score in (0.0, 0.25, 0.5, 0.59):
        assert 0.3 <= estimate_effectiveness(0.85, score) <= 0.95


def test_bundle_ids_and_content(generator, context):
    supports = generator.generate([], context, make_score(0.2))

    ids = [support.id for support in supports]
    assert "explanation_guide-mentor-7" in ids
    assert "general_improvement-mentor-7" in ids
    assert all(support.content for support in supports)
    assert generator.generate([], context, make_score(0.2)) == supports


def test_disabled_generator(context):
    assert SupportGenerator(enabled=False).generate([], context, make_score(0.1)) == ()

"""Tests for the end-to-end evaluation orchestrator."""

from __future__ import annotations

import json
import logging
import threading

import pytest

from coda_mentor.config import EvaluationConfig
from coda_mentor.errors import EvaluationError, SessionValidationError
from coda_mentor.evaluation import CompetencyEvaluator, compute_fingerprint
from coda_mentor.evaluation.models import (
    CefrLevel,
    CulturalTier,
    ExperienceTier,
    TransitionDirection,
    TrendDirection,
)
from coda_mentor.storage import EvaluationCache, HistoryStore


def counting(monkeypatch, evaluator, delay=0.0):
    """Wrap the scorer so tests can count pipeline runs."""
    calls = []
    original = evaluator.scorer.score

    def wrapped(sessions, context):
        calls.append(len(sessions))
        if delay:
            threading.Event().wait(delay)
        return original(sessions, context)

    monkeypatch.setattr(evaluator.scorer, "score", wrapped)
    return calls


def test_repeated_evaluation_hits_cache(monkeypatch, evaluator, make_sessions):
    sessions = make_sessions(4)
    calls = counting(monkeypatch, evaluator)

    first = evaluator.evaluate("mentor-1", sessions)
    second = evaluator.evaluate("mentor-1", sessions)

    assert calls == [4]
    assert first is second
    assert first == second


def test_session_order_does_not_change_fingerprint(monkeypatch, evaluator, make_sessions):
    sessions = make_sessions(5)
    calls = counting(monkeypatch, evaluator)

    first = evaluator.evaluate("mentor-1", sessions)
    second = evaluator.evaluate("mentor-1", list(reversed(sessions)))

    assert len(calls) == 1
    assert first is second


def test_fingerprint_depends_on_subject_sessions_and_config(make_sessions):
    sessions = make_sessions(3)
    ids = [session.session_id for session in sessions]
    config = EvaluationConfig()

    base = compute_fingerprint("mentor-1", ids, config)

    assert base == compute_fingerprint("mentor-1", list(reversed(ids)), config)
    assert len(base) == 64
    assert base != compute_fingerprint("mentor-2", ids, config)
    assert base != compute_fingerprint("mentor-1", ids[:2], config)
    assert base != compute_fingerprint(
        "mentor-1", ids, EvaluationConfig(enable_predictive_analysis=False)
    )


def test_result_is_assembled(evaluator, make_sessions):
    sessions = make_sessions(6, concepts=("deaf culture", "greetings"), new_skills=("greetings",))

    result = evaluator.evaluate("mentor-1", sessions)

    assert result.subject_id == "mentor-1"
    assert result.confidence == result.competency.overall_score
    assert result.metadata["fingerprint"] == evaluator.fingerprint("mentor-1", sessions)
    assert result.metadata["context"]["total_sessions"] == 6
    assert result.metadata["context"]["cultural_tier"] == CulturalTier.RICH.value
    assert result.student.current_level is CefrLevel.A1
    assert result.student.strengths == ("greetings",)
    assert result.transition.direction is TransitionDirection.HOLD
    assert result.trend.direction is TrendDirection.STABLE
    assert result.feedback.recommendations
    payload = result.to_dict()
    assert payload["competency"]["teaching_level"] == result.competency.teaching_level.value
    assert isinstance(payload["predictions"]["next_milestone"]["estimated_date"], str)


def test_history_keeps_last_ten_scores(make_sessions):
    evaluator = CompetencyEvaluator(history=HistoryStore(max_entries=10))
    sessions = make_sessions(12)

    for count in range(1, 13):
        evaluator.evaluate("mentor-1", sessions[:count])

    history = evaluator.score_history("mentor-1")
    assert len(history) == 10
    assert history[-1] == evaluator.evaluate("mentor-1", sessions).competency


def test_cache_hit_does_not_extend_history(evaluator, make_sessions):
    sessions = make_sessions(3)

    evaluator.evaluate("mentor-1", sessions)
    evaluator.evaluate("mentor-1", sessions)

    assert len(evaluator.score_history("mentor-1")) == 1


def test_mappings_are_accepted(evaluator, make_sessions):
    sessions = make_sessions(3)
    raw = [session.model_dump(mode="json") for session in sessions]

    assert evaluator.evaluate("mentor-1", raw) == evaluator.evaluate("mentor-1", sessions)


def test_missing_field_is_a_validation_error(evaluator, make_session):
    raw = make_session().model_dump(mode="json")
    del raw["reaction"]["comprehension"]

    with pytest.raises(SessionValidationError) as excinfo:
        evaluator.evaluate("mentor-9", [raw])

    assert excinfo.value.subject_id == "mentor-9"
    assert excinfo.value.operation == "validate_sessions"
    assert any("comprehension" in problem for problem in excinfo.value.problems)


def test_non_mapping_session_is_rejected(evaluator):
    with pytest.raises(SessionValidationError):
        evaluator.evaluate("mentor-1", ["not a session"])


def test_duplicate_session_ids_are_rejected(evaluator, make_session):
    with pytest.raises(SessionValidationError):
        evaluator.evaluate("mentor-1", [make_session(0), make_session(1, session_id="s-000")])


def test_empty_subject_is_rejected(evaluator):
    with pytest.raises(EvaluationError):
        evaluator.evaluate("  ", [])


def test_strict_mode_rejects_out_of_range(make_session):
    evaluator = CompetencyEvaluator({"validation_mode": "strict"})

    with pytest.raises(SessionValidationError) as excinfo:
        evaluator.evaluate("mentor-1", [make_session(comprehension=1.4)])

    assert "reaction.comprehension" in str(excinfo.value)


def test_lenient_mode_clamps_and_warns(caplog, evaluator, make_session):
    with caplog.at_level(logging.WARNING, logger="coda_mentor.evaluation.validation"):
        result = evaluator.evaluate("mentor-1", [make_session(comprehension=1.4, satisfaction=-0.5)])

    assert "Clamping 2 out-of-range values" in caplog.text
    assert 0.0 <= result.competency.overall_score <= 1.0
    assert result.student.motivation == 0.0


def test_cached_results_are_read_only(evaluator, make_sessions):
    sessions = make_sessions(3, comprehension=0.1, satisfaction=0.1)
    first = evaluator.evaluate("mentor-1", sessions)
    assert first.supports
    support = first.supports[0]
    key = next(iter(support.content))

    with pytest.raises(TypeError):
        first.metadata["fingerprint"] = "tampered"
    with pytest.raises(TypeError):
        first.metadata["context"]["total_sessions"] = 0
    with pytest.raises(TypeError):
        support.content[key] = ()
    with pytest.raises(AttributeError):
        support.content[key].append("extra")

    second = evaluator.evaluate("mentor-1", sessions)
    assert second is first
    assert second.metadata["fingerprint"] == evaluator.fingerprint("mentor-1", sessions)
    payload = json.loads(json.dumps(second.to_dict()))
    assert payload["supports"][0]["content"][key] == list(support.content[key])


@pytest.mark.parametrize("mode", ["lenient", "strict"])
def test_non_finite_values_are_rejected_in_every_mode(mode, make_session):
    evaluator = CompetencyEvaluator({"validation_mode": mode})
    raw = make_session(0).model_dump(mode="json")
    raw["reaction"]["comprehension"] = float("nan")

    with pytest.raises(SessionValidationError) as excinfo:
        evaluator.evaluate("mentor-1", [raw])

    assert any("reaction.comprehension" in problem for problem in excinfo.value.problems)
    assert len(evaluator.cache) == 0


def test_clamped_copy_maps_nan_to_lower_bound(make_session):
    session = make_session(0)
    broken = session.model_copy(
        update={"results": session.results.model_copy(update={"satisfaction": float("nan")})}
    )

    assert broken.clamped().results.satisfaction == 0.0


def test_stage_failure_propagates_and_is_not_cached(monkeypatch, evaluator, make_sessions):
    def broken(sessions):
        raise RuntimeError("trend exploded")

    monkeypatch.setattr(evaluator.trend_analyzer, "analyze_sessions", broken)

    with pytest.raises(RuntimeError, match="trend exploded"):
        evaluator.evaluate("mentor-1", make_sessions(3))

    assert len(evaluator.cache) == 0
    assert evaluator.score_history("mentor-1") == ()


def test_concurrent_evaluations_compute_once(monkeypatch, evaluator, make_sessions):
    sessions = make_sessions(5)
    calls = counting(monkeypatch, evaluator, delay=0.05)
    barrier = threading.Barrier(6)
    results = []

    def worker():
        barrier.wait()
        results.append(evaluator.evaluate("mentor-1", sessions))

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert calls == [5]
    assert len(results) == 6
    assert all(result is results[0] for result in results)


def test_disabled_features_use_defaults(make_sessions):
    evaluator = CompetencyEvaluator(
        {"enable_predictive_analysis": False, "support_generation_enabled": False}
    )

    result = evaluator.evaluate("mentor-1", make_sessions(3, comprehension=0.1, satisfaction=0.1))

    assert result.predictions.next_milestone.skill == "basic_conversation"
    assert result.predictions.risk_factors == ()
    assert result.supports == ()


def test_empty_sessions(evaluator):
    result = evaluator.evaluate("mentor-1", [])

    assert result.competency.overall_score == pytest.approx(0.5)
    assert result.metadata["context"]["experience"] == ExperienceTier.NOVICE.value
    assert result.student.mood.value == "neutral"


def test_invalid_config_is_rejected():
    with pytest.raises(ValueError, match="Invalid configuration"):
        CompetencyEvaluator({"analysis_depth": "bottomless"})


def test_default_cache_uses_configured_bounds():
    evaluator = CompetencyEvaluator()

    assert evaluator.cache.ttl_seconds == 3600
    assert evaluator.cache.max_entries == 512
    assert evaluator.history.max_entries == 10


def test_injected_cache_is_used(make_sessions):
    cache = EvaluationCache(max_entries=1)
    evaluator = CompetencyEvaluator(cache=cache)

    evaluator.evaluate("mentor-1", make_sessions(2))
    evaluator.evaluate("mentor-2", make_sessions(2))

    assert len(cache) == 1


def test_score_competencies_and_generate_supports(evaluator, make_sessions):
    sessions = make_sessions(3, comprehension=0.2, satisfaction=0.2, improvement=0.0)

    score = evaluator.score_competencies(sessions)
    supports = evaluator.generate_supports(sessions, score, subject_id="mentor-3")

    assert score.overall_score < 0.6
    assert supports
    assert all(support.id.endswith("-mentor-3") for support in supports)

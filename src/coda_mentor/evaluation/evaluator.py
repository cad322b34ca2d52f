from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from coda_mentor import __version__
from coda_mentor.config.loader import evaluation_config_from
from coda_mentor.config.schema import CacheConfig, EvaluationConfig
from coda_mentor.data_models import SessionRecord
from coda_mentor.errors import EvaluationError
from coda_mentor.evaluation.context import build_context, build_student_status, performance_scores
from coda_mentor.evaluation.feedback import generate_feedback
from coda_mentor.evaluation.levels import LevelClassifier, recommend_transition
from coda_mentor.evaluation.models import (
    CompetencyScore,
    EvaluationContext,
    EvaluationResult,
    SupportBundle,
)
from coda_mentor.evaluation.prediction import PredictionEngine
from coda_mentor.evaluation.scorer import CompetencyScorer
from coda_mentor.evaluation.support import SupportGenerator
from coda_mentor.evaluation.trend import TrendAnalyzer
from coda_mentor.evaluation.validation import apply_range_policy, coerce_sessions
from coda_mentor.storage.cache import EvaluationCache
from coda_mentor.storage.history import HistoryStore

logger = logging.getLogger(__name__)

SessionInput = Iterable[Union[SessionRecord, Mapping[str, Any]]]


def compute_fingerprint(subject_id: str, session_ids: Iterable[str], config: EvaluationConfig) -> str:
    """SHA-256 over a canonical JSON rendering of subject, sorted session ids, and config."""
    payload = {
        "subject_id": subject_id,
        "session_ids": sorted(session_ids),
        "config": config.model_dump(mode="json"),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _chronological(sessions: Sequence[SessionRecord]) -> List[SessionRecord]:
    return sorted(sessions, key=lambda session: (session.timestamp, session.session_id))


class CompetencyEvaluator:
    """
    Evaluate a mentor's teaching from their session log.

    The evaluator validates and orders the sessions, then runs scoring, trend
    analysis, level classification, prediction, support generation, and
    feedback in that order. Each composite result is cached under a fingerprint
    of the subject, its session ids, and the active configuration; the cache
    and the per-subject score history are injected so callers control their
    lifetime and eviction policy.

    Attributes
    ----------
    config : EvaluationConfig
        Feature toggles and validation policy.
    cache : EvaluationCache
        Fingerprint-keyed store of `EvaluationResult` objects.
    history : HistoryStore
        Most recent competency scores per subject.

    Examples
    --------
    >>> evaluator = CompetencyEvaluator({"enable_predictive_analysis": False})
    >>> result = evaluator.evaluate("mentor-1", [])
    >>> round(result.competency.overall_score, 2)
    0.5
    """

    def __init__(
        self,
        config: EvaluationConfig | Mapping[str, Any] | None = None,
        cache: Optional[EvaluationCache[EvaluationResult]] = None,
        history: Optional[HistoryStore[CompetencyScore]] = None,
        classifier: Optional[LevelClassifier] = None,
    ):
        self.config = config if isinstance(config, EvaluationConfig) else evaluation_config_from(config)
        defaults = CacheConfig()
        if cache is None:
            cache = EvaluationCache(max_entries=defaults.max_entries, ttl_seconds=defaults.ttl_seconds)
        if history is None:
            history = HistoryStore(max_entries=defaults.history_size)
        self.cache: EvaluationCache[EvaluationResult] = cache
        self.history: HistoryStore[CompetencyScore] = history
        self.classifier = classifier or LevelClassifier()
        self.scorer = CompetencyScorer(cultural_authenticity=self.config.cultural_authenticity)
        self.trend_analyzer = TrendAnalyzer()
        self.prediction_engine = PredictionEngine(
            classifier=self.classifier,
            enabled=self.config.enable_predictive_analysis,
            enable_risk_analysis=self.config.enable_risk_analysis,
        )
        self.support_generator = SupportGenerator(enabled=self.config.support_generation_enabled)

    def prepare_sessions(self, subject_id: str, sessions: SessionInput) -> List[SessionRecord]:
        """Coerce, range-check, and chronologically order the input sessions."""
        records = coerce_sessions(subject_id, sessions)
        records = apply_range_policy(subject_id, records, self.config.validation_mode)
        return _chronological(records)

    def fingerprint(self, subject_id: str, sessions: Sequence[SessionRecord]) -> str:
        return compute_fingerprint(subject_id, (session.session_id for session in sessions), self.config)

    def evaluate(self, subject_id: str, sessions: SessionInput) -> EvaluationResult:
        """Return the full evaluation for `subject_id`, reusing a cached result when available."""
        if not subject_id or not str(subject_id).strip():
            raise EvaluationError("subject_id must be a non-empty string", operation="evaluate")
        records = self.prepare_sessions(subject_id, sessions)
        fingerprint = self.fingerprint(subject_id, records)

        try:
            result, hit = self.cache.get_or_compute(
                fingerprint, lambda: self._compute(subject_id, records, fingerprint)
            )
        except Exception:
            logger.exception("Evaluation failed for subject %s", subject_id)
            raise

        if hit:
            logger.debug("Cache hit for subject %s (%s)", subject_id, fingerprint[:12])
        return result

    def _compute(
        self, subject_id: str, sessions: Sequence[SessionRecord], fingerprint: str
    ) -> EvaluationResult:
        context = build_context(subject_id, sessions)
        competency = self.scorer.score(sessions, context)
        trend = self.trend_analyzer.analyze_sessions(sessions)
        transition = recommend_transition(
            self.classifier, context.student_level, performance_scores(sessions)
        )
        predictions = self.prediction_engine.predict(sessions, context, competency, trend)
        supports = self.support_generator.generate(sessions, context, competency)
        feedback = generate_feedback(
            competency,
            context,
            [self.scorer.session_metrics(session) for session in sessions],
            depth=self.config.analysis_depth,
        )
        student = build_student_status(subject_id, sessions, context, self.classifier)

        result = EvaluationResult(
            subject_id=subject_id,
            competency=competency,
            trend=trend,
            predictions=predictions,
            supports=supports,
            feedback=feedback,
            student=student,
            transition=transition,
            confidence=competency.overall_score,
            metadata={
                "context": {
                    "total_sessions": context.total_sessions,
                    "average_session_duration": context.average_session_duration,
                    "experience": context.experience.value,
                    "student_level": context.student_level.value,
                    "cultural_tier": context.cultural_tier.value,
                },
                "ai_intelligence_level": self.config.ai_intelligence_level.value,
                "analysis_depth": self.config.analysis_depth.value,
                "fingerprint": fingerprint,
                "version": __version__,
            },
        )
        self.history.append(subject_id, competency)
        logger.info(
            "Evaluated %s: %d sessions, overall=%.3f (%s), trend=%s, %d supports",
            subject_id,
            len(sessions),
            competency.overall_score,
            competency.teaching_level.value,
            trend.direction.value,
            len(supports),
        )
        return result

    def score_competencies(
        self, sessions: SessionInput, context: Optional[EvaluationContext] = None
    ) -> CompetencyScore:
        """Score sessions alone, without caching, predictions, or history."""
        records = self.prepare_sessions("unknown", sessions)
        if context is None:
            average = sum(s.duration for s in records) / len(records) if records else 0.0
            context = EvaluationContext.default(total_sessions=len(records), average_session_duration=average)
        return self.scorer.score(records, context)

    def generate_supports(
        self, sessions: SessionInput, competency: CompetencyScore, subject_id: str = "unknown"
    ) -> Tuple[SupportBundle, ...]:
        records = self.prepare_sessions(subject_id, sessions)
        average = sum(s.duration for s in records) / len(records) if records else 0.0
        context = EvaluationContext.default(subject_id, len(records), average)
        return self.support_generator.generate(records, context, competency)

    def score_history(self, subject_id: str) -> Tuple[CompetencyScore, ...]:
        return self.history.get(subject_id)

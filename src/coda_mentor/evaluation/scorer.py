from __future__ import annotations

import logging
import math
import statistics
from typing import Dict, List, Sequence

from coda_mentor.data_models import SessionRecord
from coda_mentor.evaluation.models import (
    CompetencyScore,
    CulturalTier,
    Dimension,
    EvaluationContext,
    SessionMetrics,
    TeachingLevel,
)

logger = logging.getLogger(__name__)

DIMENSION_WEIGHTS: Dict[Dimension, float] = {
    Dimension.EXPLANATION: 0.25,
    Dimension.PATIENCE: 0.20,
    Dimension.ADAPTATION: 0.25,
    Dimension.ENCOURAGEMENT: 0.15,
    Dimension.CULTURAL_SENSITIVITY: 0.15,
}

NEUTRAL_SCORE = 0.5
CULTURAL_APPROPRIATENESS = 0.7
DISABLED_CULTURAL_SCORE = 0.7
CULTURAL_KEYWORDS = (
    "culture",
    "cultural",
    "history",
    "histoire",
    "community",
    "communauté",
    "tradition",
)
NUANCE_KEYWORDS = ("culture", "cultural")

TEACHING_LEVEL_THRESHOLDS = (
    (0.85, TeachingLevel.EXPERT),
    (0.70, TeachingLevel.PROFICIENT),
    (0.50, TeachingLevel.DEVELOPING),
)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Bound a value to [low, high]; NaN collapses to the lower bound."""
    if value != value:
        return low
    return max(low, min(high, value))


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def is_cultural_concept(label: str) -> bool:
    lowered = label.lower()
    return any(keyword in lowered for keyword in CULTURAL_KEYWORDS)


def count_cultural_concepts(sessions: Sequence[SessionRecord]) -> int:
    return sum(
        1 for session in sessions for concept in session.concepts if is_cultural_concept(concept)
    )


def progression_factor(values: Sequence[float]) -> float:
    """
    Rescale the second-half minus first-half mean difference onto [0, 1].

    A difference of zero maps to 0.5; differences beyond +/-0.5 saturate.
    Fewer than two samples give the neutral 0.5.
    """
    if len(values) < 2:
        return 0.5
    split = math.ceil(len(values) / 2)
    first, second = values[:split], values[split:]
    return clamp(mean(second) - mean(first) + 0.5)


def consistency_factor(values: Sequence[float]) -> float:
    """1 - 2 * population standard deviation, floored at 0; 1.0 below two samples."""
    if len(values) < 2:
        return 1.0
    return clamp(1.0 - 2.0 * statistics.pstdev(values))


def teaching_level_for(overall: float) -> TeachingLevel:
    for threshold, level in TEACHING_LEVEL_THRESHOLDS:
        if overall >= threshold:
            return level
    return TeachingLevel.NOVICE


def weighted_overall(dimensions: Dict[Dimension, float]) -> float:
    total = sum(dimensions[dimension] * weight for dimension, weight in DIMENSION_WEIGHTS.items())
    return clamp(round(total, 12))


class CompetencyScorer:
    """
    Score a mentor on five teaching dimensions from their session log.

    Every session is first reduced to a `SessionMetrics` record (comprehension,
    engagement, error recovery, adaptation speed, cultural proxy). Each
    dimension then combines averages, progression and consistency factors of
    those metrics with fixed weights, and the overall score is the weighted sum
    given by `DIMENSION_WEIGHTS`.

    The scorer is a pure function of its inputs. Raw numbers outside their
    documented range are clamped rather than rejected; policy about whether such
    input is acceptable lives in `coda_mentor.evaluation.validation`.

    Parameters
    ----------
    cultural_authenticity : bool
        When False the cultural-sensitivity dimension is a flat 0.7 instead of
        being derived from concept labels.

    Examples
    --------
    >>> scorer = CompetencyScorer()
    >>> scorer.score([], EvaluationContext.default()).overall_score
    0.5
    """

    def __init__(self, cultural_authenticity: bool = True):
        self.cultural_authenticity = cultural_authenticity

    def session_metrics(self, session: SessionRecord) -> SessionMetrics:
        """Reduce one session to the five intermediate signals."""
        concept_count = len(session.concepts)
        error_count = len(session.reaction.errors)
        if concept_count:
            error_recovery = max(0.0, 1.0 - error_count / concept_count)
        else:
            error_recovery = 1.0
        cultural_count = sum(1 for concept in session.concepts if is_cultural_concept(concept))
        cultural = min(1.0, cultural_count / 3) * 0.6 + CULTURAL_APPROPRIATENESS * 0.4
        return SessionMetrics(
            comprehension=clamp(session.reaction.comprehension),
            engagement=clamp(session.results.satisfaction),
            error_recovery=clamp(error_recovery),
            adaptation_speed=clamp(session.results.improvement, -1.0, 1.0),
            cultural=clamp(cultural),
        )

    def score(self, sessions: Sequence[SessionRecord], context: EvaluationContext) -> CompetencyScore:
        """Compute every dimension and the weighted overall score."""
        if not sessions:
            dimensions = {dimension: NEUTRAL_SCORE for dimension in Dimension}
        else:
            metrics = [self.session_metrics(session) for session in sessions]
            dimensions = {
                Dimension.EXPLANATION: self.explanation(sessions, metrics),
                Dimension.PATIENCE: self.patience(sessions, metrics),
                Dimension.ADAPTATION: self.adaptation(sessions, metrics),
                Dimension.ENCOURAGEMENT: self.encouragement(sessions, metrics),
                Dimension.CULTURAL_SENSITIVITY: self.cultural_sensitivity(sessions, metrics, context),
            }
        overall = weighted_overall(dimensions)
        logger.debug(
            "Scored %d sessions for %s: overall=%.3f", len(sessions), context.subject_id, overall
        )
        return CompetencyScore(
            explanation=dimensions[Dimension.EXPLANATION],
            patience=dimensions[Dimension.PATIENCE],
            adaptation=dimensions[Dimension.ADAPTATION],
            encouragement=dimensions[Dimension.ENCOURAGEMENT],
            cultural_sensitivity=dimensions[Dimension.CULTURAL_SENSITIVITY],
            overall_score=overall,
            teaching_level=teaching_level_for(overall),
        )

    def explanation(self, sessions: Sequence[SessionRecord], metrics: Sequence[SessionMetrics]) -> float:
        comprehension = [item.comprehension for item in metrics]
        total_questions = sum(len(session.reaction.questions) for session in sessions)
        question_economy = max(0.0, 1.0 - total_questions / (len(sessions) * 3))
        return clamp(
            0.4 * mean(comprehension)
            + 0.2 * progression_factor(comprehension)
            + 0.2 * consistency_factor(comprehension)
            + 0.2 * question_economy
        )

    def patience(self, sessions: Sequence[SessionRecord], metrics: Sequence[SessionMetrics]) -> float:
        frustration = mean([clamp(session.reaction.frustration) for session in sessions])
        corrections = mean([clamp(session.reaction.corrections_accepted) for session in sessions])
        durations = [max(0.0, session.duration) for session in sessions]
        duration_stability = max(0.0, 1.0 - statistics.pstdev(durations) / 30) if len(durations) > 1 else 1.0
        return clamp(
            0.3 * (1.0 - frustration)
            + 0.3 * corrections
            + 0.2 * consistency_factor([item.engagement for item in metrics])
            + 0.2 * duration_stability
        )

    def adaptation(self, sessions: Sequence[SessionRecord], metrics: Sequence[SessionMetrics]) -> float:
        methods = {session.teaching_method for session in sessions}
        return clamp(
            0.5 * mean([item.adaptation_speed for item in metrics])
            + 0.3 * min(1.0, len(methods) / 3)
            + 0.2 * self.content_adaptation(sessions)
        )

    def content_adaptation(self, sessions: Sequence[SessionRecord]) -> float:
        """How smoothly concept load and error counts evolve between consecutive sessions."""
        if len(sessions) < 2:
            return 0.7
        pairs = list(zip(sessions, sessions[1:]))
        smooth_steps = 0
        error_adaptation = 0.0
        for previous, current in pairs:
            change = len(current.concepts) - len(previous.concepts)
            if -1 <= change <= 2:
                smooth_steps += 1
            previous_errors = len(previous.reaction.errors)
            current_errors = len(current.reaction.errors)
            if previous_errors > 2 and current_errors <= previous_errors:
                error_adaptation += 1.0
            elif previous_errors <= 2:
                error_adaptation += 0.8
        complexity_progression = smooth_steps / len(pairs)
        return 0.6 * complexity_progression + 0.4 * (error_adaptation / len(pairs))

    def encouragement(self, sessions: Sequence[SessionRecord], metrics: Sequence[SessionMetrics]) -> float:
        engagement = [item.engagement for item in metrics]
        motivated = sum(1 for item in metrics if item.adaptation_speed > 0)
        objectives = mean([clamp(session.results.objectives_achieved) for session in sessions])
        return clamp(
            0.40 * mean(engagement)
            + 0.25 * (motivated / len(metrics))
            + 0.15 * progression_factor(engagement)
            + 0.10 * mean([item.error_recovery for item in metrics])
            + 0.10 * objectives
        )

    def cultural_sensitivity(
        self,
        sessions: Sequence[SessionRecord],
        metrics: Sequence[SessionMetrics],
        context: EvaluationContext,
    ) -> float:
        if not self.cultural_authenticity:
            return DISABLED_CULTURAL_SCORE
        concepts: List[str] = [concept for session in sessions for concept in session.concepts]
        cultural = sum(1 for concept in concepts if is_cultural_concept(concept))
        elements_usage = min(1.0, cultural / len(concepts) * 5) if concepts else 0.0
        contextual = 0.5 if context.cultural_tier is CulturalTier.GENERAL else 0.8
        nuanced = sum(
            1 for concept in concepts if any(keyword in concept.lower() for keyword in NUANCE_KEYWORDS)
        )
        nuance = 0.6 * contextual + 0.4 * min(1.0, nuanced / 5)
        return clamp(
            0.4 * mean([item.cultural for item in metrics]) + 0.3 * elements_usage + 0.3 * nuance
        )

from __future__ import annotations

from typing import Dict, List, Sequence

from coda_mentor.config.schema import AnalysisDepth
from coda_mentor.evaluation.models import (
    CompetencyScore,
    Dimension,
    EvaluationContext,
    ExperienceTier,
    MentorFeedback,
    SessionMetrics,
)
from coda_mentor.evaluation.scorer import mean

STRENGTH_THRESHOLD = 0.75
IMPROVEMENT_THRESHOLD = 0.6
FOCUS_THRESHOLD = 0.7

STRENGTH_MESSAGES: Dict[Dimension, str] = {
    Dimension.EXPLANATION: "Clear, well-structured explanations",
    Dimension.PATIENCE: "Remarkable patience with the student",
    Dimension.ADAPTATION: "Adapts quickly to the student's needs",
    Dimension.ENCOURAGEMENT: "Motivating and encouraging presence",
    Dimension.CULTURAL_SENSITIVITY: "Strong awareness of Deaf culture",
}

IMPROVEMENT_MESSAGES: Dict[Dimension, str] = {
    Dimension.EXPLANATION: "Make explanations clearer and check understanding more often",
    Dimension.PATIENCE: "Give the student more time before correcting",
    Dimension.ADAPTATION: "Vary teaching methods to match the student's progress",
    Dimension.ENCOURAGEMENT: "Acknowledge progress more often",
    Dimension.CULTURAL_SENSITIVITY: "Bring more Deaf cultural context into lessons",
}

DEPTH_LIMITS: Dict[AnalysisDepth, int] = {
    AnalysisDepth.SURFACE: 1,
    AnalysisDepth.DETAILED: 3,
    AnalysisDepth.COMPREHENSIVE: len(Dimension) + 1,
}


def generate_feedback(
    score: CompetencyScore,
    context: EvaluationContext,
    metrics: Sequence[SessionMetrics] = (),
    depth: AnalysisDepth = AnalysisDepth.COMPREHENSIVE,
) -> MentorFeedback:
    """Summarize mentor strengths, improvement areas, and recommendations from a competency score."""
    dimensions = score.dimensions()
    ranked = sorted(dimensions.items(), key=lambda item: item[1], reverse=True)

    strengths: List[str] = [
        f"{STRENGTH_MESSAGES[dimension]} (score {value:.2f})."
        for dimension, value in ranked
        if value > STRENGTH_THRESHOLD
    ]
    improvements: List[str] = [
        f"{IMPROVEMENT_MESSAGES[dimension]} (score {value:.2f})."
        for dimension, value in reversed(ranked)
        if value < IMPROVEMENT_THRESHOLD
    ]
    if metrics and mean([item.engagement for item in metrics]) < IMPROVEMENT_THRESHOLD:
        improvements.append("Make sessions more interactive to lift student engagement.")

    recommendations: List[str] = []
    if context.experience is ExperienceTier.NOVICE:
        recommendations.append("Follow the introductory mentor training before taking on new topics.")
    elif context.experience is ExperienceTier.EXPERT:
        recommendations.append("Consider mentoring newer mentors.")
    weakest, weakest_value = ranked[-1]
    if weakest_value < FOCUS_THRESHOLD:
        recommendations.append(
            f"Focus the next sessions on {weakest.value.replace('_', ' ')} (score {weakest_value:.2f})."
        )
    if not recommendations:
        recommendations.append("Keep the current approach and review progress after five sessions.")

    limit = DEPTH_LIMITS[depth]
    return MentorFeedback(
        strengths=tuple(strengths[:limit]),
        improvements=tuple(improvements[:limit]),
        recommendations=tuple(recommendations[:limit]),
    )

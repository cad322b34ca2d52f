from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from coda_mentor.data_models import SessionRecord
from coda_mentor.evaluation.models import (
    CompetencyScore,
    Dimension,
    EvaluationContext,
    SupportBundle,
    SupportTarget,
    SupportType,
)
from coda_mentor.evaluation.scorer import clamp

logger = logging.getLogger(__name__)

WEAKNESS_THRESHOLD = 0.6
GENERAL_THRESHOLD = 0.5
ADVANCED_THRESHOLD = 0.8
MIN_EFFECTIVENESS = 0.3
MAX_EFFECTIVENESS = 0.95

MAX_POTENTIAL: Dict[SupportTarget, float] = {
    SupportTarget.EXPLANATION: 0.8,
    SupportTarget.PATIENCE: 0.7,
    SupportTarget.ADAPTATION: 0.75,
    SupportTarget.ENCOURAGEMENT: 0.85,
    SupportTarget.CULTURAL_SENSITIVITY: 0.9,
    SupportTarget.GENERAL: 0.6,
}

SUPPORT_TYPES: Dict[SupportTarget, SupportType] = {
    SupportTarget.EXPLANATION: SupportType.EXPLANATION_GUIDE,
    SupportTarget.PATIENCE: SupportType.EXERCISE_TEMPLATE,
    SupportTarget.ADAPTATION: SupportType.EXERCISE_TEMPLATE,
    SupportTarget.ENCOURAGEMENT: SupportType.EXPLANATION_GUIDE,
    SupportTarget.CULTURAL_SENSITIVITY: SupportType.CULTURAL_CONTEXT,
    SupportTarget.GENERAL: SupportType.EXPLANATION_GUIDE,
    SupportTarget.ADVANCED: SupportType.EXPLANATION_GUIDE,
}

# (id prefix, title, description, content)
SUPPORT_CATALOG: Dict[SupportTarget, Tuple[str, str, str, Dict[str, List[str]]]] = {
    SupportTarget.EXPLANATION: (
        "explanation_guide",
        "Clear explanations in sign language",
        "Techniques for presenting signed-language concepts clearly.",
        {
            "tips": [
                "Break complex signs into simple movements.",
                "Use space to show relationships between ideas.",
                "Repeat key signs with controlled variations.",
                "Check understanding with short open questions.",
            ],
            "exercises": [
                "Explain one concept three different ways.",
                "Sign a short explanation using only classifiers.",
            ],
        },
    ),
    SupportTarget.PATIENCE: (
        "patience_exercises",
        "Building teaching patience",
        "Exercises for staying calm and supportive when progress is slow.",
        {
            "exercises": [
                "Pause for five seconds before correcting a mistake.",
                "Let the student finish every attempt before stepping in.",
                "Keep a log of small wins within each session.",
            ],
            "strategies": [
                "Plan extra repetitions for difficult signs.",
                "Treat errors as information about what to reteach.",
            ],
        },
    ),
    SupportTarget.ADAPTATION: (
        "adaptation_techniques",
        "Flexible teaching and adaptation",
        "Methods for adjusting quickly to the student's needs.",
        {
            "techniques": [
                "Switch between visual, narrative, and hands-on methods.",
                "Reduce the number of new concepts after a difficult session.",
                "Reuse the student's own examples in new material.",
            ],
            "exercises": [
                "Prepare two alternative plans for every lesson.",
                "Review the last session's errors before choosing today's method.",
            ],
        },
    ),
    SupportTarget.ENCOURAGEMENT: (
        "encouragement_scripts",
        "Motivation and encouragement",
        "Strategies for sustaining motivation and celebrating progress.",
        {
            "strategies": [
                "Name a specific improvement at the end of each session.",
                "Set small objectives the student can reach today.",
                "Celebrate each newly acquired sign.",
            ],
            "phrases": [
                "Your handshape is much clearer than last week.",
                "You remembered that sign without a prompt.",
            ],
        },
    ),
    SupportTarget.CULTURAL_SENSITIVITY: (
        "cultural_context",
        "Deaf culture in depth",
        "Understanding and weaving Deaf culture into every lesson.",
        {
            "topics": [
                "History of the Deaf community and its sign languages.",
                "Community norms for attention, eye contact, and turn taking.",
                "Deaf arts, storytelling, and visual humour.",
            ],
            "activities": [
                "Share a story from a Deaf community member.",
                "Discuss name signs and how they are given.",
            ],
            "resources": [
                "Local Deaf association events.",
                "Documentaries produced by Deaf filmmakers.",
            ],
        },
    ),
    SupportTarget.GENERAL: (
        "general_improvement",
        "Overall teaching improvement plan",
        "A structured programme covering every mentoring competency.",
        {
            "phases": [
                "Master core teaching techniques.",
                "Practise with guided feedback.",
                "Refine an individual teaching style.",
            ],
            "objectives": [
                "Raise every competency above 0.6.",
                "Hold regular sessions for four consecutive weeks.",
            ],
        },
    ),
    SupportTarget.ADVANCED: (
        "advanced_training",
        "Advanced training and specialisation",
        "Further development paths for experienced mentors.",
        {
            "specializations": [
                "Teaching regional variants.",
                "Mentoring new mentors.",
                "Designing immersive curricula.",
            ],
            "certifications": [
                "Advanced sign-language pedagogy.",
                "Deaf cultural mediation.",
            ],
        },
    ),
}

DIMENSION_TARGETS: Dict[Dimension, SupportTarget] = {
    Dimension.EXPLANATION: SupportTarget.EXPLANATION,
    Dimension.PATIENCE: SupportTarget.PATIENCE,
    Dimension.ADAPTATION: SupportTarget.ADAPTATION,
    Dimension.ENCOURAGEMENT: SupportTarget.ENCOURAGEMENT,
    Dimension.CULTURAL_SENSITIVITY: SupportTarget.CULTURAL_SENSITIVITY,
}


def estimate_effectiveness(max_potential: float, current_score: float) -> float:
    """Larger weaknesses leave more room to improve, bounded to [0.3, 0.95]."""
    return clamp(
        max_potential * (0.5 + (1 - clamp(current_score)) * 0.5),
        MIN_EFFECTIVENESS,
        MAX_EFFECTIVENESS,
    )


class SupportGenerator:
    """Turn weak competency dimensions into remediation bundles."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def _bundle(self, target: SupportTarget, subject_id: str, effectiveness: float) -> SupportBundle:
        prefix, title, description, content = SUPPORT_CATALOG[target]
        return SupportBundle(
            id=f"{prefix}-{subject_id}",
            type=SUPPORT_TYPES[target],
            title=title,
            description=description,
            content=content,
            target=target,
            estimated_effectiveness=effectiveness,
        )

    def generate(
        self,
        sessions: Sequence[SessionRecord],
        context: EvaluationContext,
        score: CompetencyScore,
    ) -> Tuple[SupportBundle, ...]:
        if not self.enabled:
            return ()
        supports: List[SupportBundle] = []
        for dimension, value in score.dimensions().items():
            if value < WEAKNESS_THRESHOLD:
                target = DIMENSION_TARGETS[dimension]
                supports.append(
                    self._bundle(
                        target,
                        context.subject_id,
                        estimate_effectiveness(MAX_POTENTIAL[target], value),
                    )
                )
        if score.overall_score < GENERAL_THRESHOLD:
            supports.append(
                self._bundle(
                    SupportTarget.GENERAL,
                    context.subject_id,
                    estimate_effectiveness(MAX_POTENTIAL[SupportTarget.GENERAL], score.overall_score),
                )
            )
        if score.overall_score > ADVANCED_THRESHOLD:
            supports.append(
                self._bundle(
                    SupportTarget.ADVANCED,
                    context.subject_id,
                    min(MAX_EFFECTIVENESS, score.overall_score + 0.1),
                )
            )
        logger.debug(
            "Generated %d supports for %s from %d sessions",
            len(supports),
            context.subject_id,
            len(sessions),
        )
        return tuple(supports)

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from coda_mentor.data_models import SessionRecord
from coda_mentor.evaluation.levels import LevelClassifier
from coda_mentor.evaluation.models import (
    CefrLevel,
    CompetencyScore,
    EvaluationContext,
    ExperienceTier,
    LearningTrend,
    LevelProgressionPrediction,
    MilestonePrediction,
    Opportunity,
    OpportunityArea,
    PredictionBundle,
    RiskFactor,
    RiskKind,
    Severity,
    Skill,
    TrendDirection,
)
from coda_mentor.evaluation.scorer import clamp, mean

logger = logging.getLogger(__name__)

LEVEL_SKILLS: Dict[CefrLevel, Tuple[Skill, ...]] = {
    CefrLevel.A1: (Skill.BASIC_GREETINGS, Skill.SIMPLE_SIGNS, Skill.BASIC_GRAMMAR),
    CefrLevel.A2: (Skill.COMPLEX_SENTENCES, Skill.TIME_EXPRESSIONS, Skill.PAST_TENSE),
    CefrLevel.B1: (Skill.STORYTELLING, Skill.ABSTRACT_CONCEPTS, Skill.CULTURAL_REFERENCES),
    CefrLevel.B2: (Skill.ADVANCED_GRAMMAR, Skill.NUANCED_EXPRESSIONS, Skill.DEBATE_SKILLS),
    CefrLevel.C1: (
        Skill.PROFESSIONAL_COMMUNICATION,
        Skill.LITERARY_ANALYSIS,
        Skill.REGIONAL_VARIATIONS,
    ),
    CefrLevel.C2: (Skill.EXPERT_FLUENCY, Skill.CULTURAL_MASTERY, Skill.TEACHING_SKILLS),
}

EARLY_SKILLS_PER_LEVEL = 2

SKILL_BASE_DAYS: Dict[Skill, int] = {
    Skill.BASIC_GREETINGS: 7,
    Skill.SIMPLE_SIGNS: 14,
    Skill.BASIC_GRAMMAR: 21,
    Skill.COMPLEX_SENTENCES: 28,
    Skill.STORYTELLING: 35,
    Skill.ADVANCED_GRAMMAR: 42,
    Skill.PROFESSIONAL_COMMUNICATION: 60,
    Skill.EXPERT_FLUENCY: 90,
}
DEFAULT_SKILL_DAYS = 30

LEVEL_DIFFICULTY: Dict[CefrLevel, float] = {
    CefrLevel.A1: 1.0,
    CefrLevel.A2: 1.1,
    CefrLevel.B1: 1.25,
    CefrLevel.B2: 1.4,
    CefrLevel.C1: 1.6,
    CefrLevel.C2: 1.8,
}

# Level at which each skill is normally taught; skills absent here get no distance penalty.
SKILL_CANONICAL_LEVEL: Dict[Skill, CefrLevel] = {
    Skill.BASIC_GREETINGS: CefrLevel.A1,
    Skill.SIMPLE_SIGNS: CefrLevel.A1,
    Skill.BASIC_GRAMMAR: CefrLevel.A2,
    Skill.COMPLEX_SENTENCES: CefrLevel.A2,
    Skill.TIME_EXPRESSIONS: CefrLevel.A2,
    Skill.STORYTELLING: CefrLevel.B1,
    Skill.ABSTRACT_CONCEPTS: CefrLevel.B1,
    Skill.CULTURAL_REFERENCES: CefrLevel.B1,
    Skill.ADVANCED_GRAMMAR: CefrLevel.B2,
    Skill.NUANCED_EXPRESSIONS: CefrLevel.B2,
    Skill.DEBATE_SKILLS: CefrLevel.B2,
    Skill.PROFESSIONAL_COMMUNICATION: CefrLevel.C1,
    Skill.LITERARY_ANALYSIS: CefrLevel.C1,
    Skill.REGIONAL_VARIATIONS: CefrLevel.C1,
    Skill.EXPERT_FLUENCY: CefrLevel.C2,
    Skill.CULTURAL_MASTERY: CefrLevel.C2,
    Skill.TEACHING_SKILLS: CefrLevel.C2,
}

DISTANCE_FACTORS = (1.0, 1.1, 1.25)
FAR_DISTANCE_FACTOR = 1.4

SKILL_PREREQUISITES: Dict[Skill, Tuple[Skill, ...]] = {
    Skill.COMPLEX_SENTENCES: (Skill.BASIC_GRAMMAR, Skill.SIMPLE_SIGNS),
    Skill.STORYTELLING: (Skill.COMPLEX_SENTENCES, Skill.TIME_EXPRESSIONS),
    Skill.ADVANCED_GRAMMAR: (Skill.STORYTELLING, Skill.CULTURAL_REFERENCES),
    Skill.PROFESSIONAL_COMMUNICATION: (Skill.ADVANCED_GRAMMAR, Skill.NUANCED_EXPRESSIONS),
}

MIN_MILESTONE_DAYS = 3
MIN_LEVEL_DAYS = 15

# Calendar days to reach each level; distinct from the study-hour figures in LEVEL_TABLE.
LEVEL_DURATION_DAYS: Dict[CefrLevel, int] = {
    CefrLevel.A1: 45,
    CefrLevel.A2: 60,
    CefrLevel.B1: 75,
    CefrLevel.B2: 90,
    CefrLevel.C1: 120,
    CefrLevel.C2: 150,
}
DEFAULT_INTERVAL_DAYS = 7.0
DEFAULT_ENGAGEMENT = 0.5

RISK_TEMPLATES: Dict[RiskKind, Tuple[str, str]] = {
    RiskKind.DECLINING_PERFORMANCE: (
        "Student results are dropping and may stall progress toward the next level.",
        "Revisit recent material, slow the pace, and check which concepts are no longer landing.",
    ),
    RiskKind.MENTOR_PATIENCE_LOW: (
        "Impatience raises student frustration and discourages questions.",
        "Plan pauses, allow extra repetitions, and follow the patience exercises.",
    ),
    RiskKind.POOR_ADAPTATION: (
        "Teaching that does not adjust to the student leaves gaps unaddressed.",
        "Rotate teaching methods and tune concept load to the latest session results.",
    ),
    RiskKind.LOW_SESSION_FREQUENCY: (
        "Long gaps between sessions cause skills to fade before they are reinforced.",
        "Schedule shorter sessions more often, ideally at least once a week.",
    ),
    RiskKind.LOW_ENGAGEMENT: (
        "A disengaged student is likely to drop out of the program.",
        "Introduce interactive activities and topics chosen by the student.",
    ),
}

OPPORTUNITY_TEMPLATES: Dict[OpportunityArea, Tuple[int, str, Tuple[str, ...]]] = {
    OpportunityArea.CULTURAL_MENTORSHIP: (
        30,
        "Lead cultural immersion sessions and share Deaf community experience.",
        ("Richer cultural understanding", "Stronger community ties", "Authentic signing"),
    ),
    OpportunityArea.ADVANCED_PEDAGOGY: (
        45,
        "Try advanced teaching techniques and build original material.",
        ("Faster student progress", "Reusable teaching resources"),
    ),
    OpportunityArea.ACCELERATED_LEARNING: (
        21,
        "Raise the pace and introduce content from the next level.",
        ("Earlier level transition", "Sustained motivation"),
    ),
    OpportunityArea.MENTOR_TRAINING: (
        60,
        "Train and supervise newer mentors.",
        ("Knowledge transfer", "Recognition as a reference mentor"),
    ),
    OpportunityArea.IMMERSIVE_LEARNING: (
        14,
        "Move to immersive sessions conducted entirely in sign language.",
        ("Natural fluency", "Real-world confidence"),
    ),
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def required_sessions(days: float, interval_days: float) -> int:
    """Sessions that fit into `days` at the observed cadence, at least one."""
    interval = interval_days if interval_days > 0 else DEFAULT_INTERVAL_DAYS
    return max(1, math.ceil(days / interval))


def average_interval_days(sessions: Sequence[SessionRecord]) -> float:
    """Mean gap between consecutive sessions in days, after sorting by timestamp."""
    if len(sessions) < 2:
        return DEFAULT_INTERVAL_DAYS
    stamps = sorted(session.timestamp for session in sessions)
    gaps = [(later - earlier).total_seconds() / 86400 for earlier, later in zip(stamps, stamps[1:])]
    return mean(gaps)


def average_engagement(sessions: Sequence[SessionRecord]) -> float:
    if not sessions:
        return DEFAULT_ENGAGEMENT
    return mean([clamp(session.results.satisfaction) for session in sessions])


def reference_time(sessions: Sequence[SessionRecord], now: Optional[datetime] = None) -> datetime:
    """Latest session timestamp; falls back to `now` (UTC) with no sessions."""
    if sessions:
        return max(session.timestamp for session in sessions)
    return now or datetime.now(timezone.utc)


class PredictionEngine:
    """
    Forecast milestones, level transitions, risks and opportunities.

    Parameters
    ----------
    classifier : LevelClassifier
        Supplies level ordering and per-level durations.
    enabled : bool
        When False, `predict` returns `default_bundle` without computing anything.
    enable_risk_analysis : bool
        Toggle for the risk rules; opportunities are always evaluated.
    """

    def __init__(
        self,
        classifier: Optional[LevelClassifier] = None,
        enabled: bool = True,
        enable_risk_analysis: bool = True,
    ):
        self.classifier = classifier or LevelClassifier()
        self.enabled = enabled
        self.enable_risk_analysis = enable_risk_analysis

    def predict(
        self,
        sessions: Sequence[SessionRecord],
        context: EvaluationContext,
        score: CompetencyScore,
        trend: LearningTrend,
        now: Optional[datetime] = None,
    ) -> PredictionBundle:
        reference = reference_time(sessions, now)
        if not self.enabled:
            return self.default_bundle(context.student_level, reference)

        interval = average_interval_days(sessions)
        milestone = self.predict_milestone(sessions, context, score, trend, reference, interval)
        progression = self.predict_level_progression(
            sessions, context, score, trend, milestone.confidence, interval
        )
        risks = self.identify_risks(sessions, score, trend, interval) if self.enable_risk_analysis else ()
        opportunities = self.identify_opportunities(context, score, trend)
        logger.debug(
            "Predicted milestone %s in %d days with %d risks and %d opportunities",
            milestone.skill,
            milestone.estimated_days,
            len(risks),
            len(opportunities),
        )
        return PredictionBundle(milestone, progression, tuple(risks), tuple(opportunities))

    def default_bundle(self, current: CefrLevel, reference: datetime) -> PredictionBundle:
        """Fixed forecast returned when predictive analysis is switched off."""
        return PredictionBundle(
            next_milestone=MilestonePrediction(
                skill=Skill.BASIC_CONVERSATION.value,
                estimated_date=reference + timedelta(days=14),
                estimated_days=14,
                confidence=0.7,
                required_sessions=0,
            ),
            level_progression=LevelProgressionPrediction(
                current_level=current,
                next_level=self.classifier.next_level(current),
                estimated_days=LEVEL_DURATION_DAYS[current],
                required_sessions=15,
                progression_rate=0.6,
                confidence=0.6,
            ),
        )

    # Milestones

    @staticmethod
    def covered_concepts(sessions: Sequence[SessionRecord]) -> set:
        return {concept for session in sessions for concept in session.concepts}

    def next_skill(self, level: CefrLevel, covered: set) -> Skill:
        for skill in LEVEL_SKILLS[level]:
            if skill.value not in covered:
                return skill
        return Skill.ADVANCED_CONVERSATION

    def skill_days(self, skill: Skill, level: CefrLevel) -> int:
        """Base duration for `skill` scaled by level difficulty, position, and level distance."""
        days = SKILL_BASE_DAYS.get(skill, DEFAULT_SKILL_DAYS) * LEVEL_DIFFICULTY[level]
        early = LEVEL_SKILLS[level][:EARLY_SKILLS_PER_LEVEL]
        days *= 0.8 if skill in early else 1.3
        days *= self.distance_factor(skill, level)
        return max(MIN_MILESTONE_DAYS, round_half_up(days))

    @staticmethod
    def distance_factor(skill: Skill, level: CefrLevel) -> float:
        canonical = SKILL_CANONICAL_LEVEL.get(skill)
        if canonical is None:
            return 1.0
        distance = abs(canonical.rank - level.rank)
        if distance < len(DISTANCE_FACTORS):
            return DISTANCE_FACTORS[distance]
        return FAR_DISTANCE_FACTOR

    @staticmethod
    def adjust_for_performance(days: int, score: CompetencyScore, trend: LearningTrend) -> int:
        trend_adjustment = 0.0
        if trend.direction is TrendDirection.IMPROVING:
            trend_adjustment = -trend.strength * 0.3
        elif trend.direction is TrendDirection.DECLINING:
            trend_adjustment = trend.strength * 0.5
        mentor_adjustment = (score.overall_score - 0.5) * 0.4
        factor = 1 + trend_adjustment - mentor_adjustment
        return max(MIN_MILESTONE_DAYS, round_half_up(days * factor))

    @staticmethod
    def milestone_confidence(session_count: int, score: CompetencyScore, trend: LearningTrend) -> float:
        confidence = (
            min(0.9, session_count / 10)
            + (score.overall_score - 0.5) * 0.3
            + trend.reliability * trend.consistency * 0.2
        )
        return clamp(confidence, 0.3, 0.95)

    def predict_milestone(
        self,
        sessions: Sequence[SessionRecord],
        context: EvaluationContext,
        score: CompetencyScore,
        trend: LearningTrend,
        reference: datetime,
        interval: float,
    ) -> MilestonePrediction:
        skill = self.next_skill(context.student_level, self.covered_concepts(sessions))
        days = self.adjust_for_performance(
            self.skill_days(skill, context.student_level), score, trend
        )
        return MilestonePrediction(
            skill=skill.value,
            estimated_date=reference + timedelta(days=days),
            estimated_days=days,
            confidence=self.milestone_confidence(len(sessions), score, trend),
            required_sessions=required_sessions(days, interval),
            prerequisites=tuple(item.value for item in SKILL_PREREQUISITES.get(skill, ())),
        )

    # Level progression

    def predict_level_progression(
        self,
        sessions: Sequence[SessionRecord],
        context: EvaluationContext,
        score: CompetencyScore,
        trend: LearningTrend,
        milestone_confidence: float,
        interval: float,
    ) -> LevelProgressionPrediction:
        current = context.student_level
        target = self.classifier.next_level(current)
        base = LEVEL_DURATION_DAYS[target]

        mentor_adjustment = (score.overall_score - 0.5) * 0.3
        trend_adjustment = 0.0
        if trend.direction is TrendDirection.IMPROVING:
            trend_adjustment = trend.strength * trend.reliability * 0.25
        elif trend.direction is TrendDirection.DECLINING:
            trend_adjustment = -trend.strength * trend.reliability * 0.15
        estimated = max(MIN_LEVEL_DAYS, round_half_up(base * (1 - mentor_adjustment - trend_adjustment)))

        return LevelProgressionPrediction(
            current_level=current,
            next_level=target,
            estimated_days=estimated,
            required_sessions=required_sessions(estimated, interval),
            progression_rate=self.progression_rate(sessions, trend),
            confidence=max(0.2, 0.8 * milestone_confidence),
        )

    @staticmethod
    def progression_rate(sessions: Sequence[SessionRecord], trend: LearningTrend) -> float:
        if not sessions:
            return 0.5
        rate = mean([clamp(session.results.improvement, -1.0, 1.0) for session in sessions])
        if trend.direction is TrendDirection.IMPROVING:
            rate += trend.strength * 0.2
        return clamp(rate, 0.1, 1.0)

    # Risks and opportunities

    @staticmethod
    def _risk(kind: RiskKind, severity: Severity, probability: float) -> RiskFactor:
        impact, mitigation = RISK_TEMPLATES[kind]
        return RiskFactor(kind, severity, clamp(probability), impact, mitigation)

    def identify_risks(
        self,
        sessions: Sequence[SessionRecord],
        score: CompetencyScore,
        trend: LearningTrend,
        interval: Optional[float] = None,
    ) -> List[RiskFactor]:
        risks: List[RiskFactor] = []
        if trend.direction is TrendDirection.DECLINING and trend.strength > 0.3:
            severity = Severity.HIGH if trend.strength > 0.6 else Severity.MEDIUM
            risks.append(self._risk(RiskKind.DECLINING_PERFORMANCE, severity, trend.reliability))
        if score.patience < 0.5:
            severity = Severity.HIGH if score.patience < 0.3 else Severity.MEDIUM
            risks.append(self._risk(RiskKind.MENTOR_PATIENCE_LOW, severity, 0.8))
        if score.adaptation < 0.4:
            risks.append(self._risk(RiskKind.POOR_ADAPTATION, Severity.MEDIUM, 0.7))
        gap = average_interval_days(sessions) if interval is None else interval
        if gap > 7:
            severity = Severity.HIGH if gap > 14 else Severity.MEDIUM
            risks.append(self._risk(RiskKind.LOW_SESSION_FREQUENCY, severity, 0.6))
        engagement = average_engagement(sessions)
        if engagement < 0.4:
            severity = Severity.CRITICAL if engagement < 0.3 else Severity.HIGH
            risks.append(self._risk(RiskKind.LOW_ENGAGEMENT, severity, 0.9))
        return risks

    @staticmethod
    def _opportunity(area: OpportunityArea, potential: float) -> Opportunity:
        timeframe, recommendation, benefits = OPPORTUNITY_TEMPLATES[area]
        return Opportunity(area, clamp(potential), timeframe, recommendation, benefits)

    def identify_opportunities(
        self, context: EvaluationContext, score: CompetencyScore, trend: LearningTrend
    ) -> List[Opportunity]:
        opportunities: List[Opportunity] = []
        if score.cultural_sensitivity > 0.8:
            opportunities.append(
                self._opportunity(OpportunityArea.CULTURAL_MENTORSHIP, score.cultural_sensitivity)
            )
        if score.explanation > 0.85:
            opportunities.append(
                self._opportunity(OpportunityArea.ADVANCED_PEDAGOGY, score.explanation)
            )
        if trend.direction is TrendDirection.IMPROVING and trend.strength > 0.5:
            opportunities.append(
                self._opportunity(
                    OpportunityArea.ACCELERATED_LEARNING, trend.strength * trend.reliability
                )
            )
        if context.experience is ExperienceTier.EXPERT and score.overall_score > 0.9:
            opportunities.append(self._opportunity(OpportunityArea.MENTOR_TRAINING, 0.95))
        if score.overall_score > 0.7 and trend.direction is not TrendDirection.DECLINING:
            opportunities.append(self._opportunity(OpportunityArea.IMMERSIVE_LEARNING, 0.8))
        return opportunities


from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class Dimension(str, Enum):
    """Scored facets of teaching skill."""

    EXPLANATION = "explanation"
    PATIENCE = "patience"
    ADAPTATION = "adaptation"
    ENCOURAGEMENT = "encouragement"
    CULTURAL_SENSITIVITY = "cultural_sensitivity"


class TeachingLevel(str, Enum):
    NOVICE = "novice"
    DEVELOPING = "developing"
    PROFICIENT = "proficient"
    EXPERT = "expert"


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class CefrLevel(str, Enum):
    """Six ranked proficiency stages, lowest first."""

    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"

    @property
    def rank(self) -> int:
        return CEFR_ORDER.index(self)


CEFR_ORDER: Tuple[CefrLevel, ...] = tuple(CefrLevel)


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ExperienceTier(str, Enum):
    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    EXPERIENCED = "experienced"
    EXPERT = "expert"


class CulturalTier(str, Enum):
    GENERAL = "general"
    BASIC = "basic"
    MODERATE = "moderate"
    RICH = "rich"


class Mood(str, Enum):
    HAPPY = "happy"
    CONFUSED = "confused"
    FRUSTRATED = "frustrated"
    EXCITED = "excited"
    NEUTRAL = "neutral"


class TransitionDirection(str, Enum):
    ADVANCE = "advance"
    REGRESS = "regress"
    HOLD = "hold"


class SupportType(str, Enum):
    VISUAL_AID = "visual_aid"
    EXERCISE_TEMPLATE = "exercise_template"
    EXPLANATION_GUIDE = "explanation_guide"
    CULTURAL_CONTEXT = "cultural_context"


class SupportTarget(str, Enum):
    """What a support bundle addresses: one dimension, or the mentor as a whole."""

    EXPLANATION = "explanation"
    PATIENCE = "patience"
    ADAPTATION = "adaptation"
    ENCOURAGEMENT = "encouragement"
    CULTURAL_SENSITIVITY = "cultural_sensitivity"
    GENERAL = "general"
    ADVANCED = "advanced"


class RiskKind(str, Enum):
    DECLINING_PERFORMANCE = "declining_performance"
    MENTOR_PATIENCE_LOW = "mentor_patience_low"
    POOR_ADAPTATION = "poor_adaptation"
    LOW_SESSION_FREQUENCY = "low_session_frequency"
    LOW_ENGAGEMENT = "low_engagement"


class OpportunityArea(str, Enum):
    CULTURAL_MENTORSHIP = "cultural_mentorship"
    ADVANCED_PEDAGOGY = "advanced_pedagogy"
    ACCELERATED_LEARNING = "accelerated_learning"
    MENTOR_TRAINING = "mentor_training"
    IMMERSIVE_LEARNING = "immersive_learning"


class Skill(str, Enum):
    """Milestone skills tracked for the virtual student."""

    BASIC_GREETINGS = "basic_greetings"
    SIMPLE_SIGNS = "simple_signs"
    BASIC_GRAMMAR = "basic_grammar"
    COMPLEX_SENTENCES = "complex_sentences"
    TIME_EXPRESSIONS = "time_expressions"
    PAST_TENSE = "past_tense"
    STORYTELLING = "storytelling"
    ABSTRACT_CONCEPTS = "abstract_concepts"
    CULTURAL_REFERENCES = "cultural_references"
    ADVANCED_GRAMMAR = "advanced_grammar"
    NUANCED_EXPRESSIONS = "nuanced_expressions"
    DEBATE_SKILLS = "debate_skills"
    PROFESSIONAL_COMMUNICATION = "professional_communication"
    LITERARY_ANALYSIS = "literary_analysis"
    REGIONAL_VARIATIONS = "regional_variations"
    EXPERT_FLUENCY = "expert_fluency"
    CULTURAL_MASTERY = "cultural_mastery"
    TEACHING_SKILLS = "teaching_skills"
    ADVANCED_CONVERSATION = "advanced_conversation"
    BASIC_CONVERSATION = "basic_conversation"


def freeze(value: Any) -> Any:
    """Recursively turn dicts into read-only mappings and lists into tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def to_jsonable(value: Any) -> Any:
    """Convert result dataclasses (enums, datetimes, read-only mappings) into JSON-friendly values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: to_jsonable(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(to_jsonable(key)): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


@dataclass(frozen=True)
class SessionMetrics:
    """Intermediate per-session signals feeding the competency formulas."""

    comprehension: float
    engagement: float
    error_recovery: float
    adaptation_speed: float
    cultural: float


@dataclass(frozen=True)
class CompetencyScore:
    """Five teaching dimensions plus their weighted aggregate."""

    explanation: float
    patience: float
    adaptation: float
    encouragement: float
    cultural_sensitivity: float
    overall_score: float
    teaching_level: TeachingLevel

    def dimension(self, dimension: Dimension) -> float:
        return getattr(self, dimension.value)

    def dimensions(self) -> Dict[Dimension, float]:
        return {dimension: self.dimension(dimension) for dimension in Dimension}


@dataclass(frozen=True)
class LearningTrend:
    direction: TrendDirection
    strength: float
    consistency: float
    reliability: float

    @classmethod
    def neutral(cls) -> "LearningTrend":
        """Trend reported when there are too few sessions to compare halves."""
        return cls(TrendDirection.STABLE, 0.5, 0.5, 0.3)


@dataclass(frozen=True)
class OrdinalLevel:
    """One row of the proficiency ladder."""

    rank: CefrLevel
    name: str
    minimum_score: float
    progression_score: float
    recommended_hours: int
    expected_skills: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MilestonePrediction:
    skill: str
    estimated_date: datetime
    estimated_days: int
    confidence: float
    required_sessions: int
    prerequisites: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LevelProgressionPrediction:
    current_level: CefrLevel
    next_level: CefrLevel
    estimated_days: int
    required_sessions: int
    progression_rate: float
    confidence: float


@dataclass(frozen=True)
class RiskFactor:
    factor: RiskKind
    severity: Severity
    probability: float
    impact: str
    mitigation: str


@dataclass(frozen=True)
class Opportunity:
    area: OpportunityArea
    potential: float
    timeframe_days: int
    recommendation: str
    benefits: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PredictionBundle:
    next_milestone: MilestonePrediction
    level_progression: LevelProgressionPrediction
    risk_factors: Tuple[RiskFactor, ...] = ()
    opportunities: Tuple[Opportunity, ...] = ()


@dataclass(frozen=True)
class SupportBundle:
    """Remediation material aimed at one weakness."""

    id: str
    type: SupportType
    title: str
    description: str
    content: Mapping[str, Any]
    target: SupportTarget
    estimated_effectiveness: float

    def __post_init__(self):
        object.__setattr__(self, "content", freeze(self.content))


@dataclass(frozen=True)
class EvaluationContext:
    """Facts about the mentor and student derived from the session log."""

    subject_id: str
    total_sessions: int
    average_session_duration: float
    experience: ExperienceTier
    student_level: CefrLevel
    cultural_tier: CulturalTier

    @classmethod
    def default(
        cls, subject_id: str = "unknown", total_sessions: int = 0, average_session_duration: float = 0.0
    ) -> "EvaluationContext":
        """Context used when scoring outside a full evaluation."""
        return cls(
            subject_id=subject_id,
            total_sessions=total_sessions,
            average_session_duration=average_session_duration,
            experience=ExperienceTier.INTERMEDIATE,
            student_level=CefrLevel.A1,
            cultural_tier=CulturalTier.GENERAL,
        )


@dataclass(frozen=True)
class MentorFeedback:
    strengths: Tuple[str, ...] = ()
    improvements: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StudentStatus:
    """Snapshot of the virtual student taught by the mentor."""

    name: str
    current_level: CefrLevel
    assessed_level: CefrLevel
    level_progress: float
    mood: Mood
    weaknesses: Tuple[str, ...]
    strengths: Tuple[str, ...]
    motivation: float
    total_learning_minutes: float


@dataclass(frozen=True)
class LevelTransition:
    current: CefrLevel
    recommended: CefrLevel
    direction: TransitionDirection
    recent_average: float
    sample_size: int
    reason: str


@dataclass(frozen=True)
class EvaluationResult:
    """Composite output of one evaluation request."""

    subject_id: str
    competency: CompetencyScore
    trend: LearningTrend
    predictions: PredictionBundle
    supports: Tuple[SupportBundle, ...]
    feedback: MentorFeedback
    student: StudentStatus
    transition: LevelTransition
    confidence: float
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "metadata", freeze(self.metadata))

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)

    def top_support(self) -> Optional[SupportBundle]:
        """Support with the highest estimated effectiveness, if any were generated."""
        if not self.supports:
            return None
        return max(self.supports, key=lambda support: support.estimated_effectiveness)

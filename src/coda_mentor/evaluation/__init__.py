from .evaluator import CompetencyEvaluator, compute_fingerprint
from .levels import LEVEL_TABLE, LevelClassifier, recommend_transition
from .models import (
    CefrLevel,
    CompetencyScore,
    Dimension,
    EvaluationContext,
    EvaluationResult,
    LearningTrend,
    PredictionBundle,
    SupportBundle,
    TrendDirection,
)
from .prediction import PredictionEngine
from .scorer import CompetencyScorer
from .support import SupportGenerator
from .trend import TrendAnalyzer

__all__ = [
    "LEVEL_TABLE",
    "CefrLevel",
    "CompetencyEvaluator",
    "CompetencyScore",
    "CompetencyScorer",
    "Dimension",
    "EvaluationContext",
    "EvaluationResult",
    "LearningTrend",
    "LevelClassifier",
    "PredictionBundle",
    "PredictionEngine",
    "SupportBundle",
    "SupportGenerator",
    "TrendAnalyzer",
    "TrendDirection",
    "compute_fingerprint",
    "recommend_transition",
]

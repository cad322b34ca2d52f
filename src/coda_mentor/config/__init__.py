from .loader import evaluation_config_from, load_settings, merge_dicts, read_yaml
from .schema import (
    AnalysisDepth,
    CacheConfig,
    EvaluationConfig,
    IntelligenceLevel,
    LoggingConfig,
    PathsConfig,
    Settings,
    ValidationMode,
)

__all__ = [
    "AnalysisDepth",
    "CacheConfig",
    "EvaluationConfig",
    "IntelligenceLevel",
    "LoggingConfig",
    "PathsConfig",
    "Settings",
    "ValidationMode",
    "evaluation_config_from",
    "load_settings",
    "merge_dicts",
    "read_yaml",
]

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IntelligenceLevel(str, Enum):
    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class AnalysisDepth(str, Enum):
    SURFACE = "surface"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


class ValidationMode(str, Enum):
    LENIENT = "lenient"
    STRICT = "strict"


class EvaluationConfig(BaseModel):
    """Feature toggles for the evaluation pipeline."""

    model_config = ConfigDict(frozen=True)

    ai_intelligence_level: IntelligenceLevel = Field(
        IntelligenceLevel.ADVANCED, description="Sophistication tier of the simulated student."
    )
    cultural_authenticity: bool = Field(
        True, description="Score cultural sensitivity from session content instead of a flat prior."
    )
    enable_predictive_analysis: bool = True
    support_generation_enabled: bool = True
    analysis_depth: AnalysisDepth = AnalysisDepth.COMPREHENSIVE
    enable_risk_analysis: bool = True
    validation_mode: ValidationMode = Field(
        ValidationMode.LENIENT,
        description="lenient clamps out-of-range numbers, strict rejects them.",
    )


class CacheConfig(BaseModel):
    """Bounds for the evaluation cache and per-subject history."""

    max_entries: int = Field(512, ge=1)
    ttl_seconds: Optional[float] = Field(
        3600.0, gt=0, description="Entry lifetime; null keeps entries until evicted."
    )
    history_size: int = Field(10, ge=1)


class PathsConfig(BaseModel):
    """Where recorded teaching sessions are stored."""

    sessions_file: Path = Field(Path("data/sessions.jsonl"))


class LoggingConfig(BaseModel):
    """Controls for logging output and format."""

    model_config = ConfigDict(populate_by_name=True)

    level: str = Field("INFO")
    use_json: bool = Field(False, alias="json")

    @field_validator("level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        """Upper-case the level name so YAML may spell it either way."""
        return value.upper()


class Settings(BaseModel):
    """Top-level project configuration aggregating all sub-settings."""

    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

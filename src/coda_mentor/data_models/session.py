from __future__ import annotations

from datetime import datetime
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field

UNIT_INTERVAL: Tuple[float, float] = (0.0, 1.0)
SIGNED_UNIT_INTERVAL: Tuple[float, float] = (-1.0, 1.0)


def _clamp(value: float, low: float, high: float) -> float:
    if value != value:
        return low
    return max(low, min(high, value))


class Reaction(BaseModel):
    """How the virtual student responded during a session."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    comprehension: float = Field(..., description="Share of the material understood, 0-1.")
    questions: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    corrections_accepted: float = Field(..., description="Ratio of corrections taken on board, 0-1.")
    frustration: float = Field(..., description="Frustration signal level, 0-1.")


class SessionResults(BaseModel):
    """Outcome of a session from the student's side."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    objectives_achieved: float
    new_skills: List[str] = Field(default_factory=list)
    improvement: float = Field(..., description="Improvement delta, -1 to 1 (usually >= 0).")
    satisfaction: float


class SessionRecord(BaseModel):
    """One teaching interaction between a mentor and a virtual student."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    session_id: str = Field(..., min_length=1)
    mentor_id: str
    timestamp: datetime
    duration: float = Field(..., description="Session length in minutes.")
    concepts: List[str] = Field(default_factory=list)
    teaching_method: str
    topic: str = ""
    reaction: Reaction
    results: SessionResults

    def _bounded_fields(self):
        yield "duration", self.duration, (0.0, float("inf"))
        yield "reaction.comprehension", self.reaction.comprehension, UNIT_INTERVAL
        yield "reaction.corrections_accepted", self.reaction.corrections_accepted, UNIT_INTERVAL
        yield "reaction.frustration", self.reaction.frustration, UNIT_INTERVAL
        yield "results.objectives_achieved", self.results.objectives_achieved, UNIT_INTERVAL
        yield "results.improvement", self.results.improvement, SIGNED_UNIT_INTERVAL
        yield "results.satisfaction", self.results.satisfaction, UNIT_INTERVAL

    def out_of_range(self) -> List[str]:
        """Describe every numeric field that falls outside its documented range."""
        problems: List[str] = []
        for name, value, (low, high) in self._bounded_fields():
            if not low <= value <= high:
                problems.append(f"{self.session_id}.{name}={value!r} not in [{low}, {high}]")
        return problems

    def clamped(self) -> "SessionRecord":
        """Return a copy with every numeric field pulled back into range."""
        if not self.out_of_range():
            return self
        reaction = self.reaction.model_copy(
            update={
                "comprehension": _clamp(self.reaction.comprehension, *UNIT_INTERVAL),
                "corrections_accepted": _clamp(self.reaction.corrections_accepted, *UNIT_INTERVAL),
                "frustration": _clamp(self.reaction.frustration, *UNIT_INTERVAL),
            }
        )
        results = self.results.model_copy(
            update={
                "objectives_achieved": _clamp(self.results.objectives_achieved, *UNIT_INTERVAL),
                "improvement": _clamp(self.results.improvement, *SIGNED_UNIT_INTERVAL),
                "satisfaction": _clamp(self.results.satisfaction, *UNIT_INTERVAL),
            }
        )
        return self.model_copy(
            update={
                "duration": max(0.0, self.duration),
                "reaction": reaction,
                "results": results,
            }
        )

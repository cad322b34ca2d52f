from __future__ import annotations

import math
import statistics
from typing import List, Sequence

from coda_mentor.data_models import SessionRecord
from coda_mentor.evaluation.models import LearningTrend, TrendDirection
from coda_mentor.evaluation.scorer import clamp, mean

MIN_TREND_SESSIONS = 3
RELIABILITY_CEILING = 10
DEAD_ZONE = 0.1


class TrendAnalyzer:
    """Compare first and second halves of per-session metrics to find a learning trend."""

    def __init__(self, dead_zone: float = DEAD_ZONE, reliability_ceiling: int = RELIABILITY_CEILING):
        self.dead_zone = dead_zone
        self.reliability_ceiling = reliability_ceiling

    def metric_delta(self, values: Sequence[float]) -> float:
        """Second-half mean minus first-half mean, doubled and clamped to [-1, 1]."""
        if len(values) < 2:
            return 0.0
        split = math.ceil(len(values) / 2)
        return clamp((mean(values[split:]) - mean(values[:split])) * 2, -1.0, 1.0)

    def analyze(self, series: Sequence[Sequence[float]]) -> LearningTrend:
        """
        Derive a trend from parallel metric series sampled once per session.

        The session count is the length of the longest series. Below three
        sessions the neutral trend is returned.
        """
        session_count = max((len(values) for values in series), default=0)
        if session_count < MIN_TREND_SESSIONS:
            return LearningTrend.neutral()

        deltas: List[float] = [self.metric_delta(values) for values in series]
        combined = mean(deltas)
        if combined > self.dead_zone:
            direction = TrendDirection.IMPROVING
        elif combined < -self.dead_zone:
            direction = TrendDirection.DECLINING
        else:
            direction = TrendDirection.STABLE

        return LearningTrend(
            direction=direction,
            strength=clamp(abs(combined)),
            consistency=clamp(1.0 - statistics.pvariance(deltas) * 2),
            reliability=min(1.0, session_count / self.reliability_ceiling),
        )

    def analyze_sessions(self, sessions: Sequence[SessionRecord]) -> LearningTrend:
        """Trend over comprehension, improvement and satisfaction."""
        return self.analyze(
            [
                [clamp(session.reaction.comprehension) for session in sessions],
                [clamp(session.results.improvement, -1.0, 1.0) for session in sessions],
                [clamp(session.results.satisfaction) for session in sessions],
            ]
        )

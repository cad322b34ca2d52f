from __future__ import annotations

from typing import Dict, Sequence, Tuple

from coda_mentor.evaluation.models import (
    CEFR_ORDER,
    CefrLevel,
    LevelTransition,
    OrdinalLevel,
    TransitionDirection,
)
from coda_mentor.evaluation.scorer import clamp, mean

TRANSITION_WINDOW = 50
MIN_SESSIONS_FOR_ADVANCE = 10
MIN_SESSIONS_FOR_REGRESS = 15

LEVEL_TABLE: Tuple[OrdinalLevel, ...] = (
    OrdinalLevel(
        CefrLevel.A1, "Beginner", 0.3, 0.7, 40,
        ("basic_vocabulary", "simple_greetings", "basic_questions", "sign_recognition"),
    ),
    OrdinalLevel(
        CefrLevel.A2, "Elementary", 0.4, 0.75, 60,
        ("extended_vocabulary", "simple_expressions", "daily_life_communication", "short_narrative"),
    ),
    OrdinalLevel(
        CefrLevel.B1, "Intermediate", 0.5, 0.8, 80,
        ("complex_vocabulary", "expression_variety", "narrative_skills", "topic_explanation"),
    ),
    OrdinalLevel(
        CefrLevel.B2, "Upper intermediate", 0.6, 0.85, 100,
        ("advanced_vocabulary", "subtleties", "fluent_conversation", "abstract_topics"),
    ),
    OrdinalLevel(
        CefrLevel.C1, "Advanced", 0.7, 0.9, 120,
        ("complex_expressions", "cultural_subtleties", "idiomatic_usage", "social_pragmatics"),
    ),
    OrdinalLevel(
        CefrLevel.C2, "Mastery", 0.8, 1.0, 150,
        ("native_like_fluency", "cultural_mastery", "subtle_expressions", "meta_linguistic_awareness"),
    ),
)


def validate_level_table(table: Sequence[OrdinalLevel]) -> None:
    """Raise ValueError unless the table lists every rank once, in order, with rising thresholds."""
    ranks = tuple(level.rank for level in table)
    if ranks != CEFR_ORDER:
        raise ValueError(f"Level table must list ranks {[r.value for r in CEFR_ORDER]} in order")
    for level in table:
        if level.progression_score <= level.minimum_score:
            raise ValueError(
                f"{level.rank.value}: progression score must exceed minimum score"
            )
    for lower, upper in zip(table, table[1:]):
        if upper.minimum_score <= lower.minimum_score:
            raise ValueError(
                f"Minimum scores must increase: {lower.rank.value} -> {upper.rank.value}"
            )
        if upper.progression_score <= lower.progression_score:
            raise ValueError(
                f"Progression scores must increase: {lower.rank.value} -> {upper.rank.value}"
            )


class LevelClassifier:
    """Map continuous scores onto the six-rank proficiency ladder."""

    def __init__(self, table: Sequence[OrdinalLevel] = LEVEL_TABLE):
        validate_level_table(table)
        self._table: Tuple[OrdinalLevel, ...] = tuple(table)
        self._by_rank: Dict[CefrLevel, OrdinalLevel] = {level.rank: level for level in self._table}

    def levels(self) -> Tuple[OrdinalLevel, ...]:
        return self._table

    def level(self, rank: CefrLevel) -> OrdinalLevel:
        return self._by_rank[CefrLevel(rank)]

    def classify(self, score: float) -> OrdinalLevel:
        """Highest level whose minimum score does not exceed `score`; the lowest level otherwise."""
        for level in reversed(self._table):
            if level.minimum_score <= score:
                return level
        return self._table[0]

    def progress_within_level(self, score: float, level: OrdinalLevel | CefrLevel) -> float:
        if not isinstance(level, OrdinalLevel):
            level = self.level(level)
        span = level.progression_score - level.minimum_score
        return clamp((score - level.minimum_score) / span)

    def next_level(self, rank: CefrLevel) -> CefrLevel:
        index = CefrLevel(rank).rank
        return CEFR_ORDER[min(index + 1, len(CEFR_ORDER) - 1)]

    def previous_level(self, rank: CefrLevel) -> CefrLevel:
        index = CefrLevel(rank).rank
        return CEFR_ORDER[max(index - 1, 0)]


def recommend_transition(
    classifier: LevelClassifier,
    current: CefrLevel,
    scores: Sequence[float],
    window: int = TRANSITION_WINDOW,
) -> LevelTransition:
    """
    Decide whether the student should advance, regress, or stay at `current`.

    Only the trailing `window` scores count; a window below one raises
    `ValueError`. Advancing needs at least ten scores and a recent average at or
    above the level's progression score; regressing needs at least fifteen and
    an average below its minimum.
    """
    if window < 1:
        raise ValueError(f"window must be at least 1, got {window}")
    current = CefrLevel(current)
    level = classifier.level(current)
    recent = list(scores)[-window:]
    average = mean(recent)
    sample_size = len(recent)

    if (
        sample_size >= MIN_SESSIONS_FOR_ADVANCE
        and current is not CEFR_ORDER[-1]
        and average >= level.progression_score
    ):
        target = classifier.next_level(current)
        return LevelTransition(
            current, target, TransitionDirection.ADVANCE, average, sample_size,
            f"Recent average {average:.2f} reached the {current.value} progression score "
            f"{level.progression_score:.2f}.",
        )
    if (
        sample_size >= MIN_SESSIONS_FOR_REGRESS
        and current is not CEFR_ORDER[0]
        and average < level.minimum_score
    ):
        target = classifier.previous_level(current)
        return LevelTransition(
            current, target, TransitionDirection.REGRESS, average, sample_size,
            f"Recent average {average:.2f} fell below the {current.value} minimum "
            f"{level.minimum_score:.2f}.",
        )

    if sample_size < MIN_SESSIONS_FOR_ADVANCE:
        reason = f"Only {sample_size} sessions recorded; at least {MIN_SESSIONS_FOR_ADVANCE} are needed."
    else:
        reason = f"Recent average {average:.2f} keeps the student at {current.value}."
    return LevelTransition(current, current, TransitionDirection.HOLD, average, sample_size, reason)

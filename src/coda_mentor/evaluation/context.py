from __future__ import annotations

from collections import Counter
from typing import List, Sequence, Tuple

from coda_mentor.data_models import SessionRecord
from coda_mentor.evaluation.levels import LevelClassifier, TRANSITION_WINDOW
from coda_mentor.evaluation.models import (
    CefrLevel,
    CulturalTier,
    EvaluationContext,
    ExperienceTier,
    Mood,
    StudentStatus,
)
from coda_mentor.evaluation.scorer import clamp, count_cultural_concepts, mean

STUDENT_NAMES: Tuple[str, ...] = (
    "Luna", "Alex", "Maya", "Sam", "Rio", "Kai", "Nova", "Zoe",
    "Finn", "Sage", "Robin", "Casey", "Taylor", "Jordan", "Avery",
)

FRUSTRATION_THRESHOLD = 0.7
CONFUSION_THRESHOLD = 0.6
MOTIVATION_THRESHOLD = 0.8


def experience_tier(session_count: int, total_minutes: float) -> ExperienceTier:
    if session_count < 5 or total_minutes < 300:
        return ExperienceTier.NOVICE
    if session_count < 15 or total_minutes < 900:
        return ExperienceTier.INTERMEDIATE
    if session_count < 50 or total_minutes < 3000:
        return ExperienceTier.EXPERIENCED
    return ExperienceTier.EXPERT


def infer_student_level(sessions: Sequence[SessionRecord]) -> CefrLevel:
    """Estimate the student's level from how many distinct concepts have been taught."""
    distinct = len({concept for session in sessions for concept in session.concepts})
    if distinct > 20:
        return CefrLevel.B2
    if distinct > 10:
        return CefrLevel.B1
    if distinct > 5:
        return CefrLevel.A2
    return CefrLevel.A1


def cultural_tier(sessions: Sequence[SessionRecord]) -> CulturalTier:
    references = count_cultural_concepts(sessions)
    if references > 5:
        return CulturalTier.RICH
    if references > 2:
        return CulturalTier.MODERATE
    return CulturalTier.BASIC


def build_context(subject_id: str, sessions: Sequence[SessionRecord]) -> EvaluationContext:
    """Derive experience, student level, and cultural tier from the session log."""
    total_minutes = sum(max(0.0, session.duration) for session in sessions)
    average = total_minutes / len(sessions) if sessions else 0.0
    return EvaluationContext(
        subject_id=subject_id,
        total_sessions=len(sessions),
        average_session_duration=average,
        experience=experience_tier(len(sessions), total_minutes),
        student_level=infer_student_level(sessions),
        cultural_tier=cultural_tier(sessions),
    )


def student_name(subject_id: str) -> str:
    """Stable virtual-student name picked from the subject identifier."""
    return STUDENT_NAMES[sum(ord(char) for char in subject_id) % len(STUDENT_NAMES)]


def performance_scores(sessions: Sequence[SessionRecord]) -> List[float]:
    """Per-session student performance: mean of comprehension and objectives achieved."""
    return [
        (clamp(session.reaction.comprehension) + clamp(session.results.objectives_achieved)) / 2
        for session in sessions
    ]


def detect_mood(session: SessionRecord) -> Mood:
    if session.reaction.frustration > FRUSTRATION_THRESHOLD:
        return Mood.FRUSTRATED
    if 1 - session.reaction.comprehension > CONFUSION_THRESHOLD:
        return Mood.CONFUSED
    if session.results.satisfaction > MOTIVATION_THRESHOLD and session.results.improvement > 0:
        return Mood.EXCITED
    if session.results.satisfaction >= CONFUSION_THRESHOLD:
        return Mood.HAPPY
    return Mood.NEUTRAL


def build_student_status(
    subject_id: str,
    sessions: Sequence[SessionRecord],
    context: EvaluationContext,
    classifier: LevelClassifier,
) -> StudentStatus:
    """Summarize the virtual student's level, mood, and recurring difficulties."""
    recent = performance_scores(sessions)[-TRANSITION_WINDOW:]
    current = context.student_level
    if recent:
        average = mean(recent)
        assessed = classifier.classify(average).rank
        progress = classifier.progress_within_level(average, current)
    else:
        assessed, progress = current, 0.0

    errors = Counter(error for session in sessions for error in session.reaction.errors)
    acquired: List[str] = []
    for session in reversed(sessions):
        for skill in session.results.new_skills:
            if skill not in acquired:
                acquired.append(skill)

    return StudentStatus(
        name=student_name(subject_id),
        current_level=current,
        assessed_level=assessed,
        level_progress=progress,
        mood=detect_mood(sessions[-1]) if sessions else Mood.NEUTRAL,
        weaknesses=tuple(label for label, _ in errors.most_common(3)),
        strengths=tuple(acquired[:5]),
        motivation=mean([clamp(session.results.satisfaction) for session in sessions]) if sessions else 0.5,
        total_learning_minutes=sum(max(0.0, session.duration) for session in sessions),
    )

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping

from pydantic import ValidationError

from coda_mentor.config.schema import ValidationMode
from coda_mentor.data_models import SessionRecord
from coda_mentor.errors import SessionValidationError

logger = logging.getLogger(__name__)


def coerce_sessions(subject_id: str, sessions: Iterable[SessionRecord | Mapping[str, Any]]) -> List[SessionRecord]:
    """Turn raw mappings into `SessionRecord` models, rejecting structural problems."""
    records: List[SessionRecord] = []
    for index, item in enumerate(sessions):
        if isinstance(item, SessionRecord):
            records.append(item)
            continue
        if not isinstance(item, Mapping):
            raise SessionValidationError(
                f"Session #{index} is a {type(item).__name__}, expected a mapping",
                subject_id=subject_id,
            )
        try:
            records.append(SessionRecord.model_validate(item))
        except ValidationError as exc:
            problems = [
                f"#{index}.{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            ]
            raise SessionValidationError(
                "Session record is missing or has malformed fields",
                subject_id=subject_id,
                problems=problems,
            ) from exc

    seen = set()
    duplicates = []
    for record in records:
        if record.session_id in seen:
            duplicates.append(record.session_id)
        seen.add(record.session_id)
    if duplicates:
        raise SessionValidationError(
            "Session identifiers must be unique",
            subject_id=subject_id,
            problems=[f"duplicate session_id {session_id!r}" for session_id in duplicates],
        )
    return records


def apply_range_policy(
    subject_id: str, sessions: List[SessionRecord], mode: ValidationMode
) -> List[SessionRecord]:
    """
    Enforce numeric ranges according to the configured policy.

    Strict mode raises `SessionValidationError` listing every offending field.
    Lenient mode logs the same list as a warning and returns clamped copies.
    """
    problems = [problem for record in sessions for problem in record.out_of_range()]
    if not problems:
        return sessions
    if ValidationMode(mode) is ValidationMode.STRICT:
        raise SessionValidationError(
            "Session values out of range", subject_id=subject_id, problems=problems
        )
    logger.warning(
        "Clamping %d out-of-range values for subject %s: %s",
        len(problems),
        subject_id,
        "; ".join(problems),
    )
    return [record.clamped() for record in sessions]

from __future__ import annotations

from typing import Optional, Sequence


class EvaluationError(ValueError):
    """Raised when an evaluation request cannot be processed."""

    def __init__(
        self,
        message: str,
        *,
        subject_id: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        self.subject_id = subject_id
        self.operation = operation
        prefix = ""
        if operation:
            prefix += f"[{operation}] "
        if subject_id:
            prefix += f"subject={subject_id}: "
        super().__init__(f"{prefix}{message}")


class SessionValidationError(EvaluationError):
    """Session records that are structurally invalid or, in strict mode, out of range."""

    def __init__(
        self,
        message: str,
        *,
        subject_id: Optional[str] = None,
        operation: Optional[str] = "validate_sessions",
        problems: Sequence[str] = (),
    ):
        self.problems = tuple(problems)
        detail = message
        if self.problems:
            detail = f"{message} ({'; '.join(self.problems)})"
        super().__init__(detail, subject_id=subject_id, operation=operation)

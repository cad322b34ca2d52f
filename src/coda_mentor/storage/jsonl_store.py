from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from coda_mentor.data_models import SessionRecord
from coda_mentor.errors import SessionValidationError


class SessionJsonlStore:
    """JSONL persistence for session records, one record per line, ordered by timestamp."""

    def __init__(self, path: Path):
        """Ensure the backing directory exists and record the JSONL filepath."""
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self, subject_id: Optional[str] = None) -> List[SessionRecord]:
        """
        Read all stored sessions from disk and reconstruct them as models.

        Undecodable lines and records that fail validation raise
        `SessionValidationError` with `path:line` locations; `subject_id` only
        labels the error.
        """
        if not self.path.exists():
            return []
        sessions: List[SessionRecord] = []
        with self.path.open("r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                location = f"{self.path}:{line_number}"
                try:
                    sessions.append(SessionRecord.model_validate(json.loads(line)))
                except json.JSONDecodeError as err:
                    raise SessionValidationError(
                        "Session file is not valid JSONL",
                        subject_id=subject_id,
                        operation="load",
                        problems=[f"{location}: invalid JSON ({err.msg})"],
                    ) from err
                except ValidationError as err:
                    raise SessionValidationError(
                        "Session file holds an invalid record",
                        subject_id=subject_id,
                        operation="load",
                        problems=[
                            f"{location}: {'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                            for error in err.errors()
                        ],
                    ) from err
        return sessions

    def for_mentor(self, mentor_id: str) -> List[SessionRecord]:
        return [session for session in self.load(mentor_id) if session.mentor_id == mentor_id]

    def mentors(self) -> List[str]:
        return sorted({session.mentor_id for session in self.load()})

    def append(self, sessions: Iterable[SessionRecord]) -> None:
        """Add sessions to the end of the file without touching existing lines."""
        with self.path.open("a", encoding="utf-8") as handle:
            for session in sessions:
                handle.write(session.model_dump_json())
                handle.write("\n")

    def upsert(self, sessions: Iterable[SessionRecord]) -> None:
        """Merge sessions into storage, replacing existing entries with matching IDs."""
        existing: Dict[str, SessionRecord] = {session.session_id: session for session in self.load()}
        for session in sessions:
            existing[session.session_id] = session
        self._write(existing.values())

    def delete(self, session_ids: Iterable[str]) -> None:
        to_delete = set(session_ids)
        self._write(session for session in self.load() if session.session_id not in to_delete)

    def _write(self, sessions: Iterable[SessionRecord]) -> None:
        ordered = sorted(sessions, key=lambda session: (session.timestamp, session.session_id))
        with self.path.open("w", encoding="utf-8") as handle:
            for session in ordered:
                handle.write(session.model_dump_json())
                handle.write("\n")

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class HistoryStore(Generic[T]):
    """Per-subject ring buffer keeping the most recent `max_entries` items."""

    def __init__(self, max_entries: int = 10):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._items: Dict[str, Deque[T]] = {}
        self._lock = threading.Lock()

    def append(self, subject_id: str, item: T) -> None:
        with self._lock:
            buffer = self._items.setdefault(subject_id, deque(maxlen=self.max_entries))
            buffer.append(item)

    def get(self, subject_id: str) -> Tuple[T, ...]:
        """Oldest-first snapshot of the subject's history."""
        with self._lock:
            return tuple(self._items.get(subject_id, ()))

    def latest(self, subject_id: str) -> Optional[T]:
        with self._lock:
            buffer = self._items.get(subject_id)
            return buffer[-1] if buffer else None

    def clear(self, subject_id: Optional[str] = None) -> None:
        with self._lock:
            if subject_id is None:
                self._items.clear()
            else:
                self._items.pop(subject_id, None)

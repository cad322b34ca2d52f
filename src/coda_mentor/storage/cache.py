from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")

_MISSING = object()


class EvaluationCache(Generic[T]):
    """
    Bounded LRU cache with optional TTL and single-flight computation.

    Entries expire `ttl_seconds` after they were stored (never when the TTL is
    None) and the least recently used entry is evicted once `max_entries` is
    exceeded. `get_or_compute` holds a per-key lock while computing, so
    concurrent callers for the same key wait for the first computation instead
    of repeating it. A computation that raises stores nothing.

    Parameters
    ----------
    max_entries : int
        Upper bound on stored results.
    ttl_seconds : float | None
        Entry lifetime.
    clock : Callable[[], float]
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        max_entries: int = 512,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, T]]" = OrderedDict()
        self._lock = threading.Lock()
        self._key_locks: Dict[str, Tuple[threading.Lock, int]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def _expired(self, stored_at: float) -> bool:
        return self.ttl_seconds is not None and self._clock() - stored_at >= self.ttl_seconds

    def _lookup(self, key: str):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return _MISSING
            stored_at, value = entry
            if self._expired(stored_at):
                del self._entries[key]
                return _MISSING
            self._entries.move_to_end(key)
            return value

    def get(self, key: str) -> Optional[T]:
        value = self._lookup(key)
        return None if value is _MISSING else value

    def put(self, key: str, value: T) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _acquire_key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock, users = self._key_locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._key_locks[key] = (lock, users + 1)
            return lock

    def _release_key_lock(self, key: str) -> None:
        with self._lock:
            lock, users = self._key_locks[key]
            if users <= 1:
                del self._key_locks[key]
            else:
                self._key_locks[key] = (lock, users - 1)

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> Tuple[T, bool]:
        """Return `(value, hit)`, computing and storing the value at most once per key."""
        value = self._lookup(key)
        if value is not _MISSING:
            with self._lock:
                self.hits += 1
            return value, True

        lock = self._acquire_key_lock(key)
        try:
            with lock:
                value = self._lookup(key)
                if value is not _MISSING:
                    with self._lock:
                        self.hits += 1
                    return value, True
                with self._lock:
                    self.misses += 1
                value = compute()
                self.put(key, value)
                return value, False
        finally:
            self._release_key_lock(key)

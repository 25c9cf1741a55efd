"""
Per-trip advisory locks.

Two concurrent assign/reassign calls for the same trip serialize on the
trip's lock; calls for different trips never block each other. A
distributed deployment swaps this for a shared lock service with the
same `lock(key)` context-manager shape.

Locks are reference counted and dropped once no caller holds or waits
on them, so the map only ever holds trips currently being assigned.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class TripLockManager:
    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._locks: Dict[str, List] = {}

    def _acquire_entry(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _release_entry(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        lock = self._acquire_entry(key)
        try:
            with lock:
                yield
        finally:
            self._release_entry(key)

    def is_locked(self, key: str) -> bool:
        with self._guard:
            entry = self._locks.get(key)
        return entry is not None and entry[0].locked()

    def active_count(self) -> int:
        with self._guard:
            return len(self._locks)

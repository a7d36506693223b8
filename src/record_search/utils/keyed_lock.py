"""Per-key mutual exclusion for index entry mutations."""

from __future__ import annotations

from collections.abc import Hashable, Iterator
from contextlib import contextmanager
import threading


class KeyedLock:
    """Hands out one re-entrant lock per key.

    Locks are created on first use. Callers ``discard`` a key once its record
    is gone; the lock is dropped only when no thread holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.RLock] = {}
        self._users: dict[Hashable, int] = {}

    def _acquire_handle(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _release_handle(self, key: Hashable) -> None:
        with self._guard:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._acquire_handle(key)
        try:
            with lock:
                yield
        finally:
            self._release_handle(key)

    def discard(self, key: Hashable) -> bool:
        """Forget the lock for ``key`` unless it is in use.

        Returns:
            True if the lock was dropped
        """
        with self._guard:
            if self._users.get(key):
                return False
            return self._locks.pop(key, None) is not None

    def __contains__(self, key: object) -> bool:
        with self._guard:
            return key in self._locks

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

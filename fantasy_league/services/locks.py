"""
Per-key reentrant locks for cascades.
team_locks serialize score cascades and snapshot saves per (team, season);
season_locks serialize price cascades per season. Take season before team.
"""
from __future__ import annotations

import weakref
from contextlib import contextmanager
from threading import Lock, RLock
from typing import Hashable, Iterator


class KeyedLocks:
    """
    Lazily created RLock per key. Different keys never block each other.
    A key's lock is dropped once no caller holds a reference to it.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def get(self, key: Hashable) -> RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self.get(key)
        with lock:
            yield


team_locks = KeyedLocks()
season_locks = KeyedLocks()

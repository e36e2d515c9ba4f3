"""
Per-key mutual exclusion for check-then-write sequences.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable


class KeyedLock:
    """Hands out one lock per key, e.g. ("group", 7) or ("bus", 3).

    Locks are created on first use and kept for the life of the process;
    the key space (buses and groups) is small.

    The async handlers run service calls on the event-loop thread, where
    these locks are never contended; they guard sync and threadpool callers
    of the service. Across processes the row locks taken with
    with_for_update() are what serialize writers.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: Hashable):
        lock = self._lock_for(key)
        with lock:
            yield

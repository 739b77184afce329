"""Per-scope mutual exclusion for read-sort-write-trim cycles."""
import threading
from contextlib import contextmanager
from typing import Dict

from typefall.domain.errors import Conflict

DEFAULT_LOCK_TIMEOUT = 10.0


class ScopeLocks:
    """One re-entrant lock per scope id, created on first use.

    Locks only serialise writers inside this process; run a single worker
    when several processes share one storage backend.
    """

    def __init__(self, timeout: float = DEFAULT_LOCK_TIMEOUT):
        self._timeout = timeout
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, scope: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(scope)
            if lock is None:
                lock = self._locks[scope] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, scope: str):
        """Hold ``scope`` for the block; Conflict if it stays busy too long."""
        lock = self._lock_for(scope)
        if not lock.acquire(timeout=self._timeout):
            raise Conflict(f"{scope} is busy; retry the request.")
        try:
            yield
        finally:
            lock.release()

"""Per-key mutual exclusion for ledger and refund operations.

Every Stock row (and every Sale / Refund being refunded against) gets
its own lock.  Multi-key operations acquire their locks in ascending key
order so two batches touching the same rows can never deadlock, and each
acquisition is bounded by a timeout.

A key's lock lives only while some caller holds or waits for it, so the
table stays as small as the set of keys in use.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator

from shopledger.domain.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)


class _Entry:

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class KeyedLockManager:

    def __init__(self, timeout: float = 5.0) -> None:
        self._timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[str, _Entry] = {}

    @contextmanager
    def hold(self, keys: Iterable[str], timeout: float | None = None) -> Iterator[None]:
        """Hold the locks of every key in ``keys`` for the duration."""
        ordered = sorted(set(keys))
        wait = self._timeout if timeout is None else timeout
        acquired: list[tuple[str, _Entry]] = []
        try:
            for key in ordered:
                entry = self._checkout(key)
                logger.debug("Waiting for lock %s", key)
                if not entry.lock.acquire(timeout=wait):
                    self._checkin(key)
                    raise ConcurrencyConflictError(
                        f"Timed out after {wait}s waiting for a lock on {key}"
                    )
                acquired.append((key, entry))
            yield
        finally:
            for key, entry in reversed(acquired):
                entry.lock.release()
                self._checkin(key)

    def active_keys(self) -> int:
        """Number of keys currently held or awaited."""
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: str) -> _Entry:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

"""Injectable time source.

Ledger timestamps (``last_sold_at``, ``last_restocked_at``) and
sale/refund timestamps are taken from a Clock handed in by the
composition root, never from ``datetime.now()`` inside domain logic.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):

    def now(self) -> datetime:
        """Return the current timezone-aware UTC time."""
        ...  # pragma: no cover


class SystemClock:
    """Production clock, real system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Test clock: returns a fixed timestamp until advanced."""

    def __init__(self, fixed: datetime) -> None:
        if fixed.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._fixed = fixed

    def now(self) -> datetime:
        return self._fixed

    def advance(self, seconds: float) -> None:
        self._fixed = self._fixed + timedelta(seconds=seconds)

"""
Clock

Supplies the current instant to services so scheduling is deterministic
under test.

Usage:
    from intellicard.services.clock import SystemClock, FixedClock

    clock = SystemClock()
    now = clock.now()

    frozen = FixedClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
    frozen.advance(days=6)
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current UTC instant."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock, timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant; advanced explicitly."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta) -> datetime:
        """Move the clock forward, e.g. advance(days=6)."""
        self._instant = self._instant + timedelta(**delta)
        return self._instant


def get_clock() -> Clock:
    """Default clock for services created without one."""
    return SystemClock()

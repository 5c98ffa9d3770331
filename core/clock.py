"""
Time sources.

Everything in the core asks a clock for "now" instead of calling
datetime.now() directly, so tests can pin and advance time.
All instants are timezone-aware UTC datetimes.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def to_epoch_ms(moment: datetime) -> int:
    """Convert an aware datetime to integer epoch milliseconds (floored, exact)."""
    return (moment - _EPOCH) // _ONE_MS


def from_epoch_ms(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=value)


class Clock:
    """Base clock. Subclasses return the current instant."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Example:
        clock = ManualClock()
        store = TicketStore(ledger, storage, clock=clock)
        clock.advance(minutes=31)
        store.expire_overdue()
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2026, 1, 15, 3, 0, tzinfo=timezone.utc)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._now = moment

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta built from kwargs (minutes=5, seconds=1, ...)."""
        with self._lock:
            self._now = self._now + timedelta(**kwargs)
            return self._now

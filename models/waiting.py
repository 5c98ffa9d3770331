"""
Waiting-data models.

WaitingData records are congestion snapshots for one corner at one moment.
They are immutable once produced so a cached list can be handed to any
number of readers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, Tuple


def _to_number(value: Any) -> float:
    """Lenient numeric coercion: null, garbage, NaN and infinities become 0."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


@dataclass(frozen=True)
class WaitingData:
    """A single congestion record."""

    timestamp: str
    restaurant_id: str
    corner_id: str
    queue_len: int
    est_wait_time_min: float

    @classmethod
    def from_raw(cls, item: Dict[str, Any]) -> "WaitingData":
        """
        Normalize one element of the object-store array.

        Accepts either ``timestampIso`` or ``timestamp`` for the timestamp.
        Numeric fields are coerced one by one; a missing, null or
        unparseable value becomes 0 so one bad field never hides the rest
        of the day.

        Raises:
            AttributeError: if the element is not an object
        """
        timestamp = item.get("timestampIso") or item.get("timestamp") or ""
        return cls(
            timestamp=str(timestamp),
            restaurant_id=str(item.get("restaurantId", "")),
            corner_id=str(item.get("cornerId", "")),
            queue_len=max(int(_to_number(item.get("queueLen"))), 0),
            est_wait_time_min=_to_number(item.get("estWaitTimeMin")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "restaurantId": self.restaurant_id,
            "cornerId": self.corner_id,
            "queueLen": self.queue_len,
            "estWaitTimeMin": self.est_wait_time_min,
        }


@dataclass(frozen=True)
class WaitingDataResult:
    """
    Result of a waiting-data lookup.

    ``data`` is None whenever ``success`` is False. ``cached`` is only
    meaningful on success.
    """

    success: bool
    data: Optional[Tuple[WaitingData, ...]] = None
    error: Optional[str] = None
    cached: bool = False
    not_found: bool = False

    @classmethod
    def found(cls, data: Tuple[WaitingData, ...], cached: bool = False) -> "WaitingDataResult":
        return cls(success=True, data=tuple(data), cached=cached)

    @classmethod
    def failed(cls, error: str, not_found: bool = False) -> "WaitingDataResult":
        return cls(success=False, data=None, error=error, not_found=not_found)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": [r.to_dict() for r in self.data] if self.data is not None else None,
            "error": self.error,
            "cached": self.cached,
        }


@dataclass(frozen=True)
class CacheEntry:
    """One cached day of waiting data. Replaced wholesale, never mutated."""

    date_key: str
    data: Tuple[WaitingData, ...]
    inserted_at: datetime
    expires_at: datetime

    @classmethod
    def create(cls, date_key: str, data, now: datetime, ttl: timedelta) -> "CacheEntry":
        return cls(date_key=date_key, data=tuple(data), inserted_at=now, expires_at=now + ttl)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

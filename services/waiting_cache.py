"""
Waiting-data cache.

TTL cache in front of WaitingDataSource, keyed by dateKey.

Rules:
    - A live entry is returned with cached=True and no source call.
    - An entry past its expires_at counts as absent and is dropped on lookup.
    - Failures from the source are passed through and never cached.
    - At capacity, the entry with the smallest inserted_at is evicted
      (insertion order, not recency of use).

Concurrent misses for the same dateKey are serialized on a per-key lock
and re-check the cache once they hold it, so a burst of requests for one
day produces a single source call when that call succeeds.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Any, Dict, Optional

from core.clock import Clock, SystemClock
from models.waiting import CacheEntry, WaitingDataResult
from services.waiting_source import WaitingDataSource
from logging_config import get_logger


logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_MAX_ENTRIES = 20


class WaitingDataCache:
    """
    Per-day TTL cache of waiting data.

    Attributes:
        ttl: Lifetime of an entry
        max_entries: Capacity; never exceeded
    """

    def __init__(
        self,
        source: WaitingDataSource,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Optional[Clock] = None,
        enabled: bool = True,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self._source = source
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_entries = max_entries
        self._clock = clock or SystemClock()
        self._enabled = enabled

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

        # dateKey -> lock held while that key is being fetched, with its user count
        self._inflight: Dict[str, _KeyLock] = {}
        self._inflight_guard = threading.Lock()

        logger.info(f"WaitingDataCache initialized (ttl {ttl_seconds}s, max {max_entries} entries)")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, date_key: str) -> bool:
        with self._lock:
            return date_key in self._entries

    def get(self, date_key: str) -> WaitingDataResult:
        """Return waiting data for a day, from cache when fresh."""
        hit = self._lookup(date_key)
        if hit is not None:
            return hit

        key_lock = self._acquire_key_lock(date_key)
        try:
            with key_lock.lock:
                # Another thread may have filled the entry while we waited
                hit = self._lookup(date_key)
                if hit is not None:
                    return hit

                result = self._source.fetch(date_key)
                if result.success and result.data is not None:
                    self._store(date_key, result)
                return result
        finally:
            self._release_key_lock(date_key, key_lock)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "enabled": self._enabled,
                "size": len(self._entries),
                "ttl": int(self.ttl.total_seconds()),
                "max_entries": self.max_entries,
            }

    def clear(self) -> int:
        """Drop every entry. Returns how many were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} waiting-data cache entries")
        return count

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _lookup(self, date_key: str) -> Optional[WaitingDataResult]:
        if not self._enabled:
            return None
        with self._lock:
            entry = self._entries.get(date_key)
            if entry is None:
                return None
            if entry.is_expired(self._clock.now()):
                del self._entries[date_key]
                logger.debug(f"Cache entry for {date_key} expired")
                return None
        logger.debug(f"Cache hit for {date_key}")
        return WaitingDataResult.found(entry.data, cached=True)

    def _store(self, date_key: str, result: WaitingDataResult) -> None:
        if not self._enabled:
            return
        with self._lock:
            now = self._clock.now()
            if date_key not in self._entries and len(self._entries) >= self.max_entries:
                oldest_key = min(self._entries, key=lambda k: self._entries[k].inserted_at)
                del self._entries[oldest_key]
                logger.debug(f"Evicted cache entry for {oldest_key}")
            self._entries[date_key] = CacheEntry.create(date_key, result.data, now, self.ttl)

    def _acquire_key_lock(self, date_key: str) -> "_KeyLock":
        with self._inflight_guard:
            key_lock = self._inflight.get(date_key)
            if key_lock is None:
                key_lock = _KeyLock()
                self._inflight[date_key] = key_lock
            key_lock.users += 1
            return key_lock

    def _release_key_lock(self, date_key: str, key_lock: "_KeyLock") -> None:
        # Forget the per-key lock once no caller holds or waits on it
        with self._inflight_guard:
            key_lock.users -= 1
            if key_lock.users == 0 and self._inflight.get(date_key) is key_lock:
                del self._inflight[date_key]


class _KeyLock:
    """Per-dateKey fetch lock plus the number of callers using it."""

    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0

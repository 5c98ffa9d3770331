"""
Unit tests for the WaitingDataCache.

The source is a Mock returning canned WaitingDataResult values, so call
counts double as "did we hit the object store" checks.
"""

import threading
from datetime import timedelta
from unittest.mock import Mock

import pytest

from core.clock import ManualClock
from models.waiting import WaitingData, WaitingDataResult
from services.waiting_cache import WaitingDataCache


def record(corner="korean", queue=10):
    return WaitingData(
        timestamp="2026-01-15T12:00:00+09:00",
        restaurant_id="hanyang_plaza",
        corner_id=corner,
        queue_len=queue,
        est_wait_time_min=4.0,
    )


# Fixtures

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def source():
    source = Mock()
    source.fetch.return_value = WaitingDataResult.found((record(), record("ramen", 3)))
    return source


@pytest.fixture
def cache(source, clock):
    return WaitingDataCache(source, ttl_seconds=300, max_entries=20, clock=clock)


class TestCacheHits:

    def test_miss_then_hit(self, cache, source):
        first = cache.get("2026-01-15")
        second = cache.get("2026-01-15")

        assert first.success and first.cached is False
        assert second.success and second.cached is True
        assert second.data == first.data
        source.fetch.assert_called_once_with("2026-01-15")

    def test_distinct_days_are_distinct_entries(self, cache, source):
        cache.get("2026-01-15")
        cache.get("2026-01-16")

        assert source.fetch.call_count == 2
        assert len(cache) == 2
        assert "2026-01-16" in cache


class TestTtl:
    """Entries are served for exactly the TTL, then refetched."""

    def test_served_until_ttl_boundary(self, cache, source, clock):
        cache.get("2026-01-15")
        clock.advance(seconds=300)

        assert cache.get("2026-01-15").cached is True
        assert source.fetch.call_count == 1

    def test_refetched_after_ttl(self, cache, source, clock):
        cache.get("2026-01-15")
        clock.advance(seconds=301)

        result = cache.get("2026-01-15")

        assert result.cached is False
        assert source.fetch.call_count == 2

    def test_expired_entry_dropped_even_if_refetch_fails(self, cache, source, clock):
        cache.get("2026-01-15")
        clock.advance(minutes=6)
        source.fetch.return_value = WaitingDataResult.failed("boom")

        result = cache.get("2026-01-15")

        assert not result.success
        assert "2026-01-15" not in cache


class TestFailuresNotCached:

    def test_not_found_is_refetched_every_time(self, cache, source):
        source.fetch.return_value = WaitingDataResult.failed("not found", not_found=True)

        first = cache.get("2099-01-01")
        second = cache.get("2099-01-01")

        assert first.error == "not found"
        assert second.error == "not found"
        assert source.fetch.call_count == 2
        assert len(cache) == 0

    def test_success_after_failure_is_cached(self, cache, source):
        good = source.fetch.return_value
        source.fetch.side_effect = [WaitingDataResult.failed("timeout"), good]

        assert not cache.get("2026-01-15").success
        assert cache.get("2026-01-15").cached is False
        assert cache.get("2026-01-15").cached is True
        assert source.fetch.call_count == 2


class TestEviction:
    """Capacity is never exceeded; oldest insertion goes first."""

    def test_twenty_first_key_evicts_earliest_inserted(self, cache, clock):
        for day in range(1, 21):
            cache.get(f"2026-01-{day:02d}")
            clock.advance(seconds=1)

        # Reading the oldest entry does not refresh its insertion time
        assert cache.get("2026-01-01").cached is True

        cache.get("2026-01-21")

        assert len(cache) == 20
        assert "2026-01-01" not in cache
        assert "2026-01-02" in cache
        assert "2026-01-21" in cache

    def test_rejects_zero_capacity(self, source):
        with pytest.raises(ValueError):
            WaitingDataCache(source, max_entries=0)


class TestSingleFlight:

    def test_concurrent_misses_share_one_fetch(self, clock):
        release = threading.Event()
        calls = []

        def slow_fetch(date_key):
            calls.append(date_key)
            release.wait(timeout=2.0)
            return WaitingDataResult.found((record(),))

        source = Mock()
        source.fetch.side_effect = slow_fetch
        cache = WaitingDataCache(source, clock=clock)
        results = []

        threads = [
            threading.Thread(target=lambda: results.append(cache.get("2026-01-15")))
            for _ in range(5)
        ]
        for t in threads:
            t.start()
        release.set()
        for t in threads:
            t.join()

        assert calls == ["2026-01-15"]
        assert len(results) == 5
        assert all(r.success for r in results)
        assert sum(1 for r in results if not r.cached) == 1


    def test_waiters_share_one_key_lock_until_all_leave(self, clock):
        started = threading.Event()
        release = threading.Event()

        def failing_fetch(date_key):
            started.set()
            release.wait(timeout=2.0)
            return WaitingDataResult.failed("boom")

        source = Mock()
        source.fetch.side_effect = failing_fetch
        cache = WaitingDataCache(source, clock=clock)

        threads = [threading.Thread(target=cache.get, args=("2026-01-15",)) for _ in range(2)]
        for t in threads:
            t.start()
        assert started.wait(timeout=2.0)
        for _ in range(200):
            if cache._inflight["2026-01-15"].users == 2:
                break
            threading.Event().wait(0.01)

        # One fetching, one queued, both on the same lock
        assert cache._inflight["2026-01-15"].users == 2

        release.set()
        for t in threads:
            t.join()

        # Failures are not cached, so the waiter fetched again after the first
        assert source.fetch.call_count == 2
        assert cache._inflight == {}

    def test_key_lock_released_when_fetch_raises(self, clock):
        source = Mock()
        source.fetch.side_effect = RuntimeError("adapter bug")
        cache = WaitingDataCache(source, clock=clock)

        with pytest.raises(RuntimeError):
            cache.get("2026-01-15")

        assert cache._inflight == {}

        source.fetch.side_effect = None
        source.fetch.return_value = WaitingDataResult.found((record(),))
        assert cache.get("2026-01-15").success


class TestStatsAndClear:

    def test_stats(self, cache):
        cache.get("2026-01-15")
        assert cache.stats() == {"enabled": True, "size": 1, "ttl": 300, "max_entries": 20}

    def test_clear(self, cache, source):
        cache.get("2026-01-15")
        assert cache.clear() == 1
        assert len(cache) == 0
        cache.get("2026-01-15")
        assert source.fetch.call_count == 2

    def test_disabled_cache_always_fetches(self, source, clock):
        cache = WaitingDataCache(source, clock=clock, enabled=False)
        cache.get("2026-01-15")
        cache.get("2026-01-15")
        assert source.fetch.call_count == 2
        assert cache.stats()["size"] == 0


def test_ttl_is_timedelta(cache):
    assert cache.ttl == timedelta(minutes=5)

"""
Tests for time filtering and latest-snapshot selection.
"""

import pytest

from core.exceptions import InvalidTimeParamError
from models.waiting import WaitingData
from modules.waiting_query import filter_by_time, latest_records, validate_time_param


def snapshot(timestamp, corner="korean"):
    return WaitingData(
        timestamp=timestamp,
        restaurant_id="hanyang_plaza",
        corner_id=corner,
        queue_len=5,
        est_wait_time_min=2.0,
    )


@pytest.fixture
def day():
    return [
        snapshot("2026-01-15T11:59:30+09:00"),
        snapshot("2026-01-15T12:00:00+09:00"),
        snapshot("2026-01-15T12:00:00+09:00", "ramen"),
        snapshot("2026-01-15T12:04:59+09:00"),
        snapshot("2026-01-15T12:05:00+09:00"),
        snapshot("garbage"),
    ]


class TestValidateTimeParam:

    @pytest.mark.parametrize("value", [
        "12:00",
        "00:00",
        "23:59",
        "2026-01-15T12:00",
        "2026-01-15T12:00:00+09:00",
        "2026-01-15T03:00:00.000Z",
    ])
    def test_accepts(self, value):
        assert validate_time_param(value) == value

    @pytest.mark.parametrize("value", ["noon", "12", "1200", "24:00", "12:60", "12:00:00", ""])
    def test_rejects(self, value):
        with pytest.raises(InvalidTimeParamError) as exc_info:
            validate_time_param(value)
        assert exc_info.value.message == "Invalid time format. Expected HH:MM or ISO timestamp"


class TestFilterByTime:

    def test_hh_mm_selects_five_minute_bucket(self, day):
        selected = filter_by_time(day, "12:03")
        assert [r.timestamp[11:19] for r in selected] == ["12:00:00", "12:00:00", "12:04:59"]

    def test_bucket_boundary(self, day):
        selected = filter_by_time(day, "12:05")
        assert [r.timestamp for r in selected] == ["2026-01-15T12:05:00+09:00"]

    def test_other_hour_not_matched(self, day):
        assert filter_by_time(day, "11:00") == []
        assert len(filter_by_time(day, "11:58")) == 1

    def test_iso_matches_exactly(self, day):
        selected = filter_by_time(day, "2026-01-15T12:00:00+09:00")
        assert [r.corner_id for r in selected] == ["korean", "ramen"]


class TestLatestRecords:

    def test_newest_group_only(self, day):
        latest = latest_records(day[:5])
        assert [r.timestamp for r in latest] == ["2026-01-15T12:05:00+09:00"]

    def test_ties_kept(self, day):
        latest = latest_records(day[:3])
        assert [r.corner_id for r in latest] == ["korean", "ramen"]

    def test_empty(self):
        assert latest_records([]) == []

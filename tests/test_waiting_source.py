"""
Unit tests for the WaitingDataSource adapter.

The object store is faked with httpx.MockTransport; no network access.
"""

import json
import time

import httpx
import pytest

from services.waiting_source import WaitingDataSource, object_key_for


BUCKET = "https://bucket.example.com"


def make_source(handler, **kwargs):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return WaitingDataSource(BUCKET, client=client, **kwargs)


def json_response(payload, status_code=200):
    return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"))


# Fixtures

@pytest.fixture
def records():
    return [
        {
            "timestampIso": "2026-01-15T12:00:00+09:00",
            "restaurantId": "hanyang_plaza",
            "cornerId": "korean",
            "queueLen": 12,
            "estWaitTimeMin": 4,
        },
        {
            "timestamp": "2026-01-15T12:05:00+09:00",
            "restaurantId": "hanyang_plaza",
            "cornerId": "ramen",
            "queueLen": "7",
            "estWaitTimeMin": "5.5",
        },
        {
            "timestamp": "2026-01-15T12:05:00+09:00",
            "restaurantId": "life_science",
            "cornerId": "pangeos",
            "queueLen": 3.0,
            "estWaitTimeMin": 2,
        },
    ]


class TestFetchSuccess:

    def test_requests_dated_object_key(self, records):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return json_response(records)

        result = make_source(handler).fetch("2026-01-15")

        assert result.success
        assert seen == [f"{BUCKET}/waiting-data/2026-01-15.json"]
        assert object_key_for("2026-01-15") == "waiting-data/2026-01-15.json"

    def test_normalizes_records(self, records):
        result = make_source(lambda request: json_response(records)).fetch("2026-01-15")

        assert result.cached is False
        assert len(result.data) == 3
        first, second, third = result.data
        # timestampIso alias accepted
        assert first.timestamp == "2026-01-15T12:00:00+09:00"
        assert second.timestamp == "2026-01-15T12:05:00+09:00"
        # numeric coercion
        assert second.queue_len == 7
        assert second.est_wait_time_min == 5.5
        assert third.queue_len == 3
        assert isinstance(first.est_wait_time_min, float)

    def test_bad_numeric_fields_coerced_per_record(self, records):
        records[0]["queueLen"] = None
        records[1]["estWaitTimeMin"] = "lots"
        records[2]["queueLen"] = "NaN"

        result = make_source(lambda request: json_response(records)).fetch("2026-01-15")

        assert result.success
        assert len(result.data) == 3
        assert result.data[0].queue_len == 0
        assert result.data[0].est_wait_time_min == 4.0
        assert result.data[1].queue_len == 7
        assert result.data[1].est_wait_time_min == 0.0
        assert result.data[2].queue_len == 0

    def test_empty_array_is_success(self):
        result = make_source(lambda request: json_response([])).fetch("2026-01-15")
        assert result.success
        assert result.data == ()


class TestFetchFailures:

    def test_not_found(self):
        result = make_source(lambda request: httpx.Response(404)).fetch("2099-01-01")

        assert not result.success
        assert result.data is None
        assert result.error == "not found"
        assert result.not_found

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = make_source(handler, timeout_ms=3000).fetch("2026-01-15")

        assert not result.success
        assert result.data is None
        assert "3000ms" in result.error
        assert not result.not_found

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = make_source(handler).fetch("2026-01-15")

        assert not result.success
        assert result.error == "connection refused"

    def test_non_array_body(self):
        result = make_source(lambda request: json_response({"items": []})).fetch("2026-01-15")
        assert not result.success
        assert result.data is None
        assert result.error == "Waiting data is not an array"

    def test_parse_error(self):
        result = make_source(
            lambda request: httpx.Response(200, content=b"{not json")
        ).fetch("2026-01-15")
        assert result.error == "JSON parse error"

    def test_non_object_record(self, records):
        bad = records + ["not a record"]
        result = make_source(lambda request: json_response(bad)).fetch("2026-01-15")
        assert not result.success
        assert result.data is None
        assert result.error == "Waiting data record is malformed"

    def test_server_error(self):
        result = make_source(lambda request: httpx.Response(500)).fetch("2026-01-15")
        assert not result.success
        assert "500" in result.error
        assert not result.not_found

    def test_disabled_source_makes_no_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return json_response([])

        result = make_source(handler, enabled=False).fetch("2026-01-15")

        assert result.error == "waiting source disabled"
        assert calls == []


class TrickleStream(httpx.SyncByteStream):
    """Response body that arrives one byte at a time."""

    def __init__(self, body: bytes, delay_seconds: float):
        self._body = body
        self._delay = delay_seconds
        self.closed = False

    def __iter__(self):
        for i in range(len(self._body)):
            time.sleep(self._delay)
            yield self._body[i:i + 1]

    def close(self):
        self.closed = True


class TestOverallDeadline:
    """The timeout bounds the whole request, not each read."""

    def test_slow_body_times_out(self):
        stream = TrickleStream(b'[{"queueLen": 1, "estWaitTimeMin": 1}]', delay_seconds=0.05)

        started = time.monotonic()
        result = make_source(
            lambda request: httpx.Response(200, stream=stream), timeout_ms=200
        ).fetch("2026-01-15")
        elapsed = time.monotonic() - started

        assert not result.success
        assert result.data is None
        assert "200ms" in result.error
        assert elapsed < 1.0
        assert stream.closed

    def test_streamed_body_within_deadline(self, records):
        stream = TrickleStream(json.dumps(records).encode("utf-8"), delay_seconds=0)

        result = make_source(
            lambda request: httpx.Response(200, stream=stream), timeout_ms=1000
        ).fetch("2026-01-15")

        assert result.success
        assert len(result.data) == 3

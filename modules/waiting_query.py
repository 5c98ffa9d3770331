"""Selecting records out of one day of waiting data.

The forecast screens ask for either a single snapshot (``time`` filter) or
the most recent one of the day. Timestamps are ISO strings in KST, so
lexical order matches time order.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

from core.exceptions import InvalidTimeParamError
from models.waiting import WaitingData

BUCKET_MINUTES = 5

_TIME_PARAM_RE = re.compile(
    r"^(?:\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2})?(?:\.\d{3})?(?:Z|[+-]\d{2}:\d{2})?"
    r"|(?P<hour>\d{2}):(?P<minute>\d{2}))$"
)


def is_iso_time(value: str) -> bool:
    return "T" in value or "+" in value


def validate_time_param(value: str) -> str:
    """
    Check a ``time`` filter: ``HH:MM`` or an ISO timestamp.

    Raises:
        InvalidTimeParamError: for anything else, including 24:00 or 12:60
    """
    match = _TIME_PARAM_RE.match(value) if isinstance(value, str) else None
    if match is None:
        raise InvalidTimeParamError(str(value))
    if match.group("hour") is not None:
        if int(match.group("hour")) > 23 or int(match.group("minute")) > 59:
            raise InvalidTimeParamError(value)
    return value


def _hour_minute(timestamp: str) -> Optional[Tuple[int, int]]:
    _, sep, time_part = timestamp.partition("T")
    if not sep or len(time_part) < 5 or time_part[2] != ":":
        return None
    try:
        return int(time_part[0:2]), int(time_part[3:5])
    except ValueError:
        return None


def filter_by_time(records: Iterable[WaitingData], time_param: str) -> List[WaitingData]:
    """
    Records matching a ``time`` filter.

    An ISO timestamp matches exactly. ``HH:MM`` selects the 5-minute bucket
    containing it: 12:07 matches 12:05 through 12:09.
    """
    if is_iso_time(time_param):
        return [r for r in records if r.timestamp == time_param]

    hour, minute = int(time_param[0:2]), int(time_param[3:5])
    bucket_start = minute // BUCKET_MINUTES * BUCKET_MINUTES

    selected = []
    for record in records:
        parts = _hour_minute(record.timestamp)
        if parts is None:
            continue
        record_hour, record_minute = parts
        if record_hour == hour and bucket_start <= record_minute < bucket_start + BUCKET_MINUTES:
            selected.append(record)
    return selected


def latest_records(records: Iterable[WaitingData]) -> List[WaitingData]:
    """Records sharing the newest timestamp of the day; empty if there are none."""
    records = list(records)
    if not records:
        return []
    newest = max(r.timestamp for r in records)
    return [r for r in records if r.timestamp == newest]

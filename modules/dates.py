"""Date-key helpers. Cafeteria days follow Korea Standard Time."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from core.exceptions import InvalidDateKeyError

KST = ZoneInfo("Asia/Seoul")

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def kst_date_key(now: Optional[datetime] = None) -> str:
    """YYYY-MM-DD for the current (or given) instant in Asia/Seoul."""
    moment = now or datetime.now(KST)
    return moment.astimezone(KST).strftime("%Y-%m-%d")


def validate_date_key(value: str) -> str:
    """
    Check that value is a real YYYY-MM-DD calendar day.

    Raises:
        InvalidDateKeyError: for anything else (including 2026-02-30)
    """
    if not isinstance(value, str) or not _DATE_KEY_RE.match(value):
        raise InvalidDateKeyError(str(value))
    try:
        date.fromisoformat(value)
    except ValueError:
        raise InvalidDateKeyError(value)
    return value

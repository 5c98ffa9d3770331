"""
Core module for HY-eat.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- clock: Injectable time sources
- storage: Key-value storage backends for local state
"""

from .exceptions import (
    HyEatError,
    LedgerInvariantError,
    InvalidDateKeyError,
    InvalidTimeParamError,
    WaitingSourceError,
    WaitingDataNotFoundError,
    WaitingSourceTimeoutError,
    MalformedWaitingDataError,
    WaitingSourceDisabledError,
)
from .clock import Clock, SystemClock, ManualClock
from .storage import KeyValueStorage, InMemoryStorage, JsonFileStorage

__all__ = [
    "HyEatError",
    "LedgerInvariantError",
    "InvalidDateKeyError",
    "InvalidTimeParamError",
    "WaitingSourceError",
    "WaitingDataNotFoundError",
    "WaitingSourceTimeoutError",
    "MalformedWaitingDataError",
    "WaitingSourceDisabledError",
    "Clock",
    "SystemClock",
    "ManualClock",
    "KeyValueStorage",
    "InMemoryStorage",
    "JsonFileStorage",
]

"""
Custom exceptions for HY-eat.

Exception Hierarchy:
    HyEatError (base)
    ├── LedgerInvariantError          - Balance would go negative (programming error)
    ├── InvalidDateKeyError           - dateKey is not a YYYY-MM-DD calendar day
    ├── InvalidTimeParamError         - time filter is not HH:MM or an ISO timestamp
    └── WaitingSourceError            - Object store fetch failed
        ├── WaitingDataNotFoundError  - No object for that day
        ├── WaitingSourceTimeoutError - Request exceeded its timeout
        ├── MalformedWaitingDataError - Body is not a JSON array
        └── WaitingSourceDisabledError

Usage:
    LedgerInvariantError is raised and never caught inside the core.
    WaitingSourceError subclasses are raised inside the source adapter and
    converted into a failed WaitingDataResult before leaving it.
    Ticket validation failures are NOT exceptions: they are returned as
    TicketActionResult values.
"""

from typing import Optional, Dict, Any


class HyEatError(Exception):
    """
    Base exception for all HY-eat errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class LedgerInvariantError(HyEatError):
    """
    A ledger operation would leave the balance negative or was given a
    non-positive amount.

    Callers check sufficiency before debiting; reaching this means a code
    path skipped that check.
    """

    def __init__(self, operation: str, amount: int, balance: int):
        message = f"Ledger {operation} of {amount} rejected (balance {balance})"
        details = {
            "operation": operation,
            "amount": amount,
            "balance": balance,
        }
        super().__init__(message, details)
        self.operation = operation
        self.amount = amount
        self.balance = balance


class InvalidDateKeyError(HyEatError):
    """The supplied dateKey is not a valid YYYY-MM-DD calendar day."""

    def __init__(self, date_key: str):
        message = "Invalid date format. Expected YYYY-MM-DD"
        super().__init__(message, {"date": date_key})
        self.date_key = date_key


class InvalidTimeParamError(HyEatError):
    """The supplied time filter is neither HH:MM nor an ISO timestamp."""

    def __init__(self, value: str):
        message = "Invalid time format. Expected HH:MM or ISO timestamp"
        super().__init__(message, {"time": value})
        self.value = value


# =============================================================================
# WAITING-DATA SOURCE ERRORS - converted to results at the adapter boundary
# =============================================================================

class WaitingSourceError(HyEatError):
    """Base class for waiting-data fetch failures."""

    def __init__(self, message: str, date_key: str, details: Optional[Dict[str, Any]] = None):
        error_details = details or {}
        error_details["date_key"] = date_key
        super().__init__(message, error_details)
        self.date_key = date_key


class WaitingDataNotFoundError(WaitingSourceError):
    """
    No waiting-data object exists for the requested day.

    Means "no forecast for this day" rather than a transient problem,
    so callers may skip an immediate retry.
    """

    def __init__(self, date_key: str, object_key: str):
        super().__init__("not found", date_key, {"object_key": object_key})
        self.object_key = object_key


class WaitingSourceTimeoutError(WaitingSourceError):
    """The object store did not answer within the configured timeout."""

    def __init__(self, date_key: str, timeout_ms: int):
        message = f"Waiting data request timed out after {timeout_ms}ms"
        super().__init__(message, date_key, {"timeout_ms": timeout_ms})
        self.timeout_ms = timeout_ms


class MalformedWaitingDataError(WaitingSourceError):
    """The object body could not be parsed as a JSON array of records."""


class WaitingSourceDisabledError(WaitingSourceError):
    """The object-store source is switched off by configuration."""

    def __init__(self, date_key: str):
        super().__init__("waiting source disabled", date_key)

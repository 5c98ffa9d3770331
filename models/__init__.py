"""
Data models for HY-eat.

This module contains immutable dataclasses for:
- Ticket: Order voucher with its lifecycle status
- MenuSelection: What a purchase is for
- TicketActionResult: Outcome of a ticket store operation
- WaitingData: One congestion snapshot for a corner
- WaitingDataResult: Outcome of a waiting-data lookup
- CacheEntry: One cached day of waiting data

All of them are frozen so they can be handed across threads and cached
without copying.
"""

from .ticket import (
    Ticket,
    TicketStatus,
    PaymentMethod,
    FailureReason,
    MenuSelection,
    TicketActionResult,
)
from .waiting import WaitingData, WaitingDataResult, CacheEntry

__all__ = [
    # Ticket models
    "Ticket",
    "TicketStatus",
    "PaymentMethod",
    "FailureReason",
    "MenuSelection",
    "TicketActionResult",
    # Waiting models
    "WaitingData",
    "WaitingDataResult",
    "CacheEntry",
]

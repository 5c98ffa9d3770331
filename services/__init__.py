"""
Services layer for HY-eat.

This module contains the business logic services:
- BalanceLedger: Prepaid balance with a never-negative invariant
- TicketStore: Ticket lifecycle, persistence and the expiry sweep
- ExpiryMonitor: Background ticker driving the sweep
- WaitingDataSource: Object-store adapter for per-day waiting data
- WaitingDataCache: TTL cache in front of the source

Thread Model:
    Main Thread (Flask)
    └── ExpiryMonitor thread (1-second sweep loop)

TicketStore and BalanceLedger share one lock, so a purchase or a refund
is applied to both or to neither.
"""

from .ledger import BalanceLedger
from .expiry_monitor import ExpiryMonitor
from .ticket_store import TicketStore
from .waiting_source import WaitingDataSource
from .waiting_cache import WaitingDataCache

__all__ = [
    "BalanceLedger",
    "ExpiryMonitor",
    "TicketStore",
    "WaitingDataSource",
    "WaitingDataCache",
]

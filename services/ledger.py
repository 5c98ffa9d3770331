"""
Balance ledger.

Holds the client's mock balance in whole Won. The balance is never
negative: charge() is the only public top-up path, and debit()/credit()
are reserved for the TicketStore, which calls them while holding
``ledger.lock`` together with its own ticket mutations.

The lock is re-entrant so the store can take it once around
"check balance, debit, create ticket" and the ledger's own methods can
take it again without deadlocking.
"""

from __future__ import annotations

import threading

from core.exceptions import LedgerInvariantError
from core.storage import KeyValueStorage
from logging_config import get_logger


logger = get_logger(__name__)

BALANCE_STORAGE_KEY = "hy-eat-balance"


class BalanceLedger:
    """
    Mock currency ledger persisted through a KeyValueStorage.

    Attributes:
        lock: Re-entrant lock shared with the TicketStore
    """

    def __init__(self, storage: KeyValueStorage, initial_balance: int = 0):
        """
        Initialize the ledger, loading any persisted balance.

        Args:
            storage: Backing key-value storage
            initial_balance: Balance to use when nothing (valid) is stored
        """
        self._storage = storage
        self.lock = threading.RLock()
        self._balance = self._load(max(int(initial_balance), 0))
        logger.info(f"BalanceLedger initialized (balance: {self._balance})")

    @property
    def balance(self) -> int:
        with self.lock:
            return self._balance

    def can_afford(self, amount: int) -> bool:
        with self.lock:
            return self._balance >= amount

    def charge(self, amount: int) -> int:
        """
        Top up the balance (mock; always succeeds for a positive amount).

        Returns:
            New balance

        Raises:
            LedgerInvariantError: if amount is not positive
        """
        with self.lock:
            if amount <= 0:
                raise LedgerInvariantError("charge", amount, self._balance)
            self._balance += amount
            self._persist()
            logger.info(f"Balance charged +{amount} -> {self._balance}")
            return self._balance

    def debit(self, amount: int) -> int:
        """
        Remove funds for a purchase.

        Raises:
            LedgerInvariantError: if amount is not positive or exceeds the balance
        """
        with self.lock:
            if amount <= 0 or amount > self._balance:
                raise LedgerInvariantError("debit", amount, self._balance)
            self._balance -= amount
            self._persist()
            logger.debug(f"Balance debited -{amount} -> {self._balance}")
            return self._balance

    def credit(self, amount: int) -> int:
        """
        Return funds for a cancelled purchase.

        Raises:
            LedgerInvariantError: if amount is not positive
        """
        with self.lock:
            if amount <= 0:
                raise LedgerInvariantError("credit", amount, self._balance)
            self._balance += amount
            self._persist()
            logger.debug(f"Balance credited +{amount} -> {self._balance}")
            return self._balance

    def _load(self, default: int) -> int:
        raw = self._storage.get(BALANCE_STORAGE_KEY)
        if raw is None:
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            logger.warning(f"Stored balance {raw!r} is not an integer, using {default}")
            return default
        if value < 0:
            logger.warning(f"Stored balance {value} is negative, using {default}")
            return default
        return value

    def _persist(self) -> None:
        self._storage.set(BALANCE_STORAGE_KEY, str(self._balance))

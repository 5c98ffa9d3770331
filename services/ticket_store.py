"""
Ticket store: owns live tickets and enforces the ticket state machine.

State machine:
    stored --activate--> active --mark_used--> used      (moved to history)
                               +--sweep-----> expired   (stays in live set)
    stored --cancel----> removed (balance refunded when paid by charge)

Any other transition is refused with a TicketActionResult(success=False)
and leaves the store untouched.

Thread Safety:
    Every mutation runs under ``ledger.lock`` (re-entrant), so purchase's
    "check balance -> debit -> create ticket" and cancel's
    "validate -> credit -> remove" are each one critical section. The
    expiry sweep takes the same lock.

Usage:
    ledger = BalanceLedger(storage, initial_balance=10000)
    store = TicketStore(ledger, storage)
    store.start()                        # starts the expiry monitor

    result = store.purchase(menu, PaymentMethod.CHARGE)
    if result:
        store.activate(result.ticket.id)

    store.stop()                         # at teardown
"""

from __future__ import annotations

import json
import math
import secrets
import string
from datetime import timedelta
from typing import List, Optional, Tuple

from core.clock import Clock, SystemClock, to_epoch_ms
from core.storage import KeyValueStorage
from models.ticket import (
    FailureReason,
    MenuSelection,
    PaymentMethod,
    Ticket,
    TicketActionResult,
    TicketStatus,
)
from services.expiry_monitor import ExpiryMonitor
from services.ledger import BalanceLedger
from logging_config import get_logger


logger = get_logger(__name__)

TICKETS_STORAGE_KEY = "hy-eat-tickets"
HISTORY_STORAGE_KEY = "hy-eat-history"

DEFAULT_VALIDITY = timedelta(minutes=30)
DEFAULT_CANCEL_WINDOW = timedelta(minutes=5)

_ID_ALPHABET = string.digits + string.ascii_uppercase


def generate_ticket_id(epoch_ms: int) -> str:
    """TK-{epoch ms}-{9 random base36 chars}. Unique, but not a secret."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"TK-{epoch_ms}-{suffix}"


class TicketStore:
    """
    Live ticket set plus append-only history.

    Attributes:
        ledger: BalanceLedger debited/credited by purchase/cancel
        validity: How long an activated ticket stays redeemable
        cancel_window: How long after purchase a stored ticket may be cancelled
    """

    def __init__(
        self,
        ledger: BalanceLedger,
        storage: KeyValueStorage,
        clock: Optional[Clock] = None,
        validity: timedelta = DEFAULT_VALIDITY,
        cancel_window: timedelta = DEFAULT_CANCEL_WINDOW,
        sweep_interval_seconds: float = 1.0,
    ):
        self.ledger = ledger
        self._storage = storage
        self._clock = clock or SystemClock()
        self.validity = validity
        self.cancel_window = cancel_window
        self._lock = ledger.lock

        with self._lock:
            self._tickets: List[Ticket] = self._load_tickets(TICKETS_STORAGE_KEY, self.validity)
            self._history: List[Ticket] = self._load_tickets(HISTORY_STORAGE_KEY)
            # Tickets that ran out while the process was down
            if self.expire_overdue():
                logger.info("Demoted overdue tickets found in stored state")

        self._monitor = ExpiryMonitor(self.expire_overdue, interval_seconds=sweep_interval_seconds)

        logger.info(
            f"TicketStore initialized ({len(self._tickets)} live, {len(self._history)} in history)"
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Start the background expiry monitor."""
        self._monitor.start()

    def stop(self) -> None:
        """Stop the background expiry monitor. Safe to call repeatedly."""
        self._monitor.stop()

    @property
    def monitor_running(self) -> bool:
        return self._monitor.is_running

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def tickets(self) -> Tuple[Ticket, ...]:
        """Live tickets, newest first."""
        with self._lock:
            return tuple(self._tickets)

    @property
    def history(self) -> Tuple[Ticket, ...]:
        """Used tickets, newest first."""
        with self._lock:
            return tuple(self._history)

    @property
    def balance(self) -> int:
        return self.ledger.balance

    def get(self, ticket_id: str) -> Optional[Ticket]:
        with self._lock:
            index = self._index_of(ticket_id)
            return self._tickets[index] if index is not None else None

    def active_ticket(self) -> Optional[Ticket]:
        with self._lock:
            for ticket in self._tickets:
                if ticket.status == TicketStatus.ACTIVE:
                    return ticket
            return None

    def remaining_seconds(self, ticket_id: str) -> int:
        """Whole seconds until an active ticket expires; 0 otherwise."""
        ticket = self.get(ticket_id)
        if ticket is None or ticket.status != TicketStatus.ACTIVE or ticket.expires_at is None:
            return 0
        delta_ms = to_epoch_ms(ticket.expires_at) - to_epoch_ms(self._clock.now())
        return max(0, math.floor(delta_ms / 1000))

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def purchase(
        self,
        menu: MenuSelection,
        payment_method: PaymentMethod = PaymentMethod.CHARGE,
    ) -> TicketActionResult:
        """
        Buy a ticket for a menu.

        Paying by CHARGE debits the ledger in the same critical section that
        creates the ticket. Other methods are recorded on the ticket only.
        """
        if menu.price_won <= 0:
            return TicketActionResult.fail(
                FailureReason.INVALID_AMOUNT, "Price must be a positive amount."
            )

        with self._lock:
            if payment_method.uses_balance and not self.ledger.can_afford(menu.price_won):
                logger.info(
                    f"Purchase refused: price {menu.price_won} exceeds balance {self.ledger.balance}"
                )
                return TicketActionResult.fail(
                    FailureReason.INSUFFICIENT_BALANCE,
                    "Insufficient balance. Please top up and try again.",
                )

            now = self._clock.now()
            ticket = Ticket(
                id=generate_ticket_id(to_epoch_ms(now)),
                restaurant_id=menu.restaurant_id,
                corner_id=menu.corner_id,
                menu_name=menu.menu_name,
                price_won=menu.price_won,
                status=TicketStatus.STORED,
                created_at=now,
                payment_method=payment_method,
            )

            if payment_method.uses_balance:
                self.ledger.debit(menu.price_won)
            self._tickets.insert(0, ticket)
            self._persist_tickets()

        logger.info(
            f"Ticket {ticket.id} purchased: {menu.restaurant_id}/{menu.corner_id} "
            f"'{menu.menu_name}' {menu.price_won} via {payment_method.value}"
        )
        return TicketActionResult.ok("Ticket purchased.", ticket)

    def cancel(self, ticket_id: str) -> TicketActionResult:
        """
        Cancel a stored ticket within the cancellation window.

        On success the ticket is dropped from the live set (no history entry)
        and, for balance-paid tickets, the price is credited back.
        """
        with self._lock:
            index = self._index_of(ticket_id)
            if index is None:
                return TicketActionResult.fail(FailureReason.NOT_FOUND, "Ticket not found.")

            ticket = self._tickets[index]
            if ticket.status != TicketStatus.STORED:
                return TicketActionResult.fail(
                    FailureReason.NOT_CANCELLABLE,
                    "Only unused tickets that have not been activated can be cancelled.",
                    ticket,
                )

            if self._clock.now() - ticket.created_at > self.cancel_window:
                minutes = int(self.cancel_window.total_seconds() // 60)
                return TicketActionResult.fail(
                    FailureReason.WINDOW_EXPIRED,
                    f"Cancellation is only possible within {minutes} minutes of purchase.",
                    ticket,
                )

            if ticket.payment_method.uses_balance:
                self.ledger.credit(ticket.price_won)
            del self._tickets[index]
            self._persist_tickets()

        refunded = ticket.price_won if ticket.payment_method.uses_balance else 0
        logger.info(f"Ticket {ticket_id} cancelled, refunded {refunded}")
        return TicketActionResult.ok("Ticket cancelled and refunded.", ticket)

    def activate(self, ticket_id: str) -> TicketActionResult:
        """Start the redemption window of a stored ticket."""
        with self._lock:
            index = self._index_of(ticket_id)
            if index is None:
                return TicketActionResult.fail(FailureReason.NOT_FOUND, "Ticket not found.")

            ticket = self._tickets[index]
            if ticket.status != TicketStatus.STORED:
                return TicketActionResult.fail(
                    FailureReason.INVALID_STATE,
                    f"Ticket is {ticket.status.value} and cannot be activated.",
                    ticket,
                )

            activated = ticket.activate(self._clock.now(), self.validity)
            self._tickets[index] = activated
            self._persist_tickets()

        logger.info(f"Ticket {ticket_id} activated, expires at {activated.expires_at.isoformat()}")
        return TicketActionResult.ok("Ticket activated.", activated)

    def mark_used(self, ticket_id: str) -> TicketActionResult:
        """Redeem an active ticket: move it from the live set into history."""
        with self._lock:
            index = self._index_of(ticket_id)
            if index is None:
                return TicketActionResult.fail(FailureReason.NOT_FOUND, "Ticket not found.")

            ticket = self._tickets[index]
            if ticket.status != TicketStatus.ACTIVE:
                return TicketActionResult.fail(
                    FailureReason.INVALID_STATE,
                    f"Ticket is {ticket.status.value} and cannot be redeemed.",
                    ticket,
                )

            used = ticket.with_status(TicketStatus.USED)
            del self._tickets[index]
            self._history.insert(0, used)
            self._persist_tickets()
            self._persist_history()

        logger.info(f"Ticket {ticket_id} redeemed")
        return TicketActionResult.ok("Ticket used.", used)

    def expire_overdue(self) -> List[str]:
        """
        Flip every active ticket whose expiry has passed to expired.

        Idempotent. Called by the expiry monitor on each tick.

        Returns:
            Ids of tickets expired by this call
        """
        expired_ids: List[str] = []
        with self._lock:
            now = self._clock.now()
            for i, ticket in enumerate(self._tickets):
                if ticket.is_overdue(now):
                    self._tickets[i] = ticket.with_status(TicketStatus.EXPIRED)
                    expired_ids.append(ticket.id)
            if expired_ids:
                self._persist_tickets()

        for ticket_id in expired_ids:
            logger.info(f"Ticket {ticket_id} expired")
        return expired_ids

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _index_of(self, ticket_id: str) -> Optional[int]:
        for i, ticket in enumerate(self._tickets):
            if ticket.id == ticket_id:
                return i
        return None

    def _load_tickets(self, key: str, validity: Optional[timedelta] = None) -> List[Ticket]:
        raw = self._storage.get(key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Stored {key} is not valid JSON, starting empty: {e}")
            return []
        if not isinstance(items, list):
            logger.warning(f"Stored {key} is not a list, starting empty")
            return []

        tickets: List[Ticket] = []
        for item in items:
            try:
                tickets.append(Ticket.from_dict(item, validity))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Dropping malformed ticket record in {key}: {e}")
        return tickets

    def _dump(self, tickets: List[Ticket]) -> str:
        return json.dumps([t.to_dict() for t in tickets], ensure_ascii=False)

    def _persist_tickets(self) -> None:
        self._storage.set(TICKETS_STORAGE_KEY, self._dump(self._tickets))

    def _persist_history(self) -> None:
        self._storage.set(HISTORY_STORAGE_KEY, self._dump(self._history))

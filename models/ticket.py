"""
Ticket data models.

A ticket is a single-use order voucher for one menu at one corner.
Owned by the TicketStore while live; moved into the history log once used.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Any, Optional

from core.clock import from_epoch_ms, to_epoch_ms


class TicketStatus(Enum):
    """
    Status of a ticket.

    Lifecycle:
        STORED -> ACTIVE -> (USED | EXPIRED)
        STORED -> removed (cancelled)
    """

    STORED = "stored"
    """Purchased, not yet shown at the counter."""

    ACTIVE = "active"
    """QR shown; redeemable until expires_at."""

    USED = "used"
    """Redeemed at the counter. Terminal."""

    EXPIRED = "expired"
    """Redemption window elapsed. Terminal."""


class PaymentMethod(Enum):
    """How a ticket was paid for. Only CHARGE touches the balance ledger."""

    CHARGE = "charge"
    TOSS = "toss"
    CARD = "card"

    @property
    def uses_balance(self) -> bool:
        return self is PaymentMethod.CHARGE


class FailureReason(Enum):
    """Why a ticket or ledger operation was refused."""

    NOT_FOUND = "not_found"
    NOT_CANCELLABLE = "not_cancellable"
    WINDOW_EXPIRED = "window_expired"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INVALID_STATE = "invalid_state"
    INVALID_AMOUNT = "invalid_amount"


@dataclass(frozen=True)
class MenuSelection:
    """The menu a user is buying a ticket for."""

    restaurant_id: str
    corner_id: str
    menu_name: str
    price_won: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MenuSelection":
        return cls(
            restaurant_id=str(data.get("restaurantId", "")),
            corner_id=str(data.get("cornerId", "")),
            menu_name=str(data.get("menuName", "")),
            price_won=int(data.get("priceWon", 0)),
        )


@dataclass(frozen=True)
class Ticket:
    """
    A single order ticket.

    Frozen: every state change produces a new Ticket via dataclasses.replace,
    so a Ticket handed to a caller never changes underneath it.
    """

    id: str
    restaurant_id: str
    corner_id: str
    menu_name: str
    price_won: int
    status: TicketStatus
    created_at: datetime
    activated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    payment_method: PaymentMethod = PaymentMethod.CHARGE

    def activate(self, now: datetime, validity: timedelta) -> "Ticket":
        return replace(
            self,
            status=TicketStatus.ACTIVE,
            activated_at=now,
            expires_at=now + validity,
        )

    def with_status(self, status: TicketStatus) -> "Ticket":
        return replace(self, status=status)

    def is_overdue(self, now: datetime) -> bool:
        """True for an active ticket whose expiry instant is strictly in the past."""
        return (
            self.status == TicketStatus.ACTIVE
            and self.expires_at is not None
            and self.expires_at < now
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted/JSON shape (instants as epoch ms)."""
        data: Dict[str, Any] = {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "cornerId": self.corner_id,
            "menuName": self.menu_name,
            "priceWon": self.price_won,
            "status": self.status.value,
            "createdAt": to_epoch_ms(self.created_at),
            "paymentMethod": self.payment_method.value,
        }
        if self.activated_at is not None:
            data["activatedAt"] = to_epoch_ms(self.activated_at)
        if self.expires_at is not None:
            data["expiresAt"] = to_epoch_ms(self.expires_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], validity: Optional[timedelta] = None) -> "Ticket":
        """
        Create from the persisted shape.

        Args:
            data: Persisted ticket record
            validity: When given, an activated ticket's expiresAt must be
                exactly activatedAt + validity

        Raises:
            KeyError, TypeError, ValueError: if required fields are missing,
            malformed, or inconsistent with the status. Loaders catch these
            and drop the record.
        """
        activated_at = data.get("activatedAt")
        expires_at = data.get("expiresAt")
        ticket = cls(
            id=str(data["id"]),
            restaurant_id=str(data["restaurantId"]),
            corner_id=str(data["cornerId"]),
            menu_name=str(data["menuName"]),
            price_won=int(data["priceWon"]),
            status=TicketStatus(data["status"]),
            created_at=from_epoch_ms(int(data["createdAt"])),
            activated_at=from_epoch_ms(int(activated_at)) if activated_at is not None else None,
            expires_at=from_epoch_ms(int(expires_at)) if expires_at is not None else None,
            payment_method=PaymentMethod(data.get("paymentMethod", "charge")),
        )
        ticket._check_invariants(validity)
        return ticket

    def _check_invariants(self, validity: Optional[timedelta]) -> None:
        if self.price_won <= 0:
            raise ValueError(f"priceWon must be positive, got {self.price_won}")

        if self.status == TicketStatus.STORED:
            if self.activated_at is not None or self.expires_at is not None:
                raise ValueError("stored ticket must not carry activatedAt/expiresAt")
            return

        # active, used, expired
        if self.activated_at is None or self.expires_at is None:
            raise ValueError(f"{self.status.value} ticket needs activatedAt and expiresAt")
        if validity is not None:
            window_ms = to_epoch_ms(self.expires_at) - to_epoch_ms(self.activated_at)
            if window_ms != int(validity.total_seconds() * 1000):
                raise ValueError(f"expiresAt is {window_ms}ms after activatedAt")


@dataclass(frozen=True)
class TicketActionResult:
    """
    Outcome of a ticket store operation.

    success=False always means nothing was mutated.
    """

    success: bool
    message: str = ""
    reason: Optional[FailureReason] = None
    ticket: Optional[Ticket] = None

    @classmethod
    def ok(cls, message: str, ticket: Optional[Ticket] = None) -> "TicketActionResult":
        return cls(success=True, message=message, ticket=ticket)

    @classmethod
    def fail(cls, reason: FailureReason, message: str, ticket: Optional[Ticket] = None) -> "TicketActionResult":
        return cls(success=False, message=message, reason=reason, ticket=ticket)

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "reason": self.reason.value if self.reason else None,
            "ticket": self.ticket.to_dict() if self.ticket else None,
        }

"""
QR payload for an activated ticket.

The payload is plain JSON with a random nonce. It is NOT signed: a scanner
cannot tell a genuine payload from a hand-made one. Counter staff compare
the short manual code shown under the QR instead.
"""

from __future__ import annotations

import json
import secrets
import string
from typing import Dict, Any, Optional

from core.clock import to_epoch_ms
from models.ticket import Ticket, TicketStatus


_BASE36 = string.digits + string.ascii_lowercase
# O and I are too easy to misread next to 0 and 1
_MANUAL_CODE_ALPHABET = (string.ascii_uppercase + string.digits).replace("O", "X").replace("I", "X")


def _random_string(alphabet: str, length: int) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_nonce(length: int = 8) -> str:
    return _random_string(_BASE36, length)


def generate_manual_code(length: int = 6) -> str:
    return _random_string(_MANUAL_CODE_ALPHABET, length)


def build_qr_payload(ticket: Ticket, nonce: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Build the QR payload for an active ticket.

    Returns None for any ticket that is not active.
    """
    if ticket.status != TicketStatus.ACTIVE:
        return None

    payload = {
        "ticketId": ticket.id,
        "restaurantId": ticket.restaurant_id,
        "cornerId": ticket.corner_id,
        "createdAt": to_epoch_ms(ticket.created_at),
        "activatedAt": to_epoch_ms(ticket.activated_at) if ticket.activated_at else None,
        "nonce": nonce or generate_nonce(),
    }
    return {
        "payload": json.dumps(payload, separators=(",", ":")),
        "manualCode": generate_manual_code(),
    }

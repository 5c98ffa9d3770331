"""
Ticket and balance routes.

Thin JSON wrappers around TicketStore and BalanceLedger. Validation
failures from the store come back as 200 with success=false, matching the
store's result contract; malformed requests are 400.
"""

import bleach
from flask import (
    Blueprint,
    current_app,
    request,
)

from core.exceptions import LedgerInvariantError
from models.ticket import FailureReason, MenuSelection, PaymentMethod
from modules.ticket_qr import build_qr_payload
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

tickets_bp = Blueprint("tickets", __name__)

# Constants
MAX_TEXT_LENGTH = 100
MAX_CHARGE_AMOUNT = 1_000_000


def _sanitize_text(text, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Sanitize user input text."""
    if not text:
        return ""
    text = str(text).strip()
    text = bleach.clean(text, tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def _store():
    return current_app.config["TICKET_STORE"]


def _bad_request(message: str):
    return {"success": False, "message": message, "reason": "bad_request"}, 400


def _action_response(result):
    status_code = 200
    if not result.success and result.reason == FailureReason.NOT_FOUND:
        status_code = 404
    return result.to_dict(), status_code


# =============================================================================
# BALANCE
# =============================================================================

@tickets_bp.route("/api/balance", methods=["GET"])
def get_balance():
    return {"balance": _store().balance}


@tickets_bp.route("/api/balance/charge", methods=["POST"])
def charge_balance():
    """Mock top-up. Body: {"amount": int > 0}"""
    data = request.get_json(silent=True) or {}
    amount = data.get("amount")

    if not isinstance(amount, int) or isinstance(amount, bool):
        return _bad_request("amount must be an integer")
    if amount <= 0 or amount > MAX_CHARGE_AMOUNT:
        return _bad_request(f"amount must be between 1 and {MAX_CHARGE_AMOUNT}")

    try:
        balance = _store().ledger.charge(amount)
    except LedgerInvariantError as e:
        logger.error(f"Charge rejected: {e}")
        return _bad_request(e.message)

    return {"success": True, "balance": balance}


# =============================================================================
# TICKETS
# =============================================================================

@tickets_bp.route("/api/tickets", methods=["GET"])
def list_tickets():
    store = _store()
    return {
        "tickets": [t.to_dict() for t in store.tickets],
        "balance": store.balance,
    }


@tickets_bp.route("/api/tickets/history", methods=["GET"])
def ticket_history():
    return {"history": [t.to_dict() for t in _store().history]}


@tickets_bp.route("/api/tickets", methods=["POST"])
def purchase_ticket():
    """
    Buy a ticket.

    Body: {restaurantId, cornerId, menuName, priceWon, paymentMethod?}
    """
    data = request.get_json(silent=True) or {}

    price = data.get("priceWon")
    if not isinstance(price, int) or isinstance(price, bool):
        return _bad_request("priceWon must be an integer")

    try:
        payment_method = PaymentMethod(data.get("paymentMethod", PaymentMethod.CHARGE.value))
    except ValueError:
        return _bad_request(f"Unsupported payment method: {data.get('paymentMethod')}")

    menu = MenuSelection(
        restaurant_id=_sanitize_text(data.get("restaurantId")),
        corner_id=_sanitize_text(data.get("cornerId")),
        menu_name=_sanitize_text(data.get("menuName")),
        price_won=price,
    )
    if not menu.restaurant_id or not menu.corner_id or not menu.menu_name:
        return _bad_request("restaurantId, cornerId and menuName are required")

    result = _store().purchase(menu, payment_method)
    body, status_code = _action_response(result)
    if result.success:
        status_code = 201
    body["balance"] = _store().balance
    return body, status_code


@tickets_bp.route("/api/tickets/<ticket_id>/cancel", methods=["POST"])
def cancel_ticket(ticket_id: str):
    result = _store().cancel(ticket_id)
    body, status_code = _action_response(result)
    body["balance"] = _store().balance
    return body, status_code


@tickets_bp.route("/api/tickets/<ticket_id>/activate", methods=["POST"])
def activate_ticket(ticket_id: str):
    result = _store().activate(ticket_id)
    body, status_code = _action_response(result)
    if result.success:
        body["qr"] = build_qr_payload(result.ticket)
    return body, status_code


@tickets_bp.route("/api/tickets/<ticket_id>/use", methods=["POST"])
def use_ticket(ticket_id: str):
    return _action_response(_store().mark_used(ticket_id))


@tickets_bp.route("/api/tickets/<ticket_id>/remaining", methods=["GET"])
def remaining(ticket_id: str):
    store = _store()
    ticket = store.get(ticket_id)
    if ticket is None:
        return {"success": False, "message": "Ticket not found.", "reason": "not_found"}, 404
    return {
        "ticketId": ticket_id,
        "status": ticket.status.value,
        "remainingSeconds": store.remaining_seconds(ticket_id),
    }


@tickets_bp.route("/api/tickets/<ticket_id>/qr", methods=["GET"])
def ticket_qr(ticket_id: str):
    """QR payload for an active ticket (fresh nonce on every call)."""
    ticket = _store().get(ticket_id)
    if ticket is None:
        return {"success": False, "message": "Ticket not found.", "reason": "not_found"}, 404

    qr = build_qr_payload(ticket)
    if qr is None:
        return {
            "success": False,
            "message": "QR codes are only available for active tickets.",
            "reason": FailureReason.INVALID_STATE.value,
        }, 409
    return {"success": True, "qr": qr}

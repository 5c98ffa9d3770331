"""
API routes for waiting data and service health.

Handles:
- /api/waiting            - One day of waiting data (optionally filtered)
- /api/waiting/latest     - Newest snapshot of a day
- /api/waiting/timestamps - Distinct snapshot timestamps for a day
- /health                 - Health check endpoint
"""

from flask import (
    Blueprint,
    current_app,
    request,
)

from core.exceptions import InvalidDateKeyError, InvalidTimeParamError
from modules.dates import kst_date_key, validate_date_key
from modules.wait_estimator import compute_wait_minutes
from modules.waiting_query import filter_by_time, latest_records, validate_time_param
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


def _requested_date() -> str:
    """The ?date= query parameter, or today in KST. Raises InvalidDateKeyError."""
    date_param = request.args.get("date")
    if not date_param:
        return kst_date_key()
    return validate_date_key(date_param)


@api_bp.errorhandler(InvalidDateKeyError)
def handle_invalid_date(e: InvalidDateKeyError):
    return {
        "error": "VALIDATION_ERROR",
        "message": e.message,
        "date": e.date_key,
    }, 400


@api_bp.errorhandler(InvalidTimeParamError)
def handle_invalid_time(e: InvalidTimeParamError):
    return {
        "error": "VALIDATION_ERROR",
        "message": e.message,
        "time": e.value,
    }, 400


def _with_wait_minutes(records):
    items = []
    for record in records:
        item = record.to_dict()
        item["computedWaitMin"] = compute_wait_minutes(
            record.queue_len, record.restaurant_id, record.corner_id
        )
        items.append(item)
    return items


def _source_failure(result, target_date: str):
    if result.not_found:
        return {
            "error": "WAITING_DATA_NOT_AVAILABLE",
            "message": result.error,
            "date": target_date,
        }, 404
    return {
        "error": "WAITING_SOURCE_UNAVAILABLE",
        "message": result.error,
        "date": target_date,
    }, 503


@api_bp.route("/api/waiting", methods=["GET"])
def waiting():
    """
    Waiting data for one day.

    Query params:
        date: YYYY-MM-DD (default: today, KST)
        time: HH:MM (5-minute bucket) or an exact ISO timestamp
        restaurantId, cornerId: optional filters

    Each record gains ``computedWaitMin`` from the per-corner wait model.
    """
    target_date = _requested_date()
    time_param = request.args.get("time")
    if time_param:
        validate_time_param(time_param)

    result = current_app.config["WAITING_CACHE"].get(target_date)
    if not result.success:
        return _source_failure(result, target_date)

    records = result.data
    if time_param:
        records = filter_by_time(records, time_param)

    restaurant_id = request.args.get("restaurantId")
    corner_id = request.args.get("cornerId")
    records = [
        r for r in records
        if (not restaurant_id or r.restaurant_id == restaurant_id)
        and (not corner_id or r.corner_id == corner_id)
    ]

    return {
        "date": target_date,
        "cached": result.cached,
        "data": _with_wait_minutes(records),
    }


@api_bp.route("/api/waiting/latest", methods=["GET"])
def waiting_latest():
    """Only the newest snapshot of a day; empty data when the day has none."""
    target_date = _requested_date()

    result = current_app.config["WAITING_CACHE"].get(target_date)
    if not result.success:
        if result.not_found:
            return {"date": target_date, "timestamp": None, "cached": False, "data": []}
        return _source_failure(result, target_date)

    records = latest_records(result.data)
    return {
        "date": target_date,
        "timestamp": records[0].timestamp if records else None,
        "cached": result.cached,
        "data": _with_wait_minutes(records),
    }


@api_bp.route("/api/waiting/timestamps", methods=["GET"])
def waiting_timestamps():
    """Sorted distinct timestamps for a day; empty when the day has no object."""
    target_date = _requested_date()
    cache = current_app.config["WAITING_CACHE"]

    result = cache.get(target_date)

    if result.success:
        timestamps = sorted({record.timestamp for record in result.data})
        return {"timestamps": timestamps}

    if result.not_found:
        return {"timestamps": []}

    return {"error": "Waiting data source is unavailable or disabled"}, 503


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    ticket_store = current_app.config.get("TICKET_STORE")
    if ticket_store and ticket_store.monitor_running:
        health_status["checks"]["expiry_monitor"] = "running"
    else:
        health_status["checks"]["expiry_monitor"] = "not_running"
        health_status["status"] = "degraded"

    waiting_source = current_app.config.get("WAITING_SOURCE")
    if waiting_source and waiting_source.enabled:
        health_status["checks"]["waiting_source"] = "enabled"
    else:
        health_status["checks"]["waiting_source"] = "disabled"

    waiting_cache = current_app.config.get("WAITING_CACHE")
    if waiting_cache:
        health_status["checks"]["waiting_cache"] = waiting_cache.stats()

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code

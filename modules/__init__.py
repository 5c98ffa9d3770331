"""Helper modules for HY-eat."""

__all__ = [
    "dates",
    "ticket_qr",
    "wait_estimator",
    "waiting_query",
]

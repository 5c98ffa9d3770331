"""
HY-eat - Flask Application Entry Point.

Slim app factory that:
1. Loads configuration and sets up logging
2. Builds local state (storage, balance ledger, ticket store)
3. Starts the ticket expiry monitor (background thread)
4. Builds the waiting-data source and its cache
5. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling
    └── Cleanup on shutdown (monitor stop, HTTP client close)

    ExpiryMonitor Thread (background)
    └── Periodic sweep demoting overdue active tickets
"""

from __future__ import annotations

import atexit
import logging
import os
from datetime import timedelta
from typing import Optional

import httpx
from dotenv import load_dotenv
from flask import Flask
from werkzeug.exceptions import HTTPException

from logging_config import setup_logging, get_logger
from core.clock import Clock
from core.storage import InMemoryStorage, JsonFileStorage, KeyValueStorage
from services.ledger import BalanceLedger
from services.ticket_store import TicketStore
from services.waiting_cache import WaitingDataCache
from services.waiting_source import WaitingDataSource
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _build_storage(state_file: str) -> KeyValueStorage:
    if not state_file:
        logger.info("No STATE_FILE configured, local state is in-memory only")
        return InMemoryStorage()
    return JsonFileStorage(state_file)


def create_app(
    config_object="config.Config",
    storage: Optional[KeyValueStorage] = None,
    clock: Optional[Clock] = None,
    http_client: Optional[httpx.Client] = None,
    start_monitor: bool = True,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Config class, or its import path
        storage: Storage for local state (default: from STATE_FILE)
        clock: Time source shared by the store and cache (default: system)
        http_client: httpx client for the object store (default: own client)
        start_monitor: Whether to start the expiry monitor thread

    Returns:
        Configured Flask application
    """
    load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(log_level=log_level, enable_file_logging=enable_file_logging)
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting HY-eat in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # LOCAL STATE
    # =========================================================================

    if storage is None:
        storage = _build_storage(app.config.get("STATE_FILE", ""))

    ledger = BalanceLedger(storage, initial_balance=app.config["INITIAL_BALANCE"])
    ticket_store = TicketStore(
        ledger,
        storage,
        clock=clock,
        validity=timedelta(minutes=app.config["TICKET_VALIDITY_MINUTES"]),
        cancel_window=timedelta(minutes=app.config["TICKET_CANCEL_WINDOW_MINUTES"]),
        sweep_interval_seconds=app.config["EXPIRY_SWEEP_INTERVAL_SECONDS"],
    )
    if start_monitor:
        ticket_store.start()

    app.config["STORAGE"] = storage
    app.config["TICKET_STORE"] = ticket_store

    # =========================================================================
    # WAITING DATA
    # =========================================================================

    waiting_source = WaitingDataSource(
        app.config["WAITING_BUCKET_URL"],
        timeout_ms=app.config["WAITING_FETCH_TIMEOUT_MS"],
        enabled=app.config["WAITING_SOURCE_ENABLED"],
        client=http_client,
    )
    waiting_cache = WaitingDataCache(
        waiting_source,
        ttl_seconds=app.config["WAITING_CACHE_TTL_SECONDS"],
        max_entries=app.config["WAITING_CACHE_MAX_ENTRIES"],
        clock=clock,
    )
    app.config["WAITING_SOURCE"] = waiting_source
    app.config["WAITING_CACHE"] = waiting_cache

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        ticket_store.stop()
        waiting_source.close()
        logger.info("Shutdown complete")

    app.config["CLEANUP"] = cleanup
    atexit.register(cleanup)

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return {"error": e.name, "message": e.description}, e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.error(f"Unhandled error: {e}", exc_info=True)
        return {"error": "Internal Server Error", "message": "An unexpected error occurred."}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    # The reloader would start a second expiry monitor in the child process
    app.run(debug=debug_mode, use_reloader=False)

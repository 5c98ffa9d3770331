"""
Configuration for HY-eat.

All tunables read from the environment (or a .env file) with defaults that
match the campus deployment. The waiting-data source can be switched
off with WAITING_SOURCE_ENABLED so the app still starts without network
access to the object store.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"
    TESTING = False

    # ==========================================================================
    # Waiting-data source (external object store)
    # ==========================================================================
    # Objects are read from {WAITING_BUCKET_URL}/waiting-data/{YYYY-MM-DD}.json
    # Set WAITING_SOURCE_ENABLED to anything other than "enabled" to disable.
    # ==========================================================================
    WAITING_SOURCE_ENABLED = os.environ.get("WAITING_SOURCE_ENABLED", "enabled") == "enabled"
    WAITING_BUCKET_URL = os.environ.get(
        "WAITING_BUCKET_URL",
        "https://hyeat-menu-dev.s3.ap-northeast-2.amazonaws.com"
    )
    WAITING_FETCH_TIMEOUT_MS = int(os.environ.get("WAITING_FETCH_TIMEOUT_MS", "3000"))

    # Waiting-data cache
    WAITING_CACHE_TTL_SECONDS = int(os.environ.get("WAITING_CACHE_TTL_SECONDS", "300"))
    WAITING_CACHE_MAX_ENTRIES = int(os.environ.get("WAITING_CACHE_MAX_ENTRIES", "20"))

    # ==========================================================================
    # Ticket lifecycle
    # ==========================================================================
    TICKET_VALIDITY_MINUTES = int(os.environ.get("TICKET_VALIDITY_MINUTES", "30"))
    TICKET_CANCEL_WINDOW_MINUTES = int(os.environ.get("TICKET_CANCEL_WINDOW_MINUTES", "5"))
    EXPIRY_SWEEP_INTERVAL_SECONDS = float(
        os.environ.get("EXPIRY_SWEEP_INTERVAL_SECONDS", "1.0")
    )

    # Local state (balance, live tickets, history)
    STATE_FILE = os.environ.get(
        "STATE_FILE", str(BASE_DIR / "data" / "hy_eat_state.json")
    )
    INITIAL_BALANCE = int(os.environ.get("INITIAL_BALANCE", "0"))


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    WAITING_SOURCE_ENABLED = False
    STATE_FILE = ""
    EXPIRY_SWEEP_INTERVAL_SECONDS = 3600.0

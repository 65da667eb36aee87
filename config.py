"""
Configuration for PartsCheckout.

Values come from the environment (a .env file is loaded first), so the same
code runs against a local SQLite file in development and the hosted
database in production.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _split_columns(raw: str) -> tuple:
    """Parse a comma-separated column list, dropping blanks."""
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "parts_checkout_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Backend store
    # ==========================================================================
    DATABASE_URL = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'parts_checkout.db'}"
    )

    # ==========================================================================
    # Order history lookup
    # ==========================================================================
    # Orders have been linked to users through different columns over the
    # life of the schema. Candidates are tried in this order and the first
    # column that returns rows wins.
    #
    # ORDER_OWNER_COLUMNS: comma-separated, highest priority first
    # ORDER_HISTORY_LIMIT: most recent orders returned per profile
    # ==========================================================================
    ORDERS_TABLE = os.environ.get("ORDERS_TABLE", "purchase_orders")
    ORDER_OWNER_COLUMNS = _split_columns(
        os.environ.get("ORDER_OWNER_COLUMNS", "user_id,profile_id,customer_id")
    )
    ORDER_HISTORY_LIMIT = int(os.environ.get("ORDER_HISTORY_LIMIT", "10"))


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    DATABASE_URL = "sqlite://"

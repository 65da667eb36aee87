"""
PartsCheckout - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration (.env + Config class)
2. Configures logging
3. Creates the backend store (SQLAlchemy engine)
4. Builds the profile services on top of it
5. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Flask request handling
    ├── profile functions  -> ProfileDataAggregator / ProfileMaintenance -> ProfileStore
    ├── checkout API       -> CheckoutOrchestrator (state in the session)
    └── health             -> ProfileStore.ping()

The aggregator and the checkout share nothing at runtime.
"""

from __future__ import annotations

import atexit
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from werkzeug.exceptions import HTTPException

from logging_config import setup_logging, get_logger
from core.exceptions import PartsCheckoutError
from core.store import ProfileStore
from services.profile_service import ProfileDataAggregator, ProfileMaintenance
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def create_app(
    config_object: str = "config.Config",
    store: Optional[ProfileStore] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class
        store: Pre-built backend store (tests); created from DATABASE_URL if omitted

    Returns:
        Configured Flask application
    """
    load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting PartsCheckout in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # BACKEND STORE
    # =========================================================================

    owns_store = store is None
    if owns_store:
        store = ProfileStore.from_url(app.config["DATABASE_URL"])
    app.config["PROFILE_STORE"] = store

    # =========================================================================
    # SERVICES
    # =========================================================================

    app.config["PROFILE_AGGREGATOR"] = ProfileDataAggregator(
        store,
        orders_table=app.config["ORDERS_TABLE"],
        owner_columns=app.config["ORDER_OWNER_COLUMNS"],
        order_limit=app.config["ORDER_HISTORY_LIMIT"],
    )
    app.config["PROFILE_MAINTENANCE"] = ProfileMaintenance(store)
    logger.info(
        f"Order lookup columns: {list(app.config['ORDER_OWNER_COLUMNS'])} "
        f"on {app.config['ORDERS_TABLE']}"
    )

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    if owns_store:
        def cleanup():
            """Cleanup on application shutdown."""
            logger.info("Shutting down...")
            store.dispose()
            logger.info("Shutdown complete")

        atexit.register(cleanup)

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(PartsCheckoutError)
    def handle_app_error(e: PartsCheckoutError):
        if e.status_code >= 500:
            logger.error(f"Request failed: {e}", exc_info=True)
        return {"error": e.message}, e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return {"error": e.description}, e.code

    @app.errorhandler(500)
    def handle_server_error(e):
        original = getattr(e, "original_exception", None) or e
        logger.error(f"500 error: {original}", exc_info=True)
        return {"error": str(original)}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)

"""
Dispatch Console - Flask Application Entry Point.

This is a slim app factory that:
1. Configures logging
2. Starts the stock service (separate thread)
3. Creates the dispatch service (sessions run in request threads)
4. Registers route blueprints
5. Sets up JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling
    │   └── DispatchSession work (scan, import, submit) per request
    └── Cleanup on shutdown

    Stock Thread (background)
    └── Refresh loop with OWN API client per pass,
        woken early when a dispatch invalidates stock

Each refresh and each submission creates its own API client.
"""

from __future__ import annotations

import atexit
import logging
import os
from typing import Callable, Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from logging_config import setup_logging, get_logger
from core.api_client import InventoryAPIClient
from services.stock_service import StockService
from services.dispatch_service import DispatchService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def create_app(
    config_object: str = "config.Config",
    client_factory: Optional[Callable[[], InventoryAPIClient]] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class to load
        client_factory: Returns a new InventoryAPIClient per call
            (default: built from API_BASE_URL / API_TOKEN / API_TIMEOUT_SECONDS)

    Returns:
        Configured Flask application
    """
    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        app_name="dispatch_console",
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting Dispatch Console in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    if client_factory is None:
        base_url = app.config["API_BASE_URL"]
        token = app.config.get("API_TOKEN") or None
        timeout = app.config.get("API_TIMEOUT_SECONDS", 15.0)

        def client_factory() -> InventoryAPIClient:
            return InventoryAPIClient(base_url, token=token, timeout_seconds=timeout)

    # Create stock service (background thread unless disabled)
    stock_service = StockService(
        client_factory,
        refresh_interval_seconds=app.config.get("STOCK_REFRESH_INTERVAL", 30.0),
    )
    if app.config.get("START_STOCK_REFRESH", True):
        stock_service.start()
        logger.info("Stock service started")
    app.config["STOCK_SERVICE"] = stock_service

    # Create dispatch service (sessions + submission)
    dispatch_service = DispatchService(
        stock_service,
        client_factory,
        default_operator_name=app.config.get("DEFAULT_OPERATOR_NAME", ""),
        session_idle_seconds=app.config.get("SESSION_IDLE_TIMEOUT", 8 * 3600),
    )
    app.config["DISPATCH_SERVICE"] = dispatch_service
    logger.info("Dispatch service initialized")

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")

        if stock_service:
            stock_service.stop()

        if dispatch_service:
            dispatch_service.sessions.clear()

        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(e):
        max_mb = app.config.get("MAX_CONTENT_LENGTH", 5 * 1024 * 1024) / (1024 * 1024)
        return jsonify({
            "error": f"File too large. Maximum upload size is {max_mb:.0f} MB.",
            "details": {},
        }), 413

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Not found", "details": {}}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "details": {}}), 405

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred. Please try again.",
            "details": {},
        }), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.error(f"Unhandled error: {e}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred. Please try again.",
            "details": {},
        }), 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)

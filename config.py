"""
Configuration for the Dispatch Console.

Values come from environment variables; a .env file next to this module is
loaded first.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024  # 5 MB serial-list uploads
    SESSION_COOKIE_NAME = "dispatch_console_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    TESTING = False

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Inventory API
    # ==========================================================================
    # DISPATCH_API_BASE_URL: root of the inventory API (no trailing slash)
    # DISPATCH_API_TOKEN: bearer token of the factory admin account
    # DISPATCH_API_TIMEOUT: seconds per HTTP request
    # ==========================================================================
    API_BASE_URL = os.environ.get("DISPATCH_API_BASE_URL", "http://localhost:5000")
    API_TOKEN = os.environ.get("DISPATCH_API_TOKEN", "")
    API_TIMEOUT_SECONDS = float(os.environ.get("DISPATCH_API_TIMEOUT", "15"))

    # Seconds between background stock refreshes
    STOCK_REFRESH_INTERVAL = float(os.environ.get("STOCK_REFRESH_INTERVAL", "30"))

    # Start the background refresh thread in create_app()
    START_STOCK_REFRESH = True

    # Bulk import
    IMPORT_ALLOWED_EXTENSIONS = {"csv", "txt", "xlsx"}

    # Name used for the dispatch number prefix when the session has none
    DEFAULT_OPERATOR_NAME = os.environ.get("DISPATCH_OPERATOR_NAME", "")

    # Dispatch sessions unused for this long are dropped
    SESSION_IDLE_TIMEOUT = int(os.environ.get("SESSION_IDLE_TIMEOUT", 8 * 3600))


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 8 * 3600  # one shift


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    START_STOCK_REFRESH = False
    API_BASE_URL = "http://inventory.test"
    API_TOKEN = ""
    DEFAULT_OPERATOR_NAME = "Qaiser Javed"

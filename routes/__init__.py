"""
Flask route blueprints for the Dispatch Console.

This module contains all route handlers organized by functionality:
- dispatch: Dispatch composition and submission (JSON)
- api: Stock snapshot, manual refresh and health check

Each blueprint is registered with the Flask app in create_app().
"""

from .dispatch import dispatch_bp
from .api import api_bp

__all__ = [
    "dispatch_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(dispatch_bp)
    app.register_blueprint(api_bp)

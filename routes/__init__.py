"""
Flask route blueprints for PartsCheckout.

This module contains all route handlers organized by functionality:
- profile: Cross-origin profile functions (profile data, addresses, profile)
- checkout: Session-backed cart and checkout API
- api: Operational endpoints (health)

Each blueprint is registered with the Flask app in create_app().
"""

from .profile import profile_bp
from .checkout import checkout_bp
from .api import api_bp

__all__ = [
    "profile_bp",
    "checkout_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(profile_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(api_bp)

"""
Profile functions (cross-origin JSON endpoints).

Handles:
- /api/profile-data    - Addresses, payment methods and recent orders
- /api/save-address    - Save a default address
- /api/update-profile  - Create/update the profile row

Each is also served under /.netlify/functions/<name> so existing browser
clients keep working unchanged.

CROSS-ORIGIN CONTRACT:
    Called from a browser on another origin. Every response - preflight,
    success or error - carries the CORS headers, and OPTIONS answers 200
    with an empty body.
"""

from flask import Blueprint, current_app, request

from core.exceptions import PartsCheckoutError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

profile_bp = Blueprint("profile", __name__)

FUNCTION_PREFIXES = ("/api", "/.netlify/functions")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Content-Type": "application/json",
}


def is_function_path(path: str) -> bool:
    return any(path.startswith(f"{prefix}/") for prefix in FUNCTION_PREFIXES)


@profile_bp.after_app_request
def add_cors_headers(response):
    """
    Attach cross-origin headers to every response under a function prefix.

    Registered app-wide so routing failures (404, 405), which never reach
    the blueprint, carry the headers too.
    """
    if is_function_path(request.path):
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
    return response


def _preflight():
    return current_app.response_class("", status=200, mimetype="application/json")


def _json_body() -> dict:
    """Request JSON as a dict; a missing or malformed body reads as {}."""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _error_response(error: Exception, label: str):
    """Map an exception to the functions' {"error": ...} body."""
    if isinstance(error, PartsCheckoutError):
        if error.status_code >= 500:
            logger.error(f"{label} error: {error}", exc_info=True)
        else:
            logger.info(f"{label} rejected: {error.message}")
        return {"error": error.message}, error.status_code

    logger.error(f"{label} error: {error}", exc_info=True)
    return {"error": str(error)}, 500


def _function_route(name: str):
    """Register a view under every function prefix for POST and OPTIONS."""
    def decorator(view):
        for prefix in FUNCTION_PREFIXES:
            profile_bp.add_url_rule(
                f"{prefix}/{name}",
                endpoint=f"{name.replace('-', '_')}{'' if prefix == '/api' else '_legacy'}",
                view_func=view,
                methods=["POST", "OPTIONS"],
            )
        return view
    return decorator


@_function_route("profile-data")
def profile_data():
    """
    Return addresses, payment methods and orders for ``userId``.

    Missing collections come back as empty lists. Only a missing user id
    (400) or an unexpected failure (500) produce an error.
    """
    if request.method == "OPTIONS":
        return _preflight()

    try:
        user_id = _json_body().get("userId")
        logger.info(f"Profile-data called with userId: {user_id}")

        aggregator = current_app.config["PROFILE_AGGREGATOR"]
        data = aggregator.aggregate(user_id)
        return data.to_dict(), 200

    except Exception as e:
        return _error_response(e, "Profile data")


@_function_route("save-address")
def save_address():
    """Save ``address`` as the user's default address of ``type``."""
    if request.method == "OPTIONS":
        return _preflight()

    try:
        body = _json_body()
        maintenance = current_app.config["PROFILE_MAINTENANCE"]
        maintenance.save_address(
            body.get("userId"),
            body.get("address"),
            body.get("type"),
            address_id=body.get("addressId"),
        )
        return {"success": True}, 200

    except Exception as e:
        return _error_response(e, "Save address")


@_function_route("update-profile")
def update_profile():
    """Create or update the profile row for ``userId``."""
    if request.method == "OPTIONS":
        return _preflight()

    try:
        body = _json_body()
        maintenance = current_app.config["PROFILE_MAINTENANCE"]
        maintenance.update_profile(body.get("userId"), body.get("profile"))
        return {"success": True}, 200

    except Exception as e:
        return _error_response(e, "Update profile")

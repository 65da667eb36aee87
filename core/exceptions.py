"""
Custom exceptions for PartsCheckout.

Exception Hierarchy:
    PartsCheckoutError (base)
    ├── MissingUserIdError          - Request carried no user id (400)
    ├── MissingFieldsError          - Required request fields absent (400)
    ├── StoreError                  - Backend store failure
    │   └── StoreQueryError         - A single query failed (isolated per lookup)
    └── CheckoutError               - Checkout/cart operation rejected
        ├── InvalidFreightQuoteError - Quote payload unusable (400)
        ├── InvalidCartItemError     - Cart item payload unusable (400)
        ├── CartItemNotFoundError    - No cart line with that id (404)
        └── CheckoutStateError       - Action not allowed in current phase (409)

Usage:
    Routes map each class to its HTTP status through ``status_code``.
    Anything outside this hierarchy is unexpected and becomes a 500.
"""

from typing import Optional, Dict, Any


class PartsCheckoutError(Exception):
    """
    Base exception for all PartsCheckout errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# REQUEST ERRORS - client sent something unusable
# =============================================================================

class MissingUserIdError(PartsCheckoutError):
    """The request did not identify a user."""

    status_code = 400

    def __init__(self, message: str = "User ID required"):
        super().__init__(message)


class MissingFieldsError(PartsCheckoutError):
    """One or more required request fields were absent."""

    status_code = 400

    def __init__(self, fields: Optional[list] = None):
        details = {"fields": list(fields)} if fields else None
        super().__init__("Missing required fields", details)
        self.fields = list(fields or [])


# =============================================================================
# STORE ERRORS
# =============================================================================

class StoreError(PartsCheckoutError):
    """Base class for backend store failures."""


class StoreQueryError(StoreError):
    """
    A query against the backend store failed.

    Raised for unknown tables or columns as well as driver errors. The
    profile aggregator treats this as "no data" for the lookup that hit
    it, so one broken table never hides the others.
    """

    def __init__(self, table: str, reason: str, column: Optional[str] = None):
        message = f"Query on '{table}' failed: {reason}"
        details = {"table": table}
        if column:
            details["column"] = column
        super().__init__(message, details)
        self.table = table
        self.column = column
        self.reason = reason


# =============================================================================
# CHECKOUT ERRORS
# =============================================================================

class CheckoutError(PartsCheckoutError):
    """Base class for rejected cart and checkout operations."""

    status_code = 400


class InvalidFreightQuoteError(CheckoutError):
    """A freight quote payload is missing fields or has non-numeric rates."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid freight quote: {reason}")
        self.reason = reason


class InvalidCartItemError(CheckoutError):
    """A cart item payload is missing fields or has invalid values."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid cart item: {reason}")
        self.reason = reason


class CartItemNotFoundError(CheckoutError):
    """No cart line exists for the given item id."""

    status_code = 404

    def __init__(self, item_id: str):
        super().__init__(f"Cart item not found: {item_id}", {"item_id": item_id})
        self.item_id = item_id


class CheckoutStateError(CheckoutError):
    """
    The requested action is not allowed in the current checkout phase.

    Examples:
    - Changing the freight selection while the payment flow is open
    - Reporting a payment outcome when no payment flow is open
    """

    status_code = 409

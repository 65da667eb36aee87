"""
Core module for PartsCheckout.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- store: SQLAlchemy-backed access to the commerce database
"""

from .exceptions import (
    PartsCheckoutError,
    MissingUserIdError,
    MissingFieldsError,
    StoreError,
    StoreQueryError,
    CheckoutError,
    InvalidFreightQuoteError,
    InvalidCartItemError,
    CartItemNotFoundError,
    CheckoutStateError,
)
from .store import ProfileStore

__all__ = [
    "PartsCheckoutError",
    "MissingUserIdError",
    "MissingFieldsError",
    "StoreError",
    "StoreQueryError",
    "CheckoutError",
    "InvalidFreightQuoteError",
    "InvalidCartItemError",
    "CartItemNotFoundError",
    "CheckoutStateError",
    "ProfileStore",
]

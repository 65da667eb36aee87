"""
Data models for PartsCheckout.

This module contains dataclasses for:
- Profile data: Address, PaymentMethod, OrderSummary, ProfileData
- Cart: CartItem, Cart (session-stored)
- Checkout: FreightQuote (immutable), PaymentRequest
"""

from .profile import Address, PaymentMethod, OrderSummary, ProfileData
from .cart import Cart, CartItem
from .checkout import FreightQuote, PaymentRequest

__all__ = [
    # Profile models
    "Address",
    "PaymentMethod",
    "OrderSummary",
    "ProfileData",
    # Cart models
    "Cart",
    "CartItem",
    # Checkout models
    "FreightQuote",
    "PaymentRequest",
]

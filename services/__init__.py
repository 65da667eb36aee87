"""
Services layer for PartsCheckout.

This module contains the business logic services:
- ProfileDataAggregator: Read-only profile data with order-column probing
- ProfileMaintenance: Address and profile writes
- CheckoutOrchestrator: Checkout phases, totals and payment hand-off

Services receive their collaborators (store, cart, session, payment flow)
from the caller and hold no global state.
"""

from .profile_service import ProfileDataAggregator, ProfileMaintenance, OrderLookup, first_match
from .checkout_service import CheckoutOrchestrator, CheckoutPhase, compute_cart_total

__all__ = [
    "ProfileDataAggregator",
    "ProfileMaintenance",
    "OrderLookup",
    "first_match",
    "CheckoutOrchestrator",
    "CheckoutPhase",
    "compute_cart_total",
]

"""
Cart and checkout routes (JSON API).

Handles:
- /checkout/start                - Bind the session to a user, load discount
- /cart, /cart/items[/<id>]      - Cart contents and edits
- /checkout                      - Checkout summary (totals, phase, guard)
- /checkout/freight              - Select a freight quote
- /checkout/payment              - Open the payment flow
- /checkout/payment/success      - Payment flow reported success
- /checkout/payment/cancel       - Payment flow closed without paying
- /checkout/restart              - Start checkout over

All state lives in the Flask session. Each request rebuilds the cart and
the CheckoutOrchestrator from the session, applies one action, and writes
them back.

PAYMENT HAND-OFF:
    The payment UI runs in the browser. Opening payment stores the
    PaymentRequest in the session and returns it; the browser reports the
    outcome to /checkout/payment/success or /checkout/payment/cancel.
"""

from datetime import datetime, timezone

from flask import Blueprint, current_app, request, session

from core.exceptions import (
    CheckoutStateError,
    InvalidCartItemError,
    MissingUserIdError,
    PartsCheckoutError,
    StoreQueryError,
)
from models.cart import Cart, CartItem
from models.checkout import FreightQuote, PaymentRequest
from services.checkout_service import CheckoutOrchestrator
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

checkout_bp = Blueprint("checkout", __name__)


# =============================================================================
# SESSION-BACKED COLLABORATORS
# =============================================================================

class SessionProfile:
    """Profile collaborator backed by the profile cached at /checkout/start."""

    def __init__(self, profile):
        self.profile = profile


class SessionPaymentFlow:
    """
    Payment collaborator for the browser payment UI.

    Records the hand-off in the session; the outcome arrives later as a
    separate request, so the callbacks are not kept.
    """

    def begin(self, payment_request: PaymentRequest, on_success, on_close) -> None:
        session["payment_request"] = payment_request.to_dict()


def _record_completion() -> None:
    """Completion signal: remember the finished checkout for the confirmation page."""
    handoff = session.pop("payment_request", None) or {}
    session["last_checkout"] = {
        "completed_at": datetime.now(timezone.utc).isoformat(),
        "cartTotal": handoff.get("cartTotal"),
        "items": handoff.get("cartItems", []),
    }
    logger.info(f"Checkout completed for user {session.get('user_id')}")


def _load():
    """Rebuild cart and orchestrator from the session."""
    cart = Cart.from_dict(session.get("cart"))
    checkout = CheckoutOrchestrator.from_state(
        session.get("checkout"),
        cart,
        SessionProfile(session.get("profile")),
        SessionPaymentFlow(),
        on_complete=_record_completion,
    )
    return cart, checkout


def _save(cart: Cart, checkout: CheckoutOrchestrator) -> None:
    session["cart"] = cart.to_dict()
    session["checkout"] = checkout.to_state()
    session.modified = True


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


@checkout_bp.errorhandler(PartsCheckoutError)
def handle_checkout_error(e: PartsCheckoutError):
    if e.status_code >= 500:
        logger.error(f"Checkout error: {e}", exc_info=True)
    else:
        logger.info(f"Checkout request rejected: {e.message}")
    return {"error": e.message}, e.status_code


# =============================================================================
# SESSION
# =============================================================================

@checkout_bp.route("/checkout/start", methods=["POST"])
def start():
    """
    Bind the checkout session to ``userId`` and load their profile.

    Switching to a different user empties the cart. If the profile cannot
    be loaded the user checks out without a discount.
    """
    user_id = _json_body().get("userId")
    if not user_id:
        raise MissingUserIdError()

    if session.get("user_id") not in (None, user_id):
        session.pop("cart", None)
        session.pop("checkout", None)
        session.pop("payment_request", None)

    maintenance = current_app.config["PROFILE_MAINTENANCE"]
    try:
        profile = maintenance.load_profile(user_id)
    except StoreQueryError as e:
        logger.warning(f"Profile unavailable for {user_id}, continuing without discount: {e.message}")
        profile = {"id": user_id, "discount_percentage": 0}

    session["user_id"] = user_id
    session["profile"] = profile

    cart, checkout = _load()
    if checkout.payment_flow_visible:
        checkout.restart()
    _save(cart, checkout)

    logger.info(f"Checkout session started for {user_id}")
    return checkout.summary(), 200


# =============================================================================
# CART
# =============================================================================

def _ensure_cart_editable(checkout: CheckoutOrchestrator) -> None:
    if checkout.payment_flow_visible:
        raise CheckoutStateError("Cart cannot be changed while payment is in progress")


@checkout_bp.route("/cart", methods=["GET"])
def get_cart():
    cart, _ = _load()
    return cart.to_dict(), 200


@checkout_bp.route("/cart/items", methods=["POST"])
def add_item():
    """Add a priced part to the cart (merges with an existing line)."""
    cart, checkout = _load()
    _ensure_cart_editable(checkout)

    item = cart.add(CartItem.from_dict(_json_body()))
    _save(cart, checkout)

    logger.info(f"Cart: added {item.part_number}, now qty {item.quantity}")
    return cart.to_dict(), 200


@checkout_bp.route("/cart/items/<item_id>", methods=["PATCH"])
def update_item(item_id: str):
    """Change a line's quantity; zero or less removes the line."""
    cart, checkout = _load()
    _ensure_cart_editable(checkout)

    try:
        quantity = int(_json_body().get("quantity"))
    except (TypeError, ValueError):
        raise InvalidCartItemError("quantity must be a number")

    cart.update_quantity(item_id, quantity)
    _save(cart, checkout)
    return cart.to_dict(), 200


@checkout_bp.route("/cart/items/<item_id>", methods=["DELETE"])
def remove_item(item_id: str):
    cart, checkout = _load()
    _ensure_cart_editable(checkout)

    cart.remove(item_id)
    _save(cart, checkout)
    return cart.to_dict(), 200


# =============================================================================
# CHECKOUT
# =============================================================================

@checkout_bp.route("/checkout", methods=["GET"])
def summary():
    """Checkout page data: items, totals, phase and whether payment can open."""
    _, checkout = _load()
    return checkout.summary(), 200


@checkout_bp.route("/checkout/freight", methods=["POST"])
def select_freight():
    """Select the freight quote posted by the rate calculator."""
    cart, checkout = _load()
    checkout.select_freight(FreightQuote.from_dict(_json_body()))
    _save(cart, checkout)
    return checkout.summary(), 200


@checkout_bp.route("/checkout/payment", methods=["POST"])
def proceed_to_payment():
    """
    Open the payment flow.

    409 with the corrective message when the cart is empty or no shipping
    option is selected.
    """
    cart, checkout = _load()
    payment_request = checkout.proceed_to_payment()

    if payment_request is None:
        message = checkout.blocking_message or "Payment already in progress"
        return {"error": message, "checkout": checkout.summary()}, 409

    _save(cart, checkout)
    return {"payment": payment_request.to_dict(), "checkout": checkout.summary()}, 200


@checkout_bp.route("/checkout/payment/success", methods=["POST"])
def payment_success():
    """Payment flow succeeded: the cart is cleared and checkout completes."""
    cart, checkout = _load()
    checkout.handle_payment_success()
    _save(cart, checkout)
    return {"checkout": checkout.summary(), "completed": session.get("last_checkout")}, 200


@checkout_bp.route("/checkout/payment/cancel", methods=["POST"])
def payment_cancel():
    """Payment flow closed: back to review with cart and shipping intact."""
    cart, checkout = _load()
    checkout.handle_payment_close()
    session.pop("payment_request", None)
    _save(cart, checkout)
    return checkout.summary(), 200


@checkout_bp.route("/checkout/restart", methods=["POST"])
def restart():
    cart, checkout = _load()
    checkout.restart()
    session.pop("payment_request", None)
    _save(cart, checkout)
    return checkout.summary(), 200

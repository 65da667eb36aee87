"""
Checkout orchestration.

Drives one customer's checkout: pick a freight quote, review the cart and
total, then hand off to the payment flow. The orchestrator owns only its
own transient state - the selected quote and whether the payment flow is
open. Cart, profile and payment are collaborators passed in, so the same
class runs behind the HTTP API and in tests with fakes.

Phases (linear, restart is the only way back):
    SHIPPING_SELECTION -> REVIEW -> PAYMENT
                                    ├── success: cart cleared, completion signalled
                                    └── close:   back to REVIEW, nothing lost

The review is shown alongside shipping selection; choosing a quote is what
moves the checkout from SHIPPING_SELECTION to REVIEW.

Totals:
    cart_total = cart.subtotal + selected quote's customer_rate (0 if none)

    Always computed from the current cart and selection, never stored.

Usage:
    checkout = CheckoutOrchestrator(cart, session, payment_flow, on_complete=notify)
    checkout.select_freight(quote)
    request = checkout.proceed_to_payment()   # None if the guard blocks
    ...
    checkout.handle_payment_success()          # called by the payment flow
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol

from core.exceptions import CheckoutStateError
from models.checkout import FreightQuote, PaymentRequest
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

SELECT_SHIPPING_MESSAGE = "Please select a shipping option first"
EMPTY_CART_MESSAGE = "Your cart is empty."


# =============================================================================
# COLLABORATORS
# =============================================================================

class CartProvider(Protocol):
    """The cart the checkout reads and, after payment, clears."""

    @property
    def items(self) -> List[Any]: ...

    @property
    def subtotal(self) -> float: ...

    def clear(self) -> None: ...


class ProfileProvider(Protocol):
    """Signed-in user's session; ``profile`` may be None for guests."""

    @property
    def profile(self) -> Optional[Dict[str, Any]]: ...


class PaymentCollaborator(Protocol):
    """
    External payment flow.

    Must call exactly one of ``on_success`` or ``on_close`` once the
    customer finishes or abandons payment.
    """

    def begin(
        self,
        request: PaymentRequest,
        on_success: Callable[[], None],
        on_close: Callable[[], None],
    ) -> None: ...


# =============================================================================
# STATE
# =============================================================================

class CheckoutPhase(Enum):
    """Where the customer is in checkout."""

    SHIPPING_SELECTION = "shipping_selection"
    """No freight quote chosen yet."""

    REVIEW = "review"
    """Quote chosen; cart and total on display, payment not opened."""

    PAYMENT = "payment"
    """Payment flow open."""


def compute_cart_total(cart: CartProvider, selected_freight: Optional[FreightQuote]) -> float:
    """Order total: cart subtotal plus the selected quote's customer rate."""
    freight_cost = selected_freight.customer_rate if selected_freight else 0.0
    return round(cart.subtotal + freight_cost, 2)


def _item_dict(item: Any) -> Dict[str, Any]:
    return item.to_dict() if hasattr(item, "to_dict") else dict(item)


class CheckoutOrchestrator:
    """
    State holder for one checkout session.

    Attributes:
        cart: Cart collaborator
        session: Profile collaborator (provides the discount percentage)
        payment: Payment collaborator
    """

    def __init__(
        self,
        cart: CartProvider,
        session: ProfileProvider,
        payment: PaymentCollaborator,
        on_complete: Optional[Callable[[], None]] = None,
        selected_freight: Optional[FreightQuote] = None,
        payment_flow_visible: bool = False,
    ):
        self.cart = cart
        self.session = session
        self.payment = payment
        self._on_complete = on_complete
        self._selected_freight = selected_freight
        self._payment_flow_visible = payment_flow_visible

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    @property
    def selected_freight(self) -> Optional[FreightQuote]:
        return self._selected_freight

    @property
    def payment_flow_visible(self) -> bool:
        return self._payment_flow_visible

    @property
    def freight_cost(self) -> float:
        return self._selected_freight.customer_rate if self._selected_freight else 0.0

    @property
    def cart_total(self) -> float:
        return compute_cart_total(self.cart, self._selected_freight)

    @property
    def user_discount(self) -> float:
        profile = self.session.profile or {}
        return profile.get("discount_percentage") or 0

    @property
    def can_proceed(self) -> bool:
        """True when the "proceed to payment" action is enabled."""
        return (
            not self._payment_flow_visible
            and len(self.cart.items) > 0
            and self._selected_freight is not None
        )

    @property
    def blocking_message(self) -> Optional[str]:
        """Corrective message shown next to a disabled proceed action."""
        if self._payment_flow_visible:
            return None
        if not self.cart.items:
            return EMPTY_CART_MESSAGE
        if self._selected_freight is None:
            return SELECT_SHIPPING_MESSAGE
        return None

    @property
    def phase(self) -> CheckoutPhase:
        if self._payment_flow_visible:
            return CheckoutPhase.PAYMENT
        if self._selected_freight is None:
            return CheckoutPhase.SHIPPING_SELECTION
        return CheckoutPhase.REVIEW

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def select_freight(self, quote: FreightQuote) -> None:
        """
        Record the customer's shipping choice, replacing any previous one.

        Raises:
            CheckoutStateError: Payment flow is open
        """
        if self._payment_flow_visible:
            raise CheckoutStateError("Shipping cannot be changed while payment is in progress")

        self._selected_freight = quote
        logger.info(
            f"Freight selected: {quote.service_name} ({quote.service_code}) "
            f"at {quote.customer_rate:.2f}"
        )

    def proceed_to_payment(self) -> Optional[PaymentRequest]:
        """
        Open the payment flow.

        The guard is checked here, not just when rendering the button: with
        an empty cart or no shipping choice nothing happens and None is
        returned.

        Returns:
            The PaymentRequest handed to the payment flow, or None if blocked
        """
        if not self.can_proceed:
            logger.info(f"Proceed to payment blocked: {self.blocking_message or 'payment already open'}")
            return None

        request = PaymentRequest(
            cart_items=[_item_dict(item) for item in self.cart.items],
            cart_total=self.cart_total,
            user_discount=self.user_discount,
            user_profile=dict(self.session.profile or {}),
        )

        self._payment_flow_visible = True
        try:
            self.payment.begin(request, self.handle_payment_success, self.handle_payment_close)
        except Exception:
            self._payment_flow_visible = False
            raise

        logger.info(
            f"Payment flow opened: {len(request.cart_items)} items, total {request.cart_total:.2f}"
        )
        return request

    def handle_payment_success(self) -> None:
        """
        Payment flow reported success: clear the cart and signal completion.

        Raises:
            CheckoutStateError: No payment flow is open
        """
        if not self._payment_flow_visible:
            raise CheckoutStateError("No payment in progress")

        total = self.cart_total
        self.cart.clear()
        self._payment_flow_visible = False
        logger.info(f"Payment succeeded for total {total:.2f}; cart cleared")

        if self._on_complete:
            self._on_complete()

    def handle_payment_close(self) -> None:
        """
        Payment flow was closed without paying. Cart and shipping stay as they were.

        Raises:
            CheckoutStateError: No payment flow is open
        """
        if not self._payment_flow_visible:
            raise CheckoutStateError("No payment in progress")

        self._payment_flow_visible = False
        logger.info("Payment flow closed without payment")

    def restart(self) -> None:
        """Start checkout over: drop the shipping choice and close payment."""
        self._selected_freight = None
        self._payment_flow_visible = False
        logger.info("Checkout restarted")

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_state(self) -> Dict[str, Any]:
        """Own state only, for session storage. Totals are not stored."""
        return {
            "selected_freight": self._selected_freight.to_dict() if self._selected_freight else None,
            "payment_flow_visible": self._payment_flow_visible,
        }

    @classmethod
    def from_state(
        cls,
        state: Optional[Dict[str, Any]],
        cart: CartProvider,
        session: ProfileProvider,
        payment: PaymentCollaborator,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> "CheckoutOrchestrator":
        """Rebuild an orchestrator from ``to_state()`` output."""
        state = state or {}
        freight = state.get("selected_freight")
        return cls(
            cart,
            session,
            payment,
            on_complete=on_complete,
            selected_freight=FreightQuote.from_dict(freight) if freight else None,
            payment_flow_visible=bool(state.get("payment_flow_visible", False)),
        )

    def summary(self) -> Dict[str, Any]:
        """What the checkout page renders."""
        return {
            "items": [_item_dict(item) for item in self.cart.items],
            "subtotal": round(self.cart.subtotal, 2),
            "freightCost": self.freight_cost,
            "cartTotal": self.cart_total,
            "selectedFreight": self._selected_freight.to_dict() if self._selected_freight else None,
            "paymentFlowVisible": self._payment_flow_visible,
            "phase": self.phase.value,
            "canProceed": self.can_proceed,
            "message": self.blocking_message,
        }

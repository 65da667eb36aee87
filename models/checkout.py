"""
Checkout data models.

FreightQuote is produced by the external freight-rate service and picked
by the user; PaymentRequest is what the checkout hands to the external
payment flow. Neither is persisted outside the session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.exceptions import InvalidFreightQuoteError


@dataclass(frozen=True)
class FreightQuote:
    """
    A priced shipping option.

    ``total_charges`` is the carrier's charge; ``customer_rate`` is what
    the customer pays and what goes into the order total.
    """

    service_code: str
    service_name: str
    total_charges: float
    customer_rate: float
    transit_days: Optional[str] = None
    delivery_date: Optional[str] = None

    REQUIRED = ("service_code", "service_name", "total_charges", "customer_rate")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "service_code": self.service_code,
            "service_name": self.service_name,
            "total_charges": self.total_charges,
            "customer_rate": self.customer_rate,
        }
        if self.transit_days is not None:
            data["transit_days"] = self.transit_days
        if self.delivery_date is not None:
            data["delivery_date"] = self.delivery_date
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FreightQuote":
        """
        Build a quote from a rate-service or session payload.

        Raises:
            InvalidFreightQuoteError: Missing fields or non-numeric rates
        """
        if not isinstance(data, dict):
            raise InvalidFreightQuoteError("quote must be an object")

        missing = [name for name in cls.REQUIRED if data.get(name) in (None, "")]
        if missing:
            raise InvalidFreightQuoteError(f"missing {', '.join(missing)}")

        try:
            total_charges = float(data["total_charges"])
            customer_rate = float(data["customer_rate"])
        except (TypeError, ValueError):
            raise InvalidFreightQuoteError("rates must be numbers")

        if customer_rate < 0:
            raise InvalidFreightQuoteError("customer_rate cannot be negative")

        transit_days = data.get("transit_days")
        return cls(
            service_code=str(data["service_code"]),
            service_name=str(data["service_name"]),
            total_charges=total_charges,
            customer_rate=customer_rate,
            transit_days=str(transit_days) if transit_days is not None else None,
            delivery_date=data.get("delivery_date"),
        )


@dataclass
class PaymentRequest:
    """Hand-off to the payment flow when the customer proceeds to pay."""

    cart_items: List[Dict[str, Any]]
    cart_total: float
    user_discount: float = 0.0
    user_profile: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cartItems": list(self.cart_items),
            "cartTotal": self.cart_total,
            "userDiscount": self.user_discount,
            "userProfile": dict(self.user_profile),
        }

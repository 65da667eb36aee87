"""
Profile data models.

Records returned by the profile-data function: saved addresses, stored
payment methods and recent orders. Rows come straight from the backend
store; these classes only normalize values so they serialize to JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional


def to_json_value(value: Any) -> Any:
    """Convert database values (datetimes, Decimals) to JSON-friendly ones."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


@dataclass
class Address:
    """
    A saved address.

    Addresses are opaque: whatever columns the store has are passed
    through unchanged.
    """

    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def user_id(self) -> Optional[str]:
        return self.fields.get("user_id")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Address":
        return cls(fields=dict(row))

    def to_dict(self) -> Dict[str, Any]:
        return {key: to_json_value(value) for key, value in self.fields.items()}


@dataclass
class PaymentMethod:
    """A stored card. Only display-safe fields are ever loaded."""

    id: Any
    brand: Optional[str] = None
    last4: Optional[str] = None
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None
    is_default: bool = False

    COLUMNS = ("id", "brand", "last4", "exp_month", "exp_year", "is_default")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PaymentMethod":
        return cls(
            id=row.get("id"),
            brand=row.get("brand"),
            last4=row.get("last4"),
            exp_month=row.get("exp_month"),
            exp_year=row.get("exp_year"),
            is_default=bool(row.get("is_default", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": to_json_value(self.id),
            "brand": self.brand,
            "last4": self.last4,
            "exp_month": self.exp_month,
            "exp_year": self.exp_year,
            "is_default": self.is_default,
        }


@dataclass
class OrderSummary:
    """
    One row of a user's order history.

    The purchase-order table stores the order number as ``po_number``;
    it is exposed as ``order_number``.
    """

    id: Any
    order_number: Optional[str] = None
    created_at: Any = None
    total_amount: Optional[float] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None

    COLUMNS = ("id", "po_number", "created_at", "total_amount", "status", "payment_status")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OrderSummary":
        return cls(
            id=row.get("id"),
            order_number=row.get("po_number", row.get("order_number")),
            created_at=row.get("created_at"),
            total_amount=to_json_value(row.get("total_amount")),
            status=row.get("status"),
            payment_status=row.get("payment_status"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": to_json_value(self.id),
            "order_number": self.order_number,
            "created_at": to_json_value(self.created_at),
            "total_amount": self.total_amount,
            "status": self.status,
            "payment_status": self.payment_status,
        }


@dataclass
class ProfileData:
    """Everything the account page shows, as returned by the aggregator."""

    addresses: List[Address] = field(default_factory=list)
    payment_methods: List[PaymentMethod] = field(default_factory=list)
    orders: List[OrderSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Response body for the profile-data function."""
        return {
            "addresses": [a.to_dict() for a in self.addresses],
            "paymentMethods": [p.to_dict() for p in self.payment_methods],
            "orders": [o.to_dict() for o in self.orders],
        }

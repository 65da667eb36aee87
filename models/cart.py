"""
Cart data models.

The cart lives in the user's session between requests. Prices are set by
the external pricing service when an item is added; the cart only keeps
quantities and line totals consistent.

Session Storage:
    cart = Cart.from_dict(session.get("cart", {}))
    cart.add(CartItem(id="p-1", part_number="AB-12", quantity=2, unit_price=9.5))
    session["cart"] = cart.to_dict()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.exceptions import CartItemNotFoundError, InvalidCartItemError


@dataclass
class CartItem:
    """
    One line in the cart.

    ``line_total`` is derived from quantity and unit price, so it can never
    drift from the quantity.
    """

    id: str
    """Part id."""

    part_number: str
    """Manufacturer part number shown to the user."""

    quantity: int
    """Units ordered (always positive while in a cart)."""

    unit_price: float
    """Price per unit after the customer's discount."""

    manufacturer: Optional[str] = None
    """Manufacturer name."""

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.unit_price, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "manufacturer": self.manufacturer,
            "part_number": self.part_number,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartItem":
        """
        Build a cart item from a request or session payload.

        Raises:
            InvalidCartItemError: Missing id/part number, non-positive
                quantity or a price that is not a non-negative number
        """
        item_id = data.get("id")
        part_number = data.get("part_number")
        if not item_id:
            raise InvalidCartItemError("id is required")
        if not part_number:
            raise InvalidCartItemError("part_number is required")

        try:
            quantity = int(data.get("quantity", 1))
            unit_price = float(data.get("unit_price"))
        except (TypeError, ValueError):
            raise InvalidCartItemError("quantity and unit_price must be numbers")

        if quantity <= 0:
            raise InvalidCartItemError("quantity must be positive")
        if unit_price < 0:
            raise InvalidCartItemError("unit_price cannot be negative")

        return cls(
            id=str(item_id),
            part_number=str(part_number),
            quantity=quantity,
            unit_price=unit_price,
            manufacturer=data.get("manufacturer"),
        )


@dataclass
class Cart:
    """
    The shopping cart.

    Items are keyed by part id; adding a part that is already in the cart
    increases its quantity instead of adding a second line.
    """

    items: List[CartItem] = field(default_factory=list)

    @property
    def subtotal(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    @property
    def count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def _find(self, item_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def add(self, item: CartItem) -> CartItem:
        """
        Add a line, merging with an existing line for the same part.

        The existing line keeps its unit price.

        Returns:
            The cart line that now holds the part
        """
        existing = self._find(item.id)
        if existing:
            existing.quantity += item.quantity
            return existing
        self.items.append(item)
        return item

    def update_quantity(self, item_id: str, quantity: int) -> Optional[CartItem]:
        """
        Set the quantity of a line. Zero or less removes it.

        Returns:
            The updated line, or None if it was removed

        Raises:
            CartItemNotFoundError: No line for ``item_id``
        """
        item = self._find(item_id)
        if item is None:
            raise CartItemNotFoundError(item_id)

        if quantity <= 0:
            self.items.remove(item)
            return None

        item.quantity = quantity
        return item

    def remove(self, item_id: str) -> None:
        """Remove a line. Removing a part that is not in the cart is a no-op."""
        self.items = [item for item in self.items if item.id != item_id]

    def clear(self) -> None:
        self.items.clear()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for session storage and responses."""
        return {
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "count": self.count,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Cart":
        """Create from dictionary (e.g., from session)."""
        data = data or {}
        return cls(items=[CartItem.from_dict(item) for item in data.get("items", [])])

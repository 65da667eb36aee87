"""
Profile data service.

Collects what the account page shows for one user - saved addresses,
stored payment methods and recent orders - and handles the two profile
write operations (save address, update profile).

ISOLATED LOOKUPS:
    The three reads are independent. A query error in one of them is logged
    and that collection comes back empty; the others still load. Only errors
    outside the store contract (bugs, unexpected exceptions) escape.

ORDER OWNERSHIP PROBING:
    Orders have been linked to users through different columns as the
    schema evolved (user_id, then profile_id, then customer_id). We don't
    know which one a given user's orders use, so each candidate column is
    tried in priority order and the first one that returns rows wins.
    Results are never merged across columns.

Usage:
    aggregator = ProfileDataAggregator(store, owner_columns=("user_id", "profile_id"))
    data = aggregator.aggregate(user_id)
    body = data.to_dict()  # {"addresses": [...], "paymentMethods": [...], "orders": [...]}
"""

from __future__ import annotations

import html
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import bleach

from core.exceptions import MissingFieldsError, MissingUserIdError, StoreQueryError
from core.store import ProfileStore
from models.profile import Address, OrderSummary, PaymentMethod, ProfileData, to_json_value
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

DEFAULT_OWNER_COLUMNS = ("user_id", "profile_id", "customer_id")
DEFAULT_ORDER_LIMIT = 10

ADDRESSES_TABLE = "addresses"
PAYMENT_METHODS_TABLE = "payment_methods"
PROFILES_TABLE = "profiles"

PROFILE_TEXT_FIELDS = ("full_name", "phone", "company_name", "avatar_url")


# =============================================================================
# FIRST-MATCH EVALUATION
# =============================================================================

def first_match(lookups: Iterable[Callable[[], List[Any]]]) -> List[Any]:
    """
    Run lookups in order and return the first non-empty result.

    Lookups are evaluated lazily: once one returns rows, the rest are never
    called. A lookup that raises StoreQueryError counts as empty.

    Args:
        lookups: Zero-argument callables returning a list

    Returns:
        Rows of the first successful lookup, or [] if none matched
    """
    for lookup in lookups:
        try:
            rows = lookup()
        except StoreQueryError as e:
            logger.debug(f"Lookup {lookup!r} failed, trying next: {e.message}")
            continue
        if rows:
            return rows
    return []


class OrderLookup:
    """
    Order-history query against one candidate ownership column.

    Callable so it can be handed to first_match().
    """

    def __init__(
        self,
        store: ProfileStore,
        table: str,
        owner_column: str,
        user_id: str,
        limit: int = DEFAULT_ORDER_LIMIT,
    ):
        self.store = store
        self.table = table
        self.owner_column = owner_column
        self.user_id = user_id
        self.limit = limit

    def __call__(self) -> List[Dict[str, Any]]:
        rows = self.store.select(
            self.table,
            columns=OrderSummary.COLUMNS,
            filters={self.owner_column: self.user_id},
            order_by="created_at",
            descending=True,
            limit=self.limit,
        )
        if rows:
            logger.info(f"Orders matched on {self.table}.{self.owner_column} ({len(rows)} rows)")
        return rows

    def __repr__(self) -> str:
        return f"OrderLookup({self.table}.{self.owner_column})"


# =============================================================================
# AGGREGATOR
# =============================================================================

class ProfileDataAggregator:
    """
    Read-only aggregation of a user's profile data.

    Stateless apart from its configuration; build one per request or share
    one across requests.

    Attributes:
        store: Backend store
        orders_table: Purchase-order table name
        owner_columns: Candidate order-ownership columns, highest priority first
        order_limit: Maximum orders returned
    """

    def __init__(
        self,
        store: ProfileStore,
        orders_table: str = "purchase_orders",
        owner_columns: Sequence[str] = DEFAULT_OWNER_COLUMNS,
        order_limit: int = DEFAULT_ORDER_LIMIT,
    ):
        self.store = store
        self.orders_table = orders_table
        self.owner_columns = tuple(owner_columns)
        self.order_limit = order_limit

    def aggregate(self, user_id: Optional[str]) -> ProfileData:
        """
        Load addresses, payment methods and orders for one user.

        Args:
            user_id: The user's id

        Returns:
            ProfileData; any collection may be empty, none is ever None

        Raises:
            MissingUserIdError: ``user_id`` is empty (no query is made)
        """
        if not user_id:
            raise MissingUserIdError()

        logger.info(f"Aggregating profile data for user {user_id}")

        data = ProfileData(
            addresses=self.fetch_addresses(user_id),
            payment_methods=self.fetch_payment_methods(user_id),
            orders=self.fetch_orders(user_id),
        )

        logger.info(
            f"Profile data for {user_id}: {len(data.addresses)} addresses, "
            f"{len(data.payment_methods)} payment methods, {len(data.orders)} orders"
        )
        return data

    def fetch_addresses(self, user_id: str) -> List[Address]:
        try:
            rows = self.store.select(ADDRESSES_TABLE, filters={"user_id": user_id})
        except StoreQueryError as e:
            logger.warning(f"Address lookup failed for {user_id}: {e.message}")
            return []
        return [Address.from_row(row) for row in rows]

    def fetch_payment_methods(self, user_id: str) -> List[PaymentMethod]:
        """Stored payment methods, most recently added first."""
        try:
            rows = self.store.select(
                PAYMENT_METHODS_TABLE,
                columns=PaymentMethod.COLUMNS,
                filters={"user_id": user_id},
                order_by="created_at",
                descending=True,
            )
        except StoreQueryError as e:
            logger.warning(f"Payment method lookup failed for {user_id}: {e.message}")
            return []
        return [PaymentMethod.from_row(row) for row in rows]

    def order_lookups(self, user_id: str) -> List[OrderLookup]:
        """One lookup per candidate ownership column, in priority order."""
        return [
            OrderLookup(self.store, self.orders_table, column, user_id, self.order_limit)
            for column in self.owner_columns
        ]

    def fetch_orders(self, user_id: str) -> List[OrderSummary]:
        """
        Most recent orders, probing the candidate ownership columns.

        No matching column is not an error - the user simply has no
        visible orders.
        """
        rows = first_match(self.order_lookups(user_id))
        if not rows:
            logger.info(f"No orders found for {user_id} on any of {list(self.owner_columns)}")
        return [OrderSummary.from_row(row) for row in rows]


# =============================================================================
# PROFILE MAINTENANCE
# =============================================================================

def _clean_text(value: Any) -> Any:
    """
    Strip markup tags from a user-entered string; other values pass through.

    bleach escapes what it keeps, so the result is unescaped again: values
    are stored as plain text, not HTML ("Smith & Sons" stays as typed).
    """
    if isinstance(value, str):
        return html.unescape(bleach.clean(value, tags=[], strip=True)).strip()
    return value


class ProfileMaintenance:
    """
    Write operations behind the account page.

    Unlike the aggregator, store errors here are fatal for the request:
    a half-saved address must be reported, not hidden.
    """

    def __init__(self, store: ProfileStore):
        self.store = store

    def save_address(
        self,
        user_id: Optional[str],
        address: Optional[Dict[str, Any]],
        address_type: Optional[str],
        address_id: Optional[Any] = None,
    ) -> None:
        """
        Save an address as the user's default for its type.

        Any previous default of the same type is cleared first. With
        ``address_id`` the existing row is updated, otherwise a new row is
        inserted. Address attributes are stored exactly as sent.

        Both writes share one transaction: if the save is rejected, the
        previous default stays in place.

        Raises:
            MissingFieldsError: user id, address or type missing
            StoreQueryError: The store rejected a write
        """
        missing = [
            name for name, value in
            (("userId", user_id), ("address", address), ("type", address_type))
            if not value
        ]
        if missing:
            raise MissingFieldsError(missing)
        if not isinstance(address, dict):
            raise MissingFieldsError(["address"])

        payload = dict(address)
        payload.update({"user_id": user_id, "type": address_type, "is_default": True})
        self.store.check_columns(ADDRESSES_TABLE, payload)

        with self.store.transaction() as conn:
            self.store.update(
                ADDRESSES_TABLE,
                {"is_default": False},
                filters={"user_id": user_id, "type": address_type},
                conn=conn,
            )
            if address_id:
                self.store.update(ADDRESSES_TABLE, payload, filters={"id": address_id}, conn=conn)
            else:
                self.store.insert(ADDRESSES_TABLE, payload, conn=conn)

        if address_id:
            logger.info(f"Updated {address_type} address {address_id} for {user_id}")
        else:
            logger.info(f"Added {address_type} address for {user_id}")

    def update_profile(self, user_id: Optional[str], profile: Optional[Dict[str, Any]]) -> None:
        """
        Create or update the user's profile row.

        Optional fields left blank are stored as NULL.

        Raises:
            MissingFieldsError: user id or profile missing
            StoreQueryError: The store rejected the write
        """
        missing = [name for name, value in (("userId", user_id), ("profile", profile)) if not value]
        if missing:
            raise MissingFieldsError(missing)
        if not isinstance(profile, dict):
            raise MissingFieldsError(["profile"])

        values = {"id": user_id, "full_name": _clean_text(profile.get("full_name"))}
        for name in PROFILE_TEXT_FIELDS[1:]:
            values[name] = _clean_text(profile.get(name)) or None
        values["updated_at"] = datetime.now(timezone.utc)

        self.store.upsert(PROFILES_TABLE, values, key="id")
        logger.info(f"Profile updated for {user_id}")

    def load_profile(self, user_id: str) -> Dict[str, Any]:
        """
        Fetch the profile row used at checkout (discount, name, company).

        A user without a profile row gets a minimal profile with no
        discount. Store errors propagate.
        """
        rows = self.store.select(PROFILES_TABLE, filters={"id": user_id}, limit=1)
        if not rows:
            return {"id": user_id, "discount_percentage": 0}
        # Profiles go into the session cookie, which only holds JSON types.
        return {key: to_json_value(value) for key, value in rows[0].items()}

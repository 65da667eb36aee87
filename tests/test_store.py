"""
Unit tests for the SQLAlchemy backend store.
"""

import pytest

from core.exceptions import StoreQueryError


class TestSelect:
    """Reads through reflected tables."""

    def test_select_all_columns(self, populated_store):
        rows = populated_store.select("addresses", filters={"user_id": "user-1"})

        assert len(rows) == 1
        assert rows[0]["line1"] == "1 Dock Rd"
        assert rows[0]["is_default"] is True

    def test_select_columns_ordered_and_limited(self, populated_store):
        rows = populated_store.select(
            "purchase_orders",
            columns=["id", "po_number"],
            filters={"profile_id": "user-1"},
            order_by="created_at",
            descending=True,
            limit=3,
        )

        assert [row["id"] for row in rows] == ["o-12", "o-11", "o-10"]
        assert set(rows[0]) == {"id", "po_number"}

    def test_no_match_is_empty_list(self, populated_store):
        assert populated_store.select("addresses", filters={"user_id": "nobody"}) == []

    def test_unknown_column_raises(self, populated_store):
        with pytest.raises(StoreQueryError) as exc_info:
            populated_store.select("purchase_orders", filters={"user_id": "user-1"})

        assert exc_info.value.column == "user_id"
        assert exc_info.value.table == "purchase_orders"

    def test_unknown_table_raises(self, store):
        with pytest.raises(StoreQueryError) as exc_info:
            store.select("invoices")

        assert "invoices" in exc_info.value.message

    def test_has_column(self, store):
        assert store.has_column("purchase_orders", "profile_id") is True
        assert store.has_column("purchase_orders", "user_id") is False
        assert store.has_column("invoices", "id") is False


class TestWrites:
    """Insert, update and upsert."""

    def test_insert_then_update(self, store):
        store.insert("addresses", {"user_id": "u", "type": "billing", "line1": "A"})
        updated = store.update("addresses", {"line1": "B"}, filters={"user_id": "u"})

        assert updated == 1
        assert store.select("addresses", filters={"user_id": "u"})[0]["line1"] == "B"

    def test_insert_unknown_column_raises(self, store):
        with pytest.raises(StoreQueryError):
            store.insert("addresses", {"user_id": "u", "planet": "Mars"})

    def test_upsert_inserts_then_updates(self, store):
        store.upsert("profiles", {"id": "u", "full_name": "First"})
        store.upsert("profiles", {"id": "u", "full_name": "Second"})

        rows = store.select("profiles", filters={"id": "u"})
        assert len(rows) == 1
        assert rows[0]["full_name"] == "Second"

    def test_upsert_requires_key(self, store):
        with pytest.raises(StoreQueryError):
            store.upsert("profiles", {"full_name": "No Id"})

    def test_check_columns(self, store):
        store.check_columns("addresses", ["user_id", "line1"])

        with pytest.raises(StoreQueryError) as exc_info:
            store.check_columns("addresses", ["user_id", "planet"])
        assert exc_info.value.column == "planet"


class TestTransaction:
    """Several writes committed or rolled back together."""

    def test_writes_commit_together(self, store):
        with store.transaction() as conn:
            store.insert("addresses", {"user_id": "u", "type": "billing", "line1": "A"}, conn=conn)
            store.update("addresses", {"line1": "B"}, filters={"user_id": "u"}, conn=conn)

        assert [row["line1"] for row in store.select("addresses", filters={"user_id": "u"})] == ["B"]

    def test_failed_write_rolls_back_earlier_ones(self, populated_store):
        with pytest.raises(StoreQueryError):
            with populated_store.transaction() as conn:
                populated_store.update(
                    "addresses", {"is_default": False}, filters={"user_id": "user-1"}, conn=conn
                )
                # Duplicate primary key
                populated_store.insert(
                    "payment_methods", {"id": "pm-old", "user_id": "user-1"}, conn=conn
                )

        rows = populated_store.select("addresses", filters={"user_id": "user-1"})
        assert [row["is_default"] for row in rows] == [True]


class TestLifecycle:

    def test_ping(self, store):
        assert store.ping() is True

    def test_refresh_schema_sees_new_column(self, store):
        assert store.has_column("purchase_orders", "user_id") is False

        with store.engine.begin() as conn:
            conn.exec_driver_sql("ALTER TABLE purchase_orders ADD COLUMN user_id TEXT")

        # Cached reflection still has the old shape until refreshed
        assert store.has_column("purchase_orders", "user_id") is False
        store.refresh_schema()
        assert store.has_column("purchase_orders", "user_id") is True

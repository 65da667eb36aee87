"""
Shared fixtures: a throwaway SQLite commerce database and a Flask app bound to it.

The purchase_orders table deliberately has no user_id column - orders are
owned through profile_id/customer_id, as in databases that went through
the ownership-column migrations.
"""

import pytest
from sqlalchemy import text

from app import create_app
from core.store import ProfileStore


SCHEMA = [
    """
    CREATE TABLE addresses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        type TEXT,
        line1 TEXT,
        city TEXT,
        state TEXT,
        zip TEXT,
        is_default BOOLEAN DEFAULT 0
    )
    """,
    """
    CREATE TABLE payment_methods (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        brand TEXT,
        last4 TEXT,
        exp_month INTEGER,
        exp_year INTEGER,
        is_default BOOLEAN DEFAULT 0,
        stripe_payment_method_id TEXT,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE purchase_orders (
        id TEXT PRIMARY KEY,
        po_number TEXT,
        profile_id TEXT,
        customer_id TEXT,
        created_at TEXT,
        total_amount REAL,
        status TEXT,
        payment_status TEXT
    )
    """,
    """
    CREATE TABLE profiles (
        id TEXT PRIMARY KEY,
        full_name TEXT,
        phone TEXT,
        company_name TEXT,
        avatar_url TEXT,
        discount_percentage REAL DEFAULT 0,
        updated_at TIMESTAMP
    )
    """,
]


def seed(store: ProfileStore, statement: str, rows: list) -> None:
    """Insert rows with a parameterized INSERT statement."""
    with store.engine.begin() as conn:
        conn.execute(text(statement), rows)


@pytest.fixture
def store(tmp_path):
    """Backend store on an empty commerce schema."""
    store = ProfileStore.from_url(f"sqlite:///{tmp_path / 'commerce.db'}")
    with store.engine.begin() as conn:
        for statement in SCHEMA:
            conn.execute(text(statement))
    yield store
    store.dispose()


@pytest.fixture
def populated_store(store):
    """Store with one customer ('user-1') who has data in every table."""
    seed(store, """
        INSERT INTO addresses (user_id, type, line1, city, state, zip, is_default)
        VALUES (:user_id, :type, :line1, :city, :state, :zip, :is_default)
    """, [
        {"user_id": "user-1", "type": "shipping", "line1": "1 Dock Rd", "city": "Peoria",
         "state": "IL", "zip": "61602", "is_default": True},
        {"user_id": "user-2", "type": "shipping", "line1": "9 Elm St", "city": "Austin",
         "state": "TX", "zip": "73301", "is_default": True},
    ])
    seed(store, """
        INSERT INTO payment_methods
            (id, user_id, brand, last4, exp_month, exp_year, is_default,
             stripe_payment_method_id, created_at)
        VALUES (:id, :user_id, :brand, :last4, :exp_month, :exp_year, :is_default,
                :stripe_id, :created_at)
    """, [
        {"id": "pm-old", "user_id": "user-1", "brand": "visa", "last4": "4242",
         "exp_month": 1, "exp_year": 2027, "is_default": False, "stripe_id": "pm_x1",
         "created_at": "2025-01-01T00:00:00"},
        {"id": "pm-new", "user_id": "user-1", "brand": "amex", "last4": "0005",
         "exp_month": 6, "exp_year": 2029, "is_default": True, "stripe_id": "pm_x2",
         "created_at": "2026-03-01T00:00:00"},
    ])
    seed(store, """
        INSERT INTO purchase_orders
            (id, po_number, profile_id, customer_id, created_at, total_amount, status, payment_status)
        VALUES (:id, :po_number, :profile_id, :customer_id, :created_at, :total, :status, :payment_status)
    """, [
        {"id": f"o-{n}", "po_number": f"PO-{1000 + n}", "profile_id": "user-1",
         "customer_id": None, "created_at": f"2026-01-{n:02d}T12:00:00", "total": 10.0 * n,
         "status": "shipped", "payment_status": "paid"}
        for n in range(1, 13)
    ])
    seed(store, """
        INSERT INTO profiles (id, full_name, company_name, discount_percentage)
        VALUES (:id, :full_name, :company_name, :discount)
    """, [
        {"id": "user-1", "full_name": "Dana Reyes", "company_name": "Reyes Hydraulics",
         "discount": 12.5},
    ])
    return store


@pytest.fixture
def app(populated_store):
    """Flask app in testing mode bound to the populated store."""
    app = create_app("config.TestingConfig", store=populated_store)
    return app


@pytest.fixture
def client(app):
    return app.test_client()

"""
Backend store adapter.

Thin SQLAlchemy Core wrapper over the commerce database. Tables are
reflected on first use instead of being declared up front, because the
shape of some tables (notably the purchase-order table's owner column)
differs between environments.

ERROR CONTRACT:
    Every failure - unknown table, unknown column, driver error - is raised
    as StoreQueryError. Callers decide whether a failed query is fatal
    (profile updates) or just means "no rows" (profile lookups).

Usage:
    store = ProfileStore.from_url("postgresql+psycopg://...")

    rows = store.select(
        "payment_methods",
        columns=["id", "brand", "last4"],
        filters={"user_id": user_id},
        order_by="created_at",
        descending=True,
    )

    store.insert("addresses", {"user_id": user_id, "line1": "1 Main St"})
    store.update("addresses", {"is_default": False}, filters={"user_id": user_id})
    store.upsert("profiles", {"id": user_id, "full_name": "Ada"})

    with store.transaction() as conn:
        store.update("addresses", {"is_default": False}, filters={"user_id": user_id}, conn=conn)
        store.insert("addresses", {"user_id": user_id, "is_default": True}, conn=conn)

    store.dispose()
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import MetaData, Table, create_engine, insert, select, text, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from logging_config import get_logger
from .exceptions import StoreQueryError


# Module logger
logger = get_logger(__name__)


class ProfileStore:
    """
    Query interface to the commerce database.

    Holds one SQLAlchemy engine (pooled connections) and a cache of
    reflected tables. Each public call opens its own connection, so the
    store can be shared across request threads.

    Attributes:
        engine: Underlying SQLAlchemy engine
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._metadata = MetaData()
        self._tables: Dict[str, Table] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_url(cls, database_url: str) -> "ProfileStore":
        """Create a store with a new engine for ``database_url``."""
        engine = create_engine(database_url, pool_pre_ping=True)
        logger.info(f"Backend store engine created for dialect '{engine.dialect.name}'")
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    # =========================================================================
    # SCHEMA
    # =========================================================================

    def _table(self, name: str) -> Table:
        """Return the reflected table, reflecting it on first use."""
        with self._lock:
            table = self._tables.get(name)
            if table is not None:
                return table
            try:
                table = Table(name, self._metadata, autoload_with=self._engine)
            except SQLAlchemyError as e:
                raise StoreQueryError(name, f"table unavailable ({e.__class__.__name__})") from e
            self._tables[name] = table
            logger.debug(f"Reflected table '{name}' with columns {list(table.c.keys())}")
            return table

    @staticmethod
    def _column(table: Table, name: str):
        if name not in table.c:
            raise StoreQueryError(table.name, f"column '{name}' does not exist", column=name)
        return table.c[name]

    def has_column(self, table: str, column: str) -> bool:
        """True if ``table`` exists and has ``column``."""
        try:
            return column in self._table(table).c
        except StoreQueryError:
            return False

    def refresh_schema(self) -> None:
        """Forget reflected tables so the next query sees schema changes."""
        with self._lock:
            self._tables.clear()
            self._metadata = MetaData()
        logger.info("Reflected schema cache cleared")

    # =========================================================================
    # QUERIES
    # =========================================================================

    def select(
        self,
        table: str,
        columns: Optional[Iterable[str]] = None,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Select rows as plain dicts.

        Args:
            table: Table name
            columns: Columns to return (all columns if omitted)
            filters: Equality filters, column -> value
            order_by: Column to sort by
            descending: Sort direction for ``order_by``
            limit: Maximum number of rows

        Returns:
            List of row dicts (empty if nothing matched)

        Raises:
            StoreQueryError: Unknown table/column or database error
        """
        tbl = self._table(table)

        if columns:
            stmt = select(*[self._column(tbl, name) for name in columns])
        else:
            stmt = select(tbl)

        for name, value in (filters or {}).items():
            stmt = stmt.where(self._column(tbl, name) == value)

        if order_by:
            col = self._column(tbl, order_by)
            stmt = stmt.order_by(col.desc() if descending else col.asc())

        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            raise StoreQueryError(table, str(e)) from e

        return [dict(row) for row in rows]

    def check_columns(self, table: str, names: Iterable[str]) -> None:
        """
        Raise StoreQueryError unless ``table`` has every column in ``names``.

        Lets callers reject a payload before writing anything.
        """
        tbl = self._table(table)
        for name in names:
            self._column(tbl, name)

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """
        Open one transaction for several writes.

        Pass the yielded connection as ``conn`` to ``insert``/``update``.
        Commits on exit; any exception rolls every write back.

        Usage:
            with store.transaction() as conn:
                store.update("addresses", {...}, filters={...}, conn=conn)
                store.insert("addresses", {...}, conn=conn)
        """
        try:
            with self._engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise StoreQueryError("transaction", str(e)) from e

    def _execute(self, table: str, stmt, conn: Optional[Connection] = None):
        """Run a write on ``conn``, or in its own transaction when none is given."""
        try:
            if conn is not None:
                return conn.execute(stmt)
            with self._engine.begin() as own:
                return own.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreQueryError(table, str(e)) from e

    def insert(self, table: str, values: Dict[str, Any], conn: Optional[Connection] = None) -> None:
        """
        Insert one row.

        Raises:
            StoreQueryError: Unknown table/column or database error
        """
        tbl = self._table(table)
        self.check_columns(table, values)

        self._execute(table, insert(tbl).values(**values), conn)

    def update(
        self,
        table: str,
        values: Dict[str, Any],
        filters: Dict[str, Any],
        conn: Optional[Connection] = None,
    ) -> int:
        """
        Update rows matching ``filters``.

        Returns:
            Number of rows updated

        Raises:
            StoreQueryError: Unknown table/column or database error
        """
        tbl = self._table(table)
        self.check_columns(table, values)

        stmt = update(tbl).values(**values)
        for name, value in filters.items():
            stmt = stmt.where(self._column(tbl, name) == value)

        return self._execute(table, stmt, conn).rowcount

    def upsert(self, table: str, values: Dict[str, Any], key: str = "id") -> None:
        """
        Update the row whose ``key`` matches, or insert it.

        Done as update-then-insert in one transaction so it works on every
        dialect.

        Raises:
            StoreQueryError: Unknown table/column, missing key or database error
        """
        if key not in values:
            raise StoreQueryError(table, f"upsert requires a value for '{key}'", column=key)

        tbl = self._table(table)
        key_col = self._column(tbl, key)
        for name in values:
            self._column(tbl, name)

        changes = {name: value for name, value in values.items() if name != key}

        try:
            with self._engine.begin() as conn:
                updated = 0
                if changes:
                    result = conn.execute(
                        update(tbl).where(key_col == values[key]).values(**changes)
                    )
                    updated = result.rowcount
                else:
                    existing = conn.execute(
                        select(key_col).where(key_col == values[key])
                    ).first()
                    updated = 1 if existing else 0

                if not updated:
                    conn.execute(insert(tbl).values(**values))
        except SQLAlchemyError as e:
            raise StoreQueryError(table, str(e)) from e

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Backend store ping failed: {e}")
            return False

    def dispose(self) -> None:
        """Close all pooled connections."""
        self._engine.dispose()
        logger.info("Backend store connections disposed")

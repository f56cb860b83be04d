"""Typed async SQLite access.

Runs on stdlib ``sqlite3`` + ``anyio``. SQL in, records or frozen
dataclasses out.

Connection URL format::

    sqlite:///path/to/db.sqlite    # SQLite file
    sqlite:///:memory:             # In-memory SQLite

One connection per ``Database``. Statements are serialized through an
``anyio.Lock``; the provider layer adds no locking of its own.
"""

from __future__ import annotations

import sqlite3
import sys
import threading
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

import anyio

from inventory.data._mapping import map_row, map_rows
from inventory.data._sqlite import AsyncConnection
from inventory.data._sqlite import connect as sqlite_connect
from inventory.data.errors import ConstraintError, DataError, QueryError

# Per-task connection tracking. Set inside transaction(); query methods
# check this to reuse the transaction's connection instead of taking the lock.
_current_conn: ContextVar[AsyncConnection] = ContextVar("inventory_db_conn")


def _in_transaction() -> bool:
    try:
        _current_conn.get()
        return True
    except LookupError:
        return False


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Database connection configuration."""

    url: str
    echo: bool = False


class Database:
    """Typed async database access.

    Usage::

        db = Database("sqlite:///inventory.db")

        rows = await db.fetch_rows("SELECT * FROM products WHERE price > ?", 10)
        product = await db.fetch_one(Product, "SELECT * FROM products WHERE id = ?", 1)

        # INSERT returns the new rowid, UPDATE/DELETE the affected count
        row_id = await db.insert("INSERT INTO products (name) VALUES (?)", "Widget")
        count = await db.execute("DELETE FROM products WHERE id = ?", row_id)

        async with db.transaction():
            await db.execute("UPDATE products SET quantity = quantity - 1 WHERE id = ?", 1)
            await db.execute("UPDATE products SET quantity = quantity + 1 WHERE id = ?", 2)
    """

    __slots__ = ("_async_lock", "_config", "_conn", "_initialized", "_lock", "_path")

    def __init__(self, url: str, /, *, echo: bool = False) -> None:
        self._config = DatabaseConfig(url=url, echo=echo)
        self._path = _parse_sqlite_path(url)
        self._lock = threading.Lock()
        self._async_lock: anyio.Lock | None = None  # Created lazily on first use
        self._conn: AsyncConnection | None = None
        self._initialized = False

    @property
    def url(self) -> str:
        return self._config.url

    # -- Connection management --

    def _get_async_lock(self) -> anyio.Lock:
        # Can't be created in __init__ before an event loop exists.
        if self._async_lock is None:
            self._async_lock = anyio.Lock()
        return self._async_lock

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[AsyncConnection]:
        """Yield the connection, serialized against other tasks.

        Inside a ``transaction()`` block the transaction already holds the
        lock, so its connection is reused directly.
        """
        if not self._initialized:
            await self.connect()

        try:
            conn = _current_conn.get()
        except LookupError:
            pass
        else:
            yield conn
            return

        async with self._get_async_lock():
            assert self._conn is not None
            yield self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Execute multiple statements atomically.

        Commits on clean exit, rolls back on exception. Nested calls join
        the outer transaction.
        """
        if not self._initialized:
            await self.connect()

        if _in_transaction():
            yield
            return

        async with self._get_async_lock():
            conn = self._conn
            assert conn is not None
            token = _current_conn.set(conn)
            try:
                conn.set_autocommit(False)
                yield
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise
            finally:
                conn.set_autocommit(True)
                _current_conn.reset(token)

    # -- Echo --

    def _log_query(self, sql: str, params: Sequence[Any], elapsed: float) -> None:
        """Print a query to stderr when echo is enabled."""
        if not self._config.echo:
            return
        ms = elapsed * 1000
        param_str = f"  params={tuple(params)!r}" if params else ""
        print(f"[inventory.data] {ms:6.1f}ms  {sql}{param_str}", file=sys.stderr)

    # -- Public query API --

    async def fetch_rows(self, sql: str, /, *params: Any) -> list[dict[str, Any]]:
        """Execute a query and return every row as a column-ordered dict."""
        t0 = time.perf_counter()
        async with self._connection() as conn:
            try:
                result = await conn.run(sql, params)
                return result.records()
            except (sqlite3.Error, OverflowError) as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, time.perf_counter() - t0)

    async def fetch[T](self, cls: type[T], sql: str, /, *params: Any) -> list[T]:
        """Execute a query and return all rows as typed dataclasses."""
        return map_rows(cls, await self.fetch_rows(sql, *params))

    async def fetch_one[T](self, cls: type[T], sql: str, /, *params: Any) -> T | None:
        """Execute a query and return the first row, or ``None``."""
        rows = await self.fetch_rows(sql, *params)
        if not rows:
            return None
        return map_row(cls, rows[0])

    async def fetch_val(self, sql: str, /, *params: Any) -> Any:
        """Return the first column of the first row, or ``None``.

        Useful for COUNT, MAX and friends::

            count = await db.fetch_val("SELECT COUNT(*) FROM products")
        """
        rows = await self.fetch_rows(sql, *params)
        if not rows:
            return None
        return next(iter(rows[0].values()))

    async def execute(self, sql: str, /, *params: Any) -> int:
        """Execute an UPDATE/DELETE (or DDL) and return rows affected."""
        t0 = time.perf_counter()
        async with self._connection() as conn:
            try:
                result = await conn.run(sql, params)
                return result.rowcount
            except (sqlite3.Error, OverflowError) as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, time.perf_counter() - t0)

    async def insert(self, sql: str, /, *params: Any) -> int:
        """Execute an INSERT and return the new row's rowid."""
        t0 = time.perf_counter()
        async with self._connection() as conn:
            try:
                result = await conn.run(sql, params)
            except sqlite3.IntegrityError as exc:
                raise ConstraintError(str(exc)) from exc
            except (sqlite3.Error, OverflowError) as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, time.perf_counter() - t0)
        if result.lastrowid is None:
            msg = f"Statement did not insert a row: {sql}"
            raise QueryError(msg)
        return result.lastrowid

    async def execute_script(self, sql: str, /) -> None:
        """Execute multiple SQL statements at once (migrations)."""
        t0 = time.perf_counter()
        async with self._connection() as conn:
            try:
                await conn.run_script(sql)
            except sqlite3.Error as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, (), time.perf_counter() - t0)

    # -- Lifecycle --

    async def connect(self) -> None:
        """Open the connection.

        Called automatically on first query. Call explicitly to fail fast
        at startup.
        """
        if self._initialized:
            return
        conn = await sqlite_connect(self._path)
        with self._lock:
            if not self._initialized:
                self._conn = conn
                self._initialized = True
                return
        # Lost a concurrent connect
        await conn.close()

    async def disconnect(self) -> None:
        """Close the connection."""
        with self._lock:
            if not self._initialized:
                return
            conn = self._conn
            self._conn = None
            self._initialized = False
        assert conn is not None
        await conn.close()

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.disconnect()


def _parse_sqlite_path(url: str) -> str:
    """Extract the file path from a sqlite:// URL."""
    # sqlite:///path/to/db  ->  path/to/db
    # sqlite:///:memory:    ->  :memory:
    path = ""
    if url.startswith("sqlite:///"):
        path = url[len("sqlite:///") :]
    elif url.startswith("sqlite://"):
        path = url[len("sqlite://") :]
    if path:
        return path
    msg = (
        f"Unsupported database URL: {url!r}. "
        "Supported: sqlite:///path/to/db, sqlite:///:memory:"
    )
    raise DataError(msg)

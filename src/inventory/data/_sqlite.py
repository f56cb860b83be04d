"""Blocking ``sqlite3`` work, moved off the event loop with anyio.

A statement is executed, drained and closed in a single worker-thread hop;
the caller gets back a ``StatementResult`` snapshot instead of a live
cursor. The connection is opened with ``autocommit=True`` and
``check_same_thread=False`` because successive hops may land on different
pool threads.
"""

import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import anyio.to_thread


@dataclass(frozen=True, slots=True)
class StatementResult:
    """Everything the data layer reads from a finished statement."""

    columns: tuple[str, ...]
    rows: list[tuple[Any, ...]]
    rowcount: int
    lastrowid: int | None

    def records(self) -> list[dict[str, Any]]:
        """Rows as dicts keyed by column, in result-set column order."""
        return [dict(zip(self.columns, row, strict=True)) for row in self.rows]


def _run_statement(conn: sqlite3.Connection, sql: str, params: Sequence[Any]) -> StatementResult:
    cursor = conn.execute(sql, params)
    try:
        rows = cursor.fetchall()
        columns = tuple(desc[0] for desc in cursor.description or ())
        return StatementResult(columns, rows, cursor.rowcount, cursor.lastrowid)
    finally:
        cursor.close()


def _open(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path, autocommit=True, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys=ON")
    if path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    return conn


class AsyncConnection:
    """One ``sqlite3.Connection`` driven from async code."""

    __slots__ = ("_conn",)

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def set_autocommit(self, enabled: bool) -> None:
        self._conn.autocommit = enabled

    async def run(self, sql: str, params: Sequence[Any] = ()) -> StatementResult:
        return await anyio.to_thread.run_sync(_run_statement, self._conn, sql, params)

    async def run_script(self, sql: str) -> None:
        """Run several statements. Commits any pending transaction first."""
        await anyio.to_thread.run_sync(self._conn.executescript, sql)

    async def commit(self) -> None:
        await anyio.to_thread.run_sync(self._conn.commit)

    async def rollback(self) -> None:
        await anyio.to_thread.run_sync(self._conn.rollback)

    async def close(self) -> None:
        await anyio.to_thread.run_sync(self._conn.close)


async def connect(path: str) -> AsyncConnection:
    """Open *path* (or ``:memory:``) with foreign keys on and WAL for files."""
    return AsyncConnection(await anyio.to_thread.run_sync(_open, path))

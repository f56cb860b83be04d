"""Row-level storage engine: the four primitives the provider calls.

``StorageEngine`` is the protocol; ``SQLiteStorage`` implements it on a
``Database``. Any object with the same four coroutines can stand in.

Errors:
    ``insert_row`` returns ``-1`` instead of raising when SQLite rejects
    the row (a constraint violation). Every other fault surfaces as a
    ``DataError`` subclass and is not retried. Filter arguments outside
    SQLite's 64-bit integer range are bound as text, so an oversized id
    selects nothing.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from inventory.data.database import Database
from inventory.data.errors import ConstraintError
from inventory.data.query import Select, delete_sql, insert_sql, update_sql

logger = logging.getLogger("inventory.data")

type Record = dict[str, Any]

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _bindable(args: Sequence[Any]) -> tuple[Any, ...]:
    """Filter arguments SQLite can bind.

    SQLite integers are signed 64-bit. A wider int is bound as its decimal
    text; compared against an INTEGER column it takes numeric affinity, so
    ``id = ?`` with such a value matches no row instead of failing.
    """
    return tuple(
        str(arg)
        if isinstance(arg, int)
        and not isinstance(arg, bool)
        and not _INT64_MIN <= arg <= _INT64_MAX
        else arg
        for arg in args
    )


class StorageEngine(Protocol):
    """Read/write primitives over a single table."""

    async def query_rows(
        self,
        table: str,
        columns: Sequence[str] | None,
        filter: str | None,
        args: Sequence[Any],
        sort_order: str | None,
    ) -> list[Record]: ...

    async def insert_row(self, table: str, record: Mapping[str, Any]) -> int: ...

    async def update_rows(
        self,
        table: str,
        record: Mapping[str, Any],
        filter: str | None,
        args: Sequence[Any],
    ) -> int: ...

    async def delete_rows(self, table: str, filter: str | None, args: Sequence[Any]) -> int: ...


class SQLiteStorage:
    """``StorageEngine`` backed by a ``Database``."""

    __slots__ = ("_db",)

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def db(self) -> Database:
        return self._db

    async def query_rows(
        self,
        table: str,
        columns: Sequence[str] | None = None,
        filter: str | None = None,
        args: Sequence[Any] = (),
        sort_order: str | None = None,
    ) -> list[Record]:
        select = (
            Select(table)
            .columns(columns)
            .where(filter, *_bindable(args))
            .order_by(sort_order)
        )
        return await self._db.fetch_rows(select.sql, *select.params)

    async def insert_row(self, table: str, record: Mapping[str, Any]) -> int:
        sql, params = insert_sql(table, record)
        try:
            return await self._db.insert(sql, *params)
        except ConstraintError as exc:
            logger.info("Insert into %s rejected: %s", table, exc)
            return -1

    async def update_rows(
        self,
        table: str,
        record: Mapping[str, Any],
        filter: str | None = None,
        args: Sequence[Any] = (),
    ) -> int:
        sql, params = update_sql(table, record, filter, _bindable(args))
        return await self._db.execute(sql, *params)

    async def delete_rows(
        self, table: str, filter: str | None = None, args: Sequence[Any] = ()
    ) -> int:
        sql, params = delete_sql(table, filter, _bindable(args))
        return await self._db.execute(sql, *params)

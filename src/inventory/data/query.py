"""Immutable statement builders for the storage engine.

``Select`` accumulates clauses through chaining methods and compiles to a
SQL string + parameters tuple. ``insert_sql``, ``update_sql`` and
``delete_sql`` compile the three write statements.

Filter and sort strings are caller-supplied SQL fragments and are used
verbatim. Table and column names are checked to be plain identifiers since
they are interpolated, never bound.

Usage::

    select = (
        Select("products")
        .columns(("id", "name"))
        .where("price > ?", 10)
        .order_by("name ASC")
    )
    rows = await db.fetch_rows(select.sql, *select.params)
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from inventory.data.errors import DataError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def check_identifier(name: str) -> str:
    """Return *name* unchanged if it is a plain SQL identifier.

    Raises ``DataError`` otherwise.
    """
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        msg = f"Invalid SQL identifier: {name!r}"
        raise DataError(msg)
    return name


@dataclass(frozen=True, slots=True)
class Select:
    """Immutable SELECT builder. Every method returns a new ``Select``."""

    _table: str
    _columns: tuple[str, ...] = ()
    _wheres: tuple[tuple[str, tuple[Any, ...]], ...] = ()
    _order: str | None = None

    # -- Building --

    def columns(self, columns: Iterable[str] | None) -> Select:
        """Set the projection. ``None`` or empty selects every column."""
        return replace(self, _columns=tuple(columns or ()))

    def where(self, clause: str | None, /, *params: Any) -> Select:
        """Add a WHERE clause. Multiple calls are ANDed. ``None`` is a no-op."""
        if not clause:
            return self
        return replace(self, _wheres=(*self._wheres, (clause, params)))

    def order_by(self, clause: str | None) -> Select:
        """Set ORDER BY, replacing any previous ordering."""
        return replace(self, _order=clause or None)

    # -- Compilation --

    @property
    def sql(self) -> str:
        table = check_identifier(self._table)
        cols = ", ".join(check_identifier(c) for c in self._columns) or "*"
        parts = [f"SELECT {cols} FROM {table}"]
        if self._wheres:
            parts.append("WHERE " + " AND ".join(f"({w[0]})" for w in self._wheres))
        if self._order:
            parts.append(f"ORDER BY {self._order}")
        return " ".join(parts)

    @property
    def params(self) -> tuple[Any, ...]:
        result: list[Any] = []
        for _, p in self._wheres:
            result.extend(p)
        return tuple(result)


def insert_sql(table: str, record: Mapping[str, Any]) -> tuple[str, tuple[Any, ...]]:
    """Compile an INSERT. An empty record inserts a row of column defaults."""
    table = check_identifier(table)
    if not record:
        return f"INSERT INTO {table} DEFAULT VALUES", ()
    cols = ", ".join(check_identifier(c) for c in record)
    marks = ", ".join("?" for _ in record)
    return f"INSERT INTO {table} ({cols}) VALUES ({marks})", tuple(record.values())


def update_sql(
    table: str,
    record: Mapping[str, Any],
    filter: str | None = None,
    args: Sequence[Any] = (),
) -> tuple[str, tuple[Any, ...]]:
    """Compile an UPDATE. ``filter=None`` updates every row.

    Raises ``DataError`` for an empty record.
    """
    table = check_identifier(table)
    if not record:
        msg = f"Cannot update {table}: no values given"
        raise DataError(msg)
    assignments = ", ".join(f"{check_identifier(c)} = ?" for c in record)
    sql = f"UPDATE {table} SET {assignments}"
    if filter:
        sql += f" WHERE {filter}"
    return sql, (*record.values(), *args)


def delete_sql(
    table: str, filter: str | None = None, args: Sequence[Any] = ()
) -> tuple[str, tuple[Any, ...]]:
    """Compile a DELETE. ``filter=None`` deletes every row."""
    sql = f"DELETE FROM {check_identifier(table)}"
    if filter:
        sql += f" WHERE {filter}"
    return sql, tuple(args)

"""The inventory provider: CRUD over one table, addressed by locator.

Each call classifies its locator, runs one storage primitive, and for
mutations publishes a change for the caller's locator before returning.

Routes::

    content://<authority>/products       collection
    content://<authority>/products/<id>  one product

A single-product locator always filters on ``id = ?`` with the locator's
id; any filter the caller passes is discarded.

Unmatched locators raise ``RoutingError`` from ``query``, ``get_type``,
``insert`` and ``update``. ``delete`` instead returns ``0`` and publishes
nothing.

Usage::

    async with open_provider(InventoryConfig(database_url="sqlite:///inv.db")) as provider:
        item = await provider.insert(CONTENT_URI, {"name": "Widget", "price": 5})
        rows = await provider.query(item)
        await provider.delete(item)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Iterator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from inventory.config import InventoryConfig, configure_logging
from inventory.contract import (
    COLUMN_ID,
    CONTENT_AUTHORITY,
    PATH_PRODUCTS,
    SCHEME,
    TABLE_NAME,
    item_type,
    list_type,
)
from inventory.data import Database, SQLiteStorage, StorageEngine, migrate
from inventory.data._mapping import map_rows
from inventory.errors import ConfigurationError, InsertError, RoutingError
from inventory.locator import Locator
from inventory.notify import ChangeNotifier, Observer
from inventory.routing import Matcher, RouteKind, RouteMatch, inventory_patterns
from inventory.routing.matcher import parse_pattern

logger = logging.getLogger("inventory.provider")

type Record = dict[str, Any]


@dataclass(frozen=True, slots=True)
class RecordStream:
    """Rows returned by ``query``, tagged with the locator that produced them.

    Iterate for records (column-ordered dicts), or map them onto a
    dataclass with ``as_type``. ``register_observer`` subscribes to changes
    under ``notification_locator`` so the caller can re-query.
    """

    records: tuple[Record, ...]
    notification_locator: Locator

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def first(self) -> Record | None:
        return self.records[0] if self.records else None

    def as_type[T](self, cls: type[T]) -> list[T]:
        return map_rows(cls, self.records)

    def register_observer(self, notifier: ChangeNotifier, observer: Observer) -> None:
        notifier.register(self.notification_locator, observer, notify_for_descendants=True)


class InventoryProvider:
    """Route locators to storage calls and publish changes after mutations.

    Dependencies are passed in; the provider holds no global state and adds
    no locking of its own. Concurrency guarantees are the storage engine's.
    """

    __slots__ = (
        "_authority",
        "_collection_path",
        "_matcher",
        "_notifier",
        "_storage",
        "_table",
    )

    def __init__(
        self,
        storage: StorageEngine,
        notifier: ChangeNotifier,
        *,
        table: str = TABLE_NAME,
        authority: str = CONTENT_AUTHORITY,
        collection_path: str = PATH_PRODUCTS,
        matcher: Matcher | None = None,
    ) -> None:
        self._storage = storage
        self._notifier = notifier
        self._table = table
        self._authority = authority
        self._collection_path = collection_path.strip("/")
        self._matcher = matcher or Matcher(inventory_patterns(authority, self._collection_path))
        _check_item_patterns(self._matcher)

    @property
    def storage(self) -> StorageEngine:
        return self._storage

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    @property
    def content_uri(self) -> Locator:
        """The collection locator this provider serves."""
        return Locator(SCHEME, self._authority, tuple(self._collection_path.split("/")))

    # -- Routing --

    def _match(self, locator: Locator | str) -> tuple[Locator | None, RouteMatch]:
        """Parse and classify. Unparseable strings are unmatched, not errors."""
        try:
            parsed = Locator.coerce(locator)
        except ValueError:
            return None, RouteMatch(kind=RouteKind.UNMATCHED)
        return parsed, self._matcher.match(parsed)

    @staticmethod
    def _id_filter(route: RouteMatch) -> tuple[str, tuple[int]]:
        return f"{COLUMN_ID} = ?", (route.params["id"],)

    async def _attempt_then_notify(self, locator: Locator, operation: Awaitable[int]) -> int:
        """Await a delete/update, then publish for *locator* whatever the outcome.

        Zero affected rows still publish. Any fault raised by the storage
        engine publishes and is then re-raised unchanged.
        """
        try:
            count = await operation
        except Exception:
            self._notifier.notify(locator)
            raise
        self._notifier.notify(locator)
        return count

    # -- Operations --

    async def query(
        self,
        locator: Locator | str,
        columns: Sequence[str] | None = None,
        filter: str | None = None,
        args: Sequence[Any] = (),
        sort_order: str | None = None,
    ) -> RecordStream:
        """Return the rows addressed by *locator*.

        Collection: ``columns``, ``filter``, ``args`` and ``sort_order`` go to
        storage unchanged. Single product: at most one row, caller filter
        ignored.

        Raises:
            RoutingError: If the locator is unmatched. Storage is not touched.
        """
        parsed, route = self._match(locator)
        match route.kind:
            case RouteKind.COLLECTION:
                pass
            case RouteKind.SINGLE_ITEM:
                filter, args = self._id_filter(route)
            case _:
                raise RoutingError("query", locator)

        assert parsed is not None
        rows = await self._storage.query_rows(self._table, columns, filter, args, sort_order)
        return RecordStream(records=tuple(rows), notification_locator=parsed)

    def get_type(self, locator: Locator | str) -> str:
        """Return the MIME type for *locator*. Structural only, no storage access.

        Raises:
            RoutingError: If the locator is unmatched.
        """
        _, route = self._match(locator)
        match route.kind:
            case RouteKind.SINGLE_ITEM:
                return item_type(self._authority, self._collection_path)
            case RouteKind.COLLECTION:
                return list_type(self._authority, self._collection_path)
            case _:
                raise RoutingError("get_type", locator)

    async def insert(self, locator: Locator | str, record: Mapping[str, Any]) -> Locator:
        """Create a row in the collection and return its locator.

        Raises:
            RoutingError: If *locator* is not the collection locator. Storage
                is not touched.
            InsertError: If storage reports that no row was created. Nothing
                is published.
        """
        parsed, route = self._match(locator)
        if route.kind is not RouteKind.COLLECTION:
            raise RoutingError("insert", locator)
        assert parsed is not None

        row_id = await self._storage.insert_row(self._table, record)
        if row_id == -1:
            logger.info("Insertion failed for %s", parsed)
            raise InsertError(parsed)

        self._notifier.notify(parsed)
        return parsed.with_appended_id(row_id)

    async def delete(
        self,
        locator: Locator | str,
        filter: str | None = None,
        args: Sequence[Any] = (),
    ) -> int:
        """Delete the rows addressed by *locator* and return how many went.

        Collection with ``filter=None`` deletes every row. Publishes a change
        for *locator* after every matched attempt, even when nothing was
        deleted.

        An unmatched locator returns ``0``: no error, no storage call, no
        change published. ``update`` raises for the same input.
        """
        parsed, route = self._match(locator)
        match route.kind:
            case RouteKind.COLLECTION:
                pass
            case RouteKind.SINGLE_ITEM:
                filter, args = self._id_filter(route)
            case _:
                logger.warning("Delete ignored for unknown locator %r", str(locator))
                return 0

        assert parsed is not None
        return await self._attempt_then_notify(
            parsed, self._storage.delete_rows(self._table, filter, args)
        )

    async def update(
        self,
        locator: Locator | str,
        record: Mapping[str, Any],
        filter: str | None = None,
        args: Sequence[Any] = (),
    ) -> int:
        """Update the rows addressed by *locator* and return how many matched.

        Publishes a change for *locator* after every matched attempt, even
        when nothing was updated.

        Raises:
            RoutingError: If the locator is unmatched. Nothing is published.
        """
        parsed, route = self._match(locator)
        match route.kind:
            case RouteKind.COLLECTION:
                pass
            case RouteKind.SINGLE_ITEM:
                filter, args = self._id_filter(route)
            case _:
                raise RoutingError("update", locator)

        assert parsed is not None
        return await self._attempt_then_notify(
            parsed, self._storage.update_rows(self._table, record, filter, args)
        )


def _check_item_patterns(matcher: Matcher) -> None:
    """Single-item patterns must capture an integer ``id`` for the forced filter."""
    for pattern in matcher.patterns:
        if pattern.kind is not RouteKind.SINGLE_ITEM:
            continue
        if not any(
            seg.is_param and seg.param_name == COLUMN_ID and seg.param_type == "int"
            for seg in parse_pattern(pattern.path)
        ):
            msg = f"Single-item pattern {pattern.path!r} has no {{{COLUMN_ID}:int}} segment"
            raise ConfigurationError(msg)


@asynccontextmanager
async def open_provider(config: InventoryConfig | None = None) -> AsyncIterator[InventoryProvider]:
    """Build a provider over SQLite and close the database on exit.

    Opens the database, applies pending migrations, and wires storage,
    notifier and provider together once::

        async with open_provider(InventoryConfig(database_url="sqlite:///:memory:")) as p:
            await p.insert(p.content_uri, {"name": "Widget"})
    """
    config = config or InventoryConfig()
    configure_logging(config.log_level)

    db = Database(config.database_url, echo=config.echo)
    await db.connect()
    try:
        if config.migrations is not None:
            result = await migrate(db, config.migrations)
            logger.info("%s", result.summary)
        yield InventoryProvider(
            SQLiteStorage(db),
            ChangeNotifier(),
            table=config.table,
            authority=config.authority,
            collection_path=config.collection_path,
        )
    finally:
        await db.disconnect()

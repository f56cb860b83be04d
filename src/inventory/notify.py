"""Change notifications keyed by locator.

After a mutation the provider calls ``notify(locator)``. Delivery is
fire-and-forget: there is no acknowledgement, and a failing observer is
logged and skipped.

A change to ``.../products/3`` reaches observers registered on

- ``.../products/3`` itself,
- ``.../products`` if they registered with ``notify_for_descendants=True``,
- anything below ``.../products/3``.

A change to ``.../products`` therefore also reaches every item observer.
Observers must tolerate repeated and spurious changes: deletes and updates
notify even when no row was affected.

Callback observers::

    notifier.register(CONTENT_URI, lambda loc: refresh(), notify_for_descendants=True)

Async subscribers::

    async for change in notifier.subscribe(CONTENT_URI):
        rows = await provider.query(change.locator)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from inventory.locator import Locator

logger = logging.getLogger("inventory.notify")

type Observer = Callable[[Locator], object]


@dataclass(frozen=True, slots=True)
class Change:
    """One change notification."""

    locator: Locator


@dataclass(frozen=True, slots=True)
class _Registration:
    locator: Locator | None  # None receives every change
    observer: Observer
    notify_for_descendants: bool


def _reaches(registered: Locator | None, changed: Locator, descendants: bool) -> bool:
    if registered is None:
        return True
    if registered == changed:
        return True
    if registered.is_ancestor_of(changed):
        return descendants
    return changed.is_ancestor_of(registered)


class ChangeNotifier:
    """In-process publish/subscribe registry for locator changes."""

    __slots__ = ("_registrations",)

    def __init__(self) -> None:
        self._registrations: list[_Registration] = []

    def register(
        self,
        locator: Locator | str,
        observer: Observer,
        *,
        notify_for_descendants: bool = False,
    ) -> None:
        """Call ``observer(changed_locator)`` for changes reaching *locator*."""
        self._registrations.append(
            _Registration(Locator.coerce(locator), observer, notify_for_descendants)
        )

    def unregister(self, observer: Observer) -> None:
        """Drop every registration of *observer*. Unknown observers are ignored."""
        self._registrations = [r for r in self._registrations if r.observer is not observer]

    def observer_count(self) -> int:
        return len(self._registrations)

    def notify(self, locator: Locator | str) -> None:
        """Tell observers that data reachable through *locator* may have changed."""
        changed = Locator.coerce(locator)
        logger.debug("Change: %s", changed)
        # Snapshot so observers may (un)register while being called
        for reg in tuple(self._registrations):
            if not _reaches(reg.locator, changed, reg.notify_for_descendants):
                continue
            try:
                reg.observer(changed)
            except Exception:
                logger.exception("Change observer %r failed for %s", reg.observer, changed)

    def subscribe(
        self,
        locator: Locator | str | None = None,
        *,
        notify_for_descendants: bool = True,
    ) -> Subscription:
        """Return an async iterator of ``Change`` objects.

        Registration happens here, not on first iteration: changes published
        after ``subscribe()`` returns are queued. With ``locator=None`` every
        change is yielded. Close with ``aclose()`` or ``async with``.
        """
        target = None if locator is None else Locator.coerce(locator)
        return Subscription(self, target, notify_for_descendants)


class Subscription:
    """Queue-backed stream of changes for one registration."""

    __slots__ = ("_closed", "_notifier", "_observer", "_queue")

    def __init__(
        self,
        notifier: ChangeNotifier,
        locator: Locator | None,
        notify_for_descendants: bool,
    ) -> None:
        self._notifier = notifier
        self._queue: asyncio.Queue[Change] = asyncio.Queue()
        self._closed = False
        # unregister() matches by identity; keep one bound method
        self._observer = self._on_change
        notifier._registrations.append(
            _Registration(locator, self._observer, notify_for_descendants)
        )

    def _on_change(self, changed: Locator) -> None:
        self._queue.put_nowait(Change(changed))

    def pending(self) -> int:
        """Changes queued and not yet consumed."""
        return self._queue.qsize()

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Change:
        if self._closed:
            raise StopAsyncIteration
        return await self._queue.get()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._notifier.unregister(self._observer)

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

"""Resource locators.

A locator addresses either a collection or one item within it::

    content://com.example.android.inventoryapp/products
    content://com.example.android.inventoryapp/products/42

Locators are frozen and hashable, so they double as notification keys.
Rendering a parsed locator gives back the canonical string (empty path
segments and any query or fragment are dropped).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from urllib.parse import urlsplit


@dataclass(frozen=True, slots=True)
class Locator:
    """A parsed ``scheme://authority/segment/...`` address."""

    scheme: str
    authority: str
    segments: tuple[str, ...] = ()

    @classmethod
    def parse(cls, value: str) -> Locator:
        """Parse a locator string.

        Raises ``ValueError`` if the string has no scheme or no authority.
        """
        parts = urlsplit(value)
        if not parts.scheme or not parts.netloc:
            msg = f"Invalid locator: {value!r} (expected scheme://authority/path)"
            raise ValueError(msg)
        segments = tuple(p for p in parts.path.split("/") if p)
        return cls(scheme=parts.scheme, authority=parts.netloc, segments=segments)

    @classmethod
    def coerce(cls, value: Locator | str) -> Locator:
        """Return *value* as a ``Locator``, parsing strings."""
        if isinstance(value, Locator):
            return value
        return cls.parse(value)

    @property
    def path(self) -> str:
        return "/".join(self.segments)

    @property
    def last_segment(self) -> str | None:
        return self.segments[-1] if self.segments else None

    def with_appended_id(self, row_id: int) -> Locator:
        """Return a new locator with *row_id* appended as the last segment."""
        return replace(self, segments=(*self.segments, str(row_id)))

    def with_appended_path(self, segment: str) -> Locator:
        return replace(self, segments=(*self.segments, *(p for p in segment.split("/") if p)))

    def parse_id(self) -> int:
        """Convert the last path segment to a row id.

        Raises ``ValueError`` if the last segment is missing or not a
        base-10 integer.
        """
        last = self.last_segment
        if last is None:
            msg = f"Locator has no path segments: {self}"
            raise ValueError(msg)
        return int(last)

    def is_ancestor_of(self, other: Locator) -> bool:
        """True if *other* lives strictly below this locator."""
        return (
            self.scheme == other.scheme
            and self.authority == other.authority
            and len(other.segments) > len(self.segments)
            and other.segments[: len(self.segments)] == self.segments
        )

    def __str__(self) -> str:
        base = f"{self.scheme}://{self.authority}"
        if not self.segments:
            return base
        return f"{base}/{self.path}"

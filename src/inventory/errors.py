"""Inventory exception hierarchy.

Shared across the matcher, provider, and storage layer so every module
raises and catches the same types.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from inventory.locator import Locator


class InventoryError(Exception):
    """Base for all inventory-specific errors."""


class ConfigurationError(InventoryError):
    """Raised when provider configuration is invalid."""


class RoutingError(InventoryError):
    """The locator matched neither the collection nor the single-item pattern.

    Raised by ``query``, ``get_type``, ``insert`` and ``update``.
    ``delete`` treats an unmatched locator as "nothing to delete" instead.
    """

    def __init__(self, operation: str, locator: Locator | str, detail: str = "") -> None:
        self.operation = operation
        self.locator = locator
        self.detail = detail or f"Unknown locator for {operation}: {str(locator)!r}"
        super().__init__(self.detail)


class InsertError(InventoryError):
    """The storage engine reported that no row was created."""

    def __init__(self, locator: Locator | str, detail: str = "") -> None:
        self.locator = locator
        self.detail = detail or f"Insertion failed for {str(locator)!r}"
        super().__init__(self.detail)

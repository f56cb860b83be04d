"""Data layer error hierarchy."""

from inventory.errors import InventoryError


class DataError(InventoryError):
    """Base for all storage engine errors."""


class QueryError(DataError):
    """Raised when a SQL statement fails."""


class MigrationError(DataError):
    """Raised when a migration cannot be discovered or applied."""


class ConstraintError(QueryError):
    """Raised when SQLite rejects a row (NOT NULL, UNIQUE, CHECK, foreign key)."""

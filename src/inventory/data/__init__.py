"""Async SQLite storage engine for the inventory provider.

SQL in, column-ordered records out. Not an ORM.

Basic usage::

    from inventory.data import Database, SQLiteStorage, migrate

    db = Database("sqlite:///inventory.db")
    await migrate(db)
    storage = SQLiteStorage(db)

    row_id = await storage.insert_row("products", {"name": "Widget", "price": 5})
    rows = await storage.query_rows("products", None, "id = ?", (row_id,), None)
"""

from inventory.data.database import Database
from inventory.data.errors import ConstraintError, DataError, MigrationError, QueryError
from inventory.data.migrate import MigrationResult, migrate
from inventory.data.storage import Record, SQLiteStorage, StorageEngine

__all__ = [
    "ConstraintError",
    "DataError",
    "Database",
    "MigrationError",
    "MigrationResult",
    "QueryError",
    "Record",
    "SQLiteStorage",
    "StorageEngine",
    "migrate",
]

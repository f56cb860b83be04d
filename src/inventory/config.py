"""Provider configuration.

InventoryConfig is a frozen dataclass: immutable after creation,
IDE-autocompletable, no string-key dict lookups.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from inventory.contract import CONTENT_AUTHORITY, PATH_PRODUCTS, TABLE_NAME
from inventory.data.migrate import MIGRATIONS_DIR

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True, slots=True)
class InventoryConfig:
    """Provider configuration. Immutable after creation.

    All fields have defaults. Override what you need::

        config = InventoryConfig(database_url="sqlite:///:memory:", echo=True)
    """

    # Storage
    database_url: str = "sqlite:///inventory.db"
    table: str = TABLE_NAME
    migrations: str | Path | None = MIGRATIONS_DIR  # None skips migrations
    echo: bool = False  # Print every statement to stderr

    # Addressing
    authority: str = CONTENT_AUTHORITY
    collection_path: str = PATH_PRODUCTS

    # Logging
    log_level: str = "info"


def configure_logging(level: str = "info") -> logging.Logger:
    """Set the level of the ``inventory`` logger hierarchy.

    Handlers are left to the application. Raises ``ValueError`` for an
    unknown level name.
    """
    try:
        numeric = _LOG_LEVELS[level.lower()]
    except KeyError:
        msg = f"Unknown log level {level!r}. Expected one of: {', '.join(_LOG_LEVELS)}"
        raise ValueError(msg) from None
    logger = logging.getLogger("inventory")
    logger.setLevel(numeric)
    return logger

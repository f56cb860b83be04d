"""Forward-only SQL migration runner.

Migrations are numbered ``.sql`` files in a directory::

    migrations/
        001_create_products.sql
        002_add_sku.sql

Applied migrations are tracked in an ``_inventory_migrations`` table.
Migrations are applied in version order; the first failure stops the
run and leaves later migrations pending.

The package ships its own schema in ``inventory/data/migrations``::

    db = Database("sqlite:///inventory.db")
    result = await migrate(db)
    print(result.summary)
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from inventory.data.database import Database
from inventory.data.errors import MigrationError

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

_TRACKING_TABLE = "_inventory_migrations"

_CREATE_TRACKING_SQL = f"""
CREATE TABLE IF NOT EXISTS {_TRACKING_TABLE} (
    version    INTEGER PRIMARY KEY,
    name       TEXT    NOT NULL,
    applied_at TEXT    NOT NULL
)
"""


@dataclass(frozen=True, slots=True)
class Migration:
    """A single migration file."""

    version: int
    name: str
    sql: str


@dataclass(frozen=True, slots=True)
class MigrationResult:
    """Result of running migrations."""

    applied: list[str]
    already_applied: int
    total_available: int

    @property
    def summary(self) -> str:
        if not self.applied:
            return f"Already up to date ({self.already_applied} migrations applied)"
        return f"Applied {len(self.applied)} migration(s): {', '.join(self.applied)}"


def discover_migrations(directory: str | Path) -> list[Migration]:
    """Parse ``NNN_description.sql`` files from *directory*, sorted by version."""
    path = Path(directory)
    if not path.is_dir():
        msg = f"Migration directory does not exist: {path}"
        raise MigrationError(msg)

    migrations: list[Migration] = []
    for sql_file in path.glob("*.sql"):
        name = sql_file.stem
        version_str, sep, _ = name.partition("_")
        if not sep:
            msg = f"Invalid migration filename: {sql_file.name} (expected NNN_description.sql)"
            raise MigrationError(msg)
        try:
            version = int(version_str)
        except ValueError:
            msg = f"Invalid migration version in {sql_file.name}: {version_str!r} is not an integer"
            raise MigrationError(msg) from None

        sql = sql_file.read_text(encoding="utf-8").strip()
        if not sql:
            msg = f"Empty migration file: {sql_file.name}"
            raise MigrationError(msg)
        migrations.append(Migration(version=version, name=name, sql=sql))

    versions = [m.version for m in migrations]
    if len(versions) != len(set(versions)):
        msg = "Duplicate migration version numbers found"
        raise MigrationError(msg)

    return sorted(migrations, key=lambda m: m.version)


async def _applied_versions(db: Database) -> set[int]:
    rows = await db.fetch_rows(f"SELECT version FROM {_TRACKING_TABLE}")
    return {row["version"] for row in rows}


async def _apply(db: Database, migration: Migration) -> None:
    await db.execute_script(migration.sql)
    await db.execute(
        f"INSERT INTO {_TRACKING_TABLE} (version, name, applied_at) VALUES (?, ?, ?)",
        migration.version,
        migration.name,
        datetime.now(UTC).isoformat(),
    )


async def migrate(db: Database, directory: str | Path = MIGRATIONS_DIR) -> MigrationResult:
    """Apply pending migrations from *directory* in version order.

    Raises:
        MigrationError: If a migration fails or the directory is invalid.
    """
    migrations = discover_migrations(directory)
    await db.execute(_CREATE_TRACKING_SQL)
    applied_versions = await _applied_versions(db)

    applied: list[str] = []
    for migration in migrations:
        if migration.version in applied_versions:
            continue
        try:
            await _apply(db, migration)
        except Exception as exc:
            msg = f"Migration {migration.name} failed: {exc}"
            raise MigrationError(msg) from exc
        applied.append(migration.name)

    return MigrationResult(
        applied=applied,
        already_applied=len(applied_versions),
        total_available=len(migrations),
    )

"""Tests for inventory.data — async SQLite access, statements, storage, migrations."""

from dataclasses import dataclass

import pytest

from inventory.contract import ALL_COLUMNS, Product
from inventory.data import (
    ConstraintError,
    Database,
    DataError,
    MigrationError,
    QueryError,
    SQLiteStorage,
    migrate,
)
from inventory.data._mapping import map_row, map_rows
from inventory.data.migrate import MIGRATIONS_DIR, discover_migrations
from inventory.data.query import Select, check_identifier, delete_sql, insert_sql, update_sql

# -- Test models --


@dataclass(frozen=True, slots=True)
class Item:
    id: int
    name: str
    price: int


# -- Fixtures --


@pytest.fixture
async def db(tmp_path):
    """A fresh SQLite database with the packaged products schema."""
    db = Database(f"sqlite:///{tmp_path / 'test.db'}")
    await db.connect()
    await migrate(db)
    yield db
    await db.disconnect()


@pytest.fixture
async def seeded_db(db):
    """Database with three products."""
    for name, price, quantity in (("Widget", 5, 10), ("Gadget", 12, 0), ("Sprocket", 3, 7)):
        await db.insert(
            "INSERT INTO products (name, price, quantity) VALUES (?, ?, ?)", name, price, quantity
        )
    return db


@pytest.fixture
def storage(db):
    return SQLiteStorage(db)


# =============================================================================
# URLs
# =============================================================================


class TestDatabaseUrl:
    def test_file_url(self) -> None:
        assert Database("sqlite:///inventory.db")._path == "inventory.db"

    def test_absolute_file_url(self) -> None:
        assert Database("sqlite:////tmp/inventory.db")._path == "/tmp/inventory.db"

    def test_memory_url(self) -> None:
        assert Database("sqlite:///:memory:")._path == ":memory:"

    def test_unsupported_url_raises(self) -> None:
        with pytest.raises(DataError, match="Unsupported database URL"):
            Database("postgresql://localhost/db")

    def test_empty_path_raises(self) -> None:
        with pytest.raises(DataError):
            Database("sqlite:///")


# =============================================================================
# Record-to-dataclass mapping
# =============================================================================


class TestMapping:
    def test_map_row_basic(self) -> None:
        item = map_row(Item, {"id": 1, "name": "Widget", "price": 5})
        assert item == Item(id=1, name="Widget", price=5)

    def test_map_row_filters_extra_columns(self) -> None:
        item = map_row(Item, {"id": 1, "name": "Widget", "price": 5, "extra": "ignored"})
        assert item == Item(id=1, name="Widget", price=5)

    def test_map_row_coerces_strings(self) -> None:
        item = map_row(Item, {"id": "3", "name": "Widget", "price": ""})
        assert item == Item(id=3, name="Widget", price=0)

    def test_map_row_optional_fields(self) -> None:
        product = map_row(Product, {"id": 1, "name": "Widget", "supplier_phone": 5551234})
        assert product.supplier_phone == "5551234"
        assert product.supplier_name is None
        assert product.quantity == 0

    def test_map_row_raises_on_missing_field(self) -> None:
        with pytest.raises(TypeError):
            map_row(Item, {"id": 1, "name": "Widget"})

    def test_map_row_non_dataclass_raises(self) -> None:
        with pytest.raises(TypeError, match="not a dataclass"):
            map_row(dict, {"a": 1})  # type: ignore[arg-type]

    def test_map_rows_empty(self) -> None:
        assert map_rows(Item, []) == []


# =============================================================================
# Statements
# =============================================================================


class TestSelect:
    def test_bare(self) -> None:
        select = Select("products")
        assert select.sql == "SELECT * FROM products"
        assert select.params == ()

    def test_projection_filter_and_order(self) -> None:
        select = (
            Select("products")
            .columns(["id", "name"])
            .where("price > ? AND quantity < ?", 1, 10)
            .order_by("name DESC")
        )
        assert select.sql == (
            "SELECT id, name FROM products WHERE (price > ? AND quantity < ?) ORDER BY name DESC"
        )
        assert select.params == (1, 10)

    def test_multiple_wheres_are_anded(self) -> None:
        select = Select("products").where("a = ?", 1).where("b = ?", 2)
        assert select.sql == "SELECT * FROM products WHERE (a = ?) AND (b = ?)"
        assert select.params == (1, 2)

    def test_none_clauses_are_noops(self) -> None:
        select = Select("products").columns(None).where(None).order_by(None)
        assert select.sql == "SELECT * FROM products"

    def test_immutable(self) -> None:
        base = Select("products")
        base.where("id = ?", 1)
        assert base.sql == "SELECT * FROM products"

    def test_bad_column_raises(self) -> None:
        with pytest.raises(DataError, match="Invalid SQL identifier"):
            _ = Select("products").columns(["name; DROP TABLE products"]).sql


class TestWriteStatements:
    def test_insert(self) -> None:
        sql, params = insert_sql("products", {"name": "Widget", "price": 5})
        assert sql == "INSERT INTO products (name, price) VALUES (?, ?)"
        assert params == ("Widget", 5)

    def test_insert_empty_uses_defaults(self) -> None:
        assert insert_sql("products", {}) == ("INSERT INTO products DEFAULT VALUES", ())

    def test_update_with_filter(self) -> None:
        sql, params = update_sql("products", {"price": 7}, "id = ?", (3,))
        assert sql == "UPDATE products SET price = ? WHERE id = ?"
        assert params == (7, 3)

    def test_update_without_filter(self) -> None:
        sql, _ = update_sql("products", {"quantity": 0})
        assert sql == "UPDATE products SET quantity = ?"

    def test_update_empty_record_raises(self) -> None:
        with pytest.raises(DataError, match="no values"):
            update_sql("products", {})

    def test_delete(self) -> None:
        assert delete_sql("products", "id = ?", [2]) == ("DELETE FROM products WHERE id = ?", (2,))
        assert delete_sql("products") == ("DELETE FROM products", ())

    @pytest.mark.parametrize("name", ["products", "_p", "col_2"])
    def test_valid_identifiers(self, name: str) -> None:
        assert check_identifier(name) == name

    @pytest.mark.parametrize("name", ["", "2col", "a b", "a;b", "a-b"])
    def test_invalid_identifiers(self, name: str) -> None:
        with pytest.raises(DataError):
            check_identifier(name)


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    async def test_connect_disconnect(self, tmp_path) -> None:
        db = Database(f"sqlite:///{tmp_path / 'lifecycle.db'}")
        assert not db._initialized
        await db.connect()
        assert db._initialized
        await db.disconnect()
        assert not db._initialized

    async def test_context_manager(self, tmp_path) -> None:
        async with Database(f"sqlite:///{tmp_path / 'ctx.db'}") as db:
            assert db._initialized
            await db.execute("CREATE TABLE t (id INTEGER)")
        assert not db._initialized

    async def test_lazy_connect_on_first_query(self, tmp_path) -> None:
        db = Database(f"sqlite:///{tmp_path / 'lazy.db'}")
        await db.execute("CREATE TABLE t (id INTEGER)")
        assert db._initialized
        await db.disconnect()

    async def test_memory_database(self) -> None:
        async with Database("sqlite:///:memory:") as db:
            await db.execute("CREATE TABLE t (id INTEGER)")
            assert await db.fetch_val("SELECT COUNT(*) FROM t") == 0

    async def test_double_connect_and_disconnect_are_safe(self, tmp_path) -> None:
        db = Database(f"sqlite:///{tmp_path / 'double.db'}")
        await db.connect()
        await db.connect()
        await db.disconnect()
        await db.disconnect()


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    async def test_fetch_rows_keeps_column_order(self, seeded_db) -> None:
        rows = await seeded_db.fetch_rows("SELECT price, name FROM products ORDER BY id")
        assert list(rows[0]) == ["price", "name"]
        assert rows[0] == {"price": 5, "name": "Widget"}

    async def test_fetch_typed(self, seeded_db) -> None:
        items = await seeded_db.fetch(Item, "SELECT * FROM products ORDER BY id")
        assert [i.name for i in items] == ["Widget", "Gadget", "Sprocket"]

    async def test_fetch_one(self, seeded_db) -> None:
        item = await seeded_db.fetch_one(Item, "SELECT * FROM products WHERE id = ?", 2)
        assert item == Item(id=2, name="Gadget", price=12)

    async def test_fetch_one_returns_none(self, seeded_db) -> None:
        assert await seeded_db.fetch_one(Item, "SELECT * FROM products WHERE id = ?", 99) is None

    async def test_fetch_val(self, seeded_db) -> None:
        assert await seeded_db.fetch_val("SELECT COUNT(*) FROM products") == 3

    async def test_insert_returns_rowid(self, db) -> None:
        first = await db.insert("INSERT INTO products (name) VALUES (?)", "A")
        second = await db.insert("INSERT INTO products (name) VALUES (?)", "B")
        assert (first, second) == (1, 2)

    async def test_insert_constraint_violation(self, db) -> None:
        with pytest.raises(ConstraintError):
            await db.insert("INSERT INTO products (price) VALUES (?)", 5)

    async def test_execute_returns_rowcount(self, seeded_db) -> None:
        assert await seeded_db.execute("UPDATE products SET quantity = 1") == 3

    async def test_invalid_sql_raises_query_error(self, db) -> None:
        with pytest.raises(QueryError):
            await db.execute("INSERT INTO nonexistent (x) VALUES (?)", 1)

    async def test_oversized_int_param_raises_query_error(self, db) -> None:
        with pytest.raises(QueryError, match="too large"):
            await db.fetch_rows("SELECT * FROM products WHERE id = ?", 2**64)
        with pytest.raises(QueryError):
            await db.execute("DELETE FROM products WHERE id = ?", 2**64)
        with pytest.raises(QueryError):
            await db.insert("INSERT INTO products (name, price) VALUES (?, ?)", "A", 2**64)


class TestTransaction:
    async def test_commit(self, db) -> None:
        async with db.transaction():
            await db.insert("INSERT INTO products (name) VALUES (?)", "A")
            await db.insert("INSERT INTO products (name) VALUES (?)", "B")
        assert await db.fetch_val("SELECT COUNT(*) FROM products") == 2

    async def test_rollback(self, db) -> None:
        async def _insert_and_fail() -> None:
            async with db.transaction():
                await db.insert("INSERT INTO products (name) VALUES (?)", "Gone")
                msg = "deliberate"
                raise ValueError(msg)

        with pytest.raises(ValueError, match="deliberate"):
            await _insert_and_fail()
        assert await db.fetch_val("SELECT COUNT(*) FROM products") == 0

    async def test_nested_joins_outer(self, db) -> None:
        async with db.transaction():
            await db.insert("INSERT INTO products (name) VALUES (?)", "A")
            async with db.transaction():
                await db.insert("INSERT INTO products (name) VALUES (?)", "B")
        assert await db.fetch_val("SELECT COUNT(*) FROM products") == 2


class TestEcho:
    async def test_echo_prints_to_stderr(self, tmp_path, capsys) -> None:
        async with Database(f"sqlite:///{tmp_path / 'echo.db'}", echo=True) as db:
            await db.execute("CREATE TABLE t (id INTEGER)")
            await db.execute("INSERT INTO t (id) VALUES (?)", 42)

        err = capsys.readouterr().err
        assert "[inventory.data]" in err
        assert "CREATE TABLE" in err
        assert "params=(42,)" in err

    async def test_no_echo_by_default(self, db, capsys) -> None:
        await db.execute("DELETE FROM products")
        assert capsys.readouterr().err == ""


# =============================================================================
# Storage engine
# =============================================================================


class TestSQLiteStorage:
    async def test_insert_and_query(self, storage) -> None:
        row_id = await storage.insert_row("products", {"name": "Widget", "price": 5})
        rows = await storage.query_rows("products", None, "id = ?", (row_id,), None)
        assert rows == [
            {
                "id": row_id,
                "name": "Widget",
                "price": 5,
                "quantity": 0,
                "supplier_name": None,
                "supplier_phone": None,
            }
        ]

    async def test_insert_rejected_returns_minus_one(self, storage, caplog) -> None:
        with caplog.at_level("INFO", logger="inventory.data"):
            assert await storage.insert_row("products", {"price": 5}) == -1
        assert "rejected" in caplog.text

    async def test_insert_check_constraint_returns_minus_one(self, storage) -> None:
        assert await storage.insert_row("products", {"name": "Widget", "quantity": -1}) == -1

    async def test_insert_unknown_column_raises(self, storage) -> None:
        with pytest.raises(QueryError):
            await storage.insert_row("products", {"name": "Widget", "colour": "red"})

    async def test_query_projection_and_sort(self, seeded_db) -> None:
        storage = SQLiteStorage(seeded_db)
        rows = await storage.query_rows("products", ["name"], "price < ?", [10], "name ASC")
        assert rows == [{"name": "Sprocket"}, {"name": "Widget"}]

    async def test_update_rows(self, seeded_db) -> None:
        storage = SQLiteStorage(seeded_db)
        assert await storage.update_rows("products", {"quantity": 99}, "price > ?", [4]) == 2
        assert await seeded_db.fetch_val("SELECT SUM(quantity) FROM products") == 99 * 2 + 7

    async def test_delete_rows_without_filter_deletes_all(self, seeded_db) -> None:
        storage = SQLiteStorage(seeded_db)
        assert await storage.delete_rows("products", None, ()) == 3
        assert await storage.query_rows("products", None, None, (), None) == []

    async def test_bad_filter_raises_query_error(self, storage) -> None:
        with pytest.raises(QueryError):
            await storage.query_rows("products", None, "nope ==", (), None)

    @pytest.mark.parametrize("row_id", [2**63, 2**64, 10**30])
    async def test_oversized_id_matches_nothing(self, seeded_db, row_id: int) -> None:
        storage = SQLiteStorage(seeded_db)
        assert await storage.query_rows("products", None, "id = ?", (row_id,), None) == []
        assert await storage.update_rows("products", {"quantity": 1}, "id = ?", (row_id,)) == 0
        assert await storage.delete_rows("products", "id = ?", (row_id,)) == 0
        assert await seeded_db.fetch_val("SELECT COUNT(*) FROM products") == 3

    async def test_largest_sqlite_id_is_bound_as_integer(self, storage) -> None:
        await storage.db.insert("INSERT INTO products (id, name) VALUES (?, ?)", 2**63 - 1, "Max")
        rows = await storage.query_rows("products", ["name"], "id = ?", (2**63 - 1,), None)
        assert rows == [{"name": "Max"}]

    async def test_oversized_filter_value_compares_numerically(self, seeded_db) -> None:
        storage = SQLiteStorage(seeded_db)
        rows = await storage.query_rows("products", ["name"], "price < ?", (2**64,), "name")
        assert [r["name"] for r in rows] == ["Gadget", "Sprocket", "Widget"]

    async def test_oversized_record_value_raises_query_error(self, seeded_db) -> None:
        storage = SQLiteStorage(seeded_db)
        with pytest.raises(QueryError):
            await storage.update_rows("products", {"price": 2**64}, "id = ?", (1,))


# =============================================================================
# Migrations
# =============================================================================


class TestMigrations:
    def test_packaged_migrations(self) -> None:
        names = [m.name for m in discover_migrations(MIGRATIONS_DIR)]
        assert names[0] == "001_create_products"

    async def test_packaged_schema(self, db) -> None:
        rows = await db.fetch_rows("PRAGMA table_info(products)")
        assert tuple(r["name"] for r in rows) == ALL_COLUMNS

    async def test_applies_files_in_order(self, tmp_path) -> None:
        migrations_dir = tmp_path / "migrations"
        migrations_dir.mkdir()
        (migrations_dir / "002_add_sku.sql").write_text("ALTER TABLE t ADD COLUMN sku TEXT")
        (migrations_dir / "001_create_t.sql").write_text("CREATE TABLE t (id INTEGER PRIMARY KEY)")

        async with Database(f"sqlite:///{tmp_path / 'm.db'}") as db:
            result = await migrate(db, migrations_dir)
            assert result.applied == ["001_create_t", "002_add_sku"]
            assert result.total_available == 2
            await db.execute("INSERT INTO t (sku) VALUES (?)", "A-1")

    async def test_idempotent(self, tmp_path) -> None:
        async with Database(f"sqlite:///{tmp_path / 'idem.db'}") as db:
            first = await migrate(db)
            second = await migrate(db)
        assert first.applied == ["001_create_products"]
        assert second.applied == []
        assert second.already_applied == 1
        assert "up to date" in second.summary

    async def test_missing_directory_raises(self, db, tmp_path) -> None:
        with pytest.raises(MigrationError, match="does not exist"):
            await migrate(db, tmp_path / "nonexistent")

    async def test_empty_file_raises(self, db, tmp_path) -> None:
        (tmp_path / "001_empty.sql").write_text("")
        with pytest.raises(MigrationError, match="Empty migration"):
            await migrate(db, tmp_path)

    async def test_bad_filename_raises(self, db, tmp_path) -> None:
        (tmp_path / "create.sql").write_text("SELECT 1")
        with pytest.raises(MigrationError, match="Invalid migration filename"):
            await migrate(db, tmp_path)

    async def test_duplicate_versions_raise(self, db, tmp_path) -> None:
        (tmp_path / "001_a.sql").write_text("SELECT 1")
        (tmp_path / "001_b.sql").write_text("SELECT 1")
        with pytest.raises(MigrationError, match="Duplicate"):
            await migrate(db, tmp_path)

    async def test_failing_migration_raises(self, db, tmp_path) -> None:
        (tmp_path / "001_bad.sql").write_text("CREATE TABLE")
        with pytest.raises(MigrationError, match="001_bad failed"):
            await migrate(db, tmp_path)

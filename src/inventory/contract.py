"""Names shared between the provider and its callers.

The authority, collection path, table and column names, and the two MIME
types ``get_type`` hands out. The schema itself lives in the packaged
migrations; these constants only name it.
"""

from dataclasses import dataclass

SCHEME = "content"
CONTENT_AUTHORITY = "com.example.android.inventoryapp"
PATH_PRODUCTS = "products"

TABLE_NAME = "products"

# Column names
COLUMN_ID = "id"
COLUMN_NAME = "name"
COLUMN_PRICE = "price"
COLUMN_QUANTITY = "quantity"
COLUMN_SUPPLIER_NAME = "supplier_name"
COLUMN_SUPPLIER_PHONE = "supplier_phone"

ALL_COLUMNS: tuple[str, ...] = (
    COLUMN_ID,
    COLUMN_NAME,
    COLUMN_PRICE,
    COLUMN_QUANTITY,
    COLUMN_SUPPLIER_NAME,
    COLUMN_SUPPLIER_PHONE,
)

BASE_CONTENT_URI = f"{SCHEME}://{CONTENT_AUTHORITY}"
CONTENT_URI = f"{BASE_CONTENT_URI}/{PATH_PRODUCTS}"


def list_type(authority: str, path: str) -> str:
    """MIME type for a collection locator under *authority*/*path*."""
    return f"vnd.android.cursor.dir/{authority}/{path}"


def item_type(authority: str, path: str) -> str:
    """MIME type for a single-item locator under *authority*/*path*."""
    return f"vnd.android.cursor.item/{authority}/{path}"


CONTENT_LIST_TYPE = list_type(CONTENT_AUTHORITY, PATH_PRODUCTS)
CONTENT_ITEM_TYPE = item_type(CONTENT_AUTHORITY, PATH_PRODUCTS)


@dataclass(frozen=True, slots=True)
class Product:
    """One row of the ``products`` table.

    Use with ``RecordStream.as_type(Product)`` for typed access to query
    results. Plain records stay ``dict`` so projections can select any
    subset of columns.
    """

    id: int
    name: str
    price: int = 0
    quantity: int = 0
    supplier_name: str | None = None
    supplier_phone: str | None = None

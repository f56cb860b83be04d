"""inventory — a locator-routed CRUD provider over a single products table.

Query, insert, update and delete rows by resource locator, and get told
when data under a locator changes.

Basic usage::

    from inventory import InventoryConfig, open_provider

    async with open_provider(InventoryConfig(database_url="sqlite:///inventory.db")) as provider:
        item = await provider.insert(provider.content_uri, {"name": "Widget", "price": 5})
        for record in await provider.query(item):
            print(record)

Routing only::

    from inventory import RouteKind, classify

    classify("content://com.example.android.inventoryapp/products/7")
    # RouteKind.SINGLE_ITEM
"""

__version__ = "0.1.0"
__all__ = [
    "Change",
    "ChangeNotifier",
    "InsertError",
    "InventoryConfig",
    "InventoryError",
    "InventoryProvider",
    "Locator",
    "Product",
    "RecordStream",
    "RouteKind",
    "RoutingError",
    "Subscription",
    "classify",
    "open_provider",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import inventory`` fast while providing a flat top-level API.
    """
    if name in ("InventoryProvider", "RecordStream", "open_provider"):
        from inventory import provider as _provider

        return getattr(_provider, name)

    if name in ("Change", "ChangeNotifier", "Subscription"):
        from inventory import notify as _notify

        return getattr(_notify, name)

    if name == "InventoryConfig":
        from inventory.config import InventoryConfig

        return InventoryConfig

    if name == "Locator":
        from inventory.locator import Locator

        return Locator

    if name == "Product":
        from inventory.contract import Product

        return Product

    if name in ("RouteKind", "classify"):
        from inventory import routing as _routing

        return getattr(_routing, name)

    if name in ("InsertError", "InventoryError", "RoutingError"):
        from inventory import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)

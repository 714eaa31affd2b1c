"""Exception hierarchy raised by the Frigo core."""

from __future__ import annotations


class FrigoError(Exception):
    """Base class for all Frigo exceptions."""


class ItemNotFoundError(FrigoError, LookupError):
    """No inventory item carries the requested id."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Inventory item {item_id} not found")


class InsufficientStockError(FrigoError, ValueError):
    """A decrement asked for more units than the item holds."""

    def __init__(self, item_id: str, requested: int, available: int) -> None:
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot remove {requested} unit(s) from item {item_id}: only {available} in stock"
        )


class IdentityConflictError(FrigoError, ValueError):
    """An update would give an item the identity of another item."""

    def __init__(self, item_id: str, other_id: str, identity: str) -> None:
        self.item_id = item_id
        self.other_id = other_id
        self.identity = identity
        super().__init__(
            f"Item {item_id} cannot take identity {identity!r}: already used by item {other_id}"
        )


class InventoryPersistenceError(FrigoError):
    """The inventory collection could not be written to storage."""


class ImportDataError(FrigoError, ValueError):
    """An import payload could not be turned into inventory items."""


class ImportParseError(ImportDataError):
    """The payload is not valid for the requested format."""


class EmptyImportError(ImportDataError):
    """The payload parsed but contained no usable record."""


class ProductLookupError(FrigoError):
    """The product lookup collaborator failed."""


class ProductNotFoundError(ProductLookupError):
    """The barcode is unknown to the product database."""


class InvalidProductDataError(ProductLookupError):
    """The product database answered with an unusable payload."""


__all__ = [
    "FrigoError",
    "ItemNotFoundError",
    "InsufficientStockError",
    "IdentityConflictError",
    "InventoryPersistenceError",
    "ImportDataError",
    "ImportParseError",
    "EmptyImportError",
    "ProductLookupError",
    "ProductNotFoundError",
    "InvalidProductDataError",
]

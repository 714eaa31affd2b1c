"""Authoritative inventory collection persisted as one blob in a key-value store."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Callable, Iterable, Iterator, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from frigo import metrics
from frigo.config import Settings, get_settings
from frigo.db.kv import KeyValueStore, SqlKeyValueStore
from frigo.errors import IdentityConflictError, InsufficientStockError, ItemNotFoundError
from frigo.inventory.expiry import SOON_DAYS, ExpiryBucket, classify
from frigo.inventory.identity import Category, identity_key, normalize_category
from frigo.inventory.ledger import (
    EXIT_HISTORY_LIMIT,
    PRICE_HISTORY_LIMIT,
    append_capped,
    price_summary,
    price_variation,
    should_record_price,
)
from frigo.models.inventory import (
    ExitEntry,
    InventoryItem,
    ItemPatch,
    PriceHistoryEntry,
    PriceSummary,
    PriceVariation,
)
from frigo.models.product import Product

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "nutriscan_frigo"
STORAGE_VERSION = 1

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_item_id() -> str:
    return uuid4().hex


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class InventorySnapshot:
    """Ordered id -> item mapping with an identity-key index for duplicate detection."""

    def __init__(self, items: Iterable[InventoryItem] = ()) -> None:
        self._items: dict[str, InventoryItem] = {}
        self._by_identity: dict[str, str] = {}
        for item in items:
            self.put(item)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[InventoryItem]:
        return iter(list(self._items.values()))

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def items(self) -> List[InventoryItem]:
        return list(self._items.values())

    def get(self, item_id: str) -> Optional[InventoryItem]:
        return self._items.get(item_id)

    def find_by_identity(self, key: str) -> Optional[InventoryItem]:
        item_id = self._by_identity.get(key)
        return self._items.get(item_id) if item_id is not None else None

    def put(self, item: InventoryItem) -> None:
        """Insert or replace ``item``; raises if another item already owns its identity."""

        key = item.identity
        owner = self._by_identity.get(key)
        if owner is not None and owner != item.id:
            raise IdentityConflictError(item.id, owner, key)

        previous = self._items.get(item.id)
        if previous is not None and previous.identity != key:
            self._by_identity.pop(previous.identity, None)
        self._items[item.id] = item
        self._by_identity[key] = item.id

    def remove(self, item_id: str) -> Optional[InventoryItem]:
        item = self._items.pop(item_id, None)
        if item is not None:
            self._by_identity.pop(item.identity, None)
        return item

    def clear(self) -> None:
        self._items.clear()
        self._by_identity.clear()


class InventoryStore:
    """Create/read/update/delete over the persisted inventory.

    Every call reads the whole collection, applies its change and writes the
    whole collection back. Storage failures are logged and reported through
    ``False`` / empty results; invalid requests raise.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        price_history_limit: int = PRICE_HISTORY_LIMIT,
        exit_history_limit: int = EXIT_HISTORY_LIMIT,
        soon_days: int = SOON_DAYS,
        clock: Clock = utc_now,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self._kv = kv
        self._storage_key = storage_key
        self._price_history_limit = price_history_limit
        self._exit_history_limit = exit_history_limit
        self._soon_days = soon_days
        self._clock = clock
        self._tz = tz

    @property
    def tz(self) -> Optional[tzinfo]:
        """Timezone used for calendar days; None means the host's local zone."""
        return self._tz

    @property
    def soon_days(self) -> int:
        return self._soon_days

    @property
    def price_history_limit(self) -> int:
        return self._price_history_limit

    @property
    def exit_history_limit(self) -> int:
        return self._exit_history_limit

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self._clock().astimezone(self._tz).date()

    # -- persistence -----------------------------------------------------

    def _read_items(self) -> List[InventoryItem]:
        try:
            raw = self._kv.get(self._storage_key)
        except Exception:
            logger.exception("Unable to read inventory from storage key=%s", self._storage_key)
            return []
        if not raw:
            return []

        try:
            payload = json.loads(raw)
        except ValueError:
            logger.error("Stored inventory is not valid JSON; treating it as empty")
            return []

        if isinstance(payload, dict):
            records = payload.get("items")
            version = payload.get("version")
            if version != STORAGE_VERSION:
                logger.warning("Unexpected inventory storage version %r", version)
        else:
            records = payload
        if not isinstance(records, list):
            logger.error("Stored inventory has no item list; treating it as empty")
            return []

        items: List[InventoryItem] = []
        for record in records:
            try:
                items.append(InventoryItem.model_validate(record))
            except ValidationError as exc:
                logger.warning("Dropping malformed stored item: %s", exc.errors())
        return items

    def snapshot(self) -> InventorySnapshot:
        """Load the current collection into a mutable snapshot."""

        snapshot = InventorySnapshot()
        for item in self._read_items():
            duplicate = snapshot.find_by_identity(item.identity)
            if duplicate is None:
                snapshot.put(item)
                continue
            logger.warning(
                "Folding duplicate stored item %s into %s (identity %s)",
                item.id,
                duplicate.id,
                item.identity,
            )
            snapshot.put(duplicate.model_copy(update={"quantity": duplicate.quantity + item.quantity}))
        return snapshot

    def commit(self, snapshot: InventorySnapshot) -> bool:
        """Write ``snapshot`` back as the whole collection."""

        return self._write("commit", snapshot)

    def _write(self, operation: str, snapshot: InventorySnapshot) -> bool:
        document = {
            "version": STORAGE_VERSION,
            "items": [item.model_dump(mode="json") for item in snapshot],
        }
        try:
            saved = self._kv.set(self._storage_key, json.dumps(document, ensure_ascii=False))
        except Exception:
            logger.exception("Inventory %s failed while writing to storage", operation)
            saved = False
        if not saved:
            logger.error("Inventory %s could not be persisted", operation)
        metrics.STORE_OPERATIONS.labels(operation=operation, result="ok" if saved else "error").inc()
        return saved

    # -- reads -----------------------------------------------------------

    def get_all(self) -> List[InventoryItem]:
        return self.snapshot().items()

    def get(self, item_id: str) -> Optional[InventoryItem]:
        return self.snapshot().get(item_id)

    def get_count(self) -> int:
        return len(self.get_all())

    def get_by_category(self, category: Union[Category, str]) -> List[InventoryItem]:
        wanted = normalize_category(category)
        return [item for item in self.get_all() if item.category is wanted]

    def get_categories(self) -> set[Category]:
        return {item.category for item in self.get_all()}

    def get_by_product(self, product: Product) -> Optional[InventoryItem]:
        return self.snapshot().find_by_identity(identity_key(product))

    def is_in_frigo(self, product: Product) -> bool:
        return self.get_by_product(product) is not None

    def _in_bucket(self, bucket: ExpiryBucket, today: Optional[date]) -> List[InventoryItem]:
        reference = today or self.today()
        return [
            item
            for item in self.get_all()
            if classify(item, reference, soon_days=self._soon_days).bucket is bucket
        ]

    def get_expired(self, today: Optional[date] = None) -> List[InventoryItem]:
        return self._in_bucket(ExpiryBucket.EXPIRED, today)

    def get_expiring_soon(self, today: Optional[date] = None) -> List[InventoryItem]:
        return self._in_bucket(ExpiryBucket.SOON, today)

    def price_variation(self, item_id: str) -> Optional[PriceVariation]:
        item = self.get(item_id)
        return price_variation(item.price_history) if item is not None else None

    def price_summary(self, item_id: str) -> Optional[PriceSummary]:
        item = self.get(item_id)
        return price_summary(item.price_history) if item is not None else None

    def latest_exit(self, item_id: str) -> Optional[ExitEntry]:
        item = self.get(item_id)
        if item is None or not item.exit_history:
            return None
        return item.exit_history[-1]

    # -- writes ----------------------------------------------------------

    def apply_price(
        self,
        item: InventoryItem,
        price: Optional[float],
        store: Optional[str],
        when: Optional[datetime] = None,
    ) -> InventoryItem:
        """Set the current price/store, appending a ledger entry when the pair changed."""

        history = item.price_history
        if should_record_price(item.current_price, item.current_store, price, store):
            entry = PriceHistoryEntry(price=price, store=store, date=when or self.now())
            history = append_capped(history, entry, self._price_history_limit)
        return item.model_copy(
            update={"current_price": price, "current_store": store, "price_history": history}
        )

    def add(
        self,
        product: Product,
        quantity: int = 1,
        category: Union[Category, str, None] = None,
        expiry_date: Optional[date] = None,
        price: Optional[float] = None,
        store: Optional[str] = None,
    ) -> bool:
        """Add ``quantity`` units of ``product``, merging into an item of the same identity."""

        if quantity < 1:
            raise ValueError("quantity must be at least 1")
        if price is not None and price < 0:
            raise ValueError("price cannot be negative")

        snapshot = self.snapshot()
        now = self.now()
        owned = product.model_copy(deep=True)
        resolved_category = normalize_category(category)
        existing = snapshot.find_by_identity(identity_key(owned))

        if existing is not None:
            item = existing.model_copy(
                update={
                    "product": owned,
                    "quantity": existing.quantity + quantity,
                    "category": resolved_category,
                    "expiry_date": expiry_date,
                }
            )
            logger.debug(
                "Merging %s unit(s) into item %s", quantity, existing.id, extra={"item_id": existing.id}
            )
        else:
            item = InventoryItem(
                id=new_item_id(),
                product=owned,
                added_at=now,
                quantity=quantity,
                category=resolved_category,
                expiry_date=expiry_date,
            )
            logger.debug(
                "Creating item %s for %s", item.id, item.identity, extra={"item_id": item.id}
            )

        snapshot.put(self.apply_price(item, price, _clean_text(store), now))
        return self._write("add", snapshot)

    def remove(self, item_id: str) -> bool:
        snapshot = self.snapshot()
        if snapshot.remove(item_id) is None:
            logger.debug("Remove of unknown item %s ignored", item_id, extra={"item_id": item_id})
            return True
        return self._write("remove", snapshot)

    def update(self, item_id: str, patch: Union[ItemPatch, Mapping[str, object]]) -> bool:
        """Apply a partial update; price/store changes are recorded in the price ledger first."""

        if not isinstance(patch, ItemPatch):
            patch = ItemPatch.model_validate(patch)

        snapshot = self.snapshot()
        item = snapshot.get(item_id)
        if item is None:
            logger.info("Update of unknown item %s ignored", item_id, extra={"item_id": item_id})
            return False

        changes = {name: getattr(patch, name) for name in patch.model_fields_set}
        if patch.touches_price():
            price = changes.pop("current_price", item.current_price)
            store = changes.pop("current_store", item.current_store)
            item = self.apply_price(item, price, store)

        # product and quantity cannot be cleared
        for name in ("product", "quantity"):
            if name in changes and changes[name] is None:
                del changes[name]
        if "product" in changes:
            changes["product"] = changes["product"].model_copy(deep=True)
        if "category" in changes and changes["category"] is None:
            changes["category"] = Category.OTHER

        snapshot.put(item.model_copy(update=changes))
        return self._write("update", snapshot)

    def increment_quantity(self, item_id: str, amount: int = 1) -> bool:
        snapshot = self.snapshot()
        item = snapshot.get(item_id)
        if item is None:
            return False
        target = item.quantity + amount
        if target < 0:
            raise InsufficientStockError(item_id, -amount, item.quantity)
        snapshot.put(item.model_copy(update={"quantity": target}))
        return self._write("increment_quantity", snapshot)

    def update_quantity(self, item_id: str, quantity: int) -> bool:
        """Set the quantity, never going below one unit."""

        return self._set_quantity("update_quantity", item_id, max(1, quantity))

    def set_quantity(self, item_id: str, quantity: int) -> bool:
        """Set the quantity exactly; zero keeps the item tracked with no stock."""

        if quantity < 0:
            raise ValueError("quantity cannot be negative")
        return self._set_quantity("set_quantity", item_id, quantity)

    def _set_quantity(self, operation: str, item_id: str, quantity: int) -> bool:
        snapshot = self.snapshot()
        item = snapshot.get(item_id)
        if item is None:
            return False
        snapshot.put(item.model_copy(update={"quantity": quantity}))
        return self._write(operation, snapshot)

    def clear(self) -> bool:
        return self._write("clear", InventorySnapshot())

    def record_exit(
        self,
        item_id: str,
        quantity: int,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        exit_date: Optional[date] = None,
    ) -> Optional[ExitEntry]:
        """Take ``quantity`` units out of stock and log the exit.

        Raises before touching the item when the quantity is not positive, the
        item is unknown or the stock is insufficient. Returns ``None`` if the
        change could not be persisted.
        """

        if quantity < 1:
            raise ValueError("exit quantity must be at least 1")

        snapshot = self.snapshot()
        item = snapshot.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        if quantity > item.quantity:
            raise InsufficientStockError(item_id, quantity, item.quantity)

        entry = ExitEntry(
            quantity=quantity,
            reason=_clean_text(reason),
            notes=_clean_text(notes),
            date=exit_date or self.today(),
        )
        snapshot.put(
            item.model_copy(
                update={
                    "quantity": item.quantity - quantity,
                    "exit_history": append_capped(
                        item.exit_history, entry, self._exit_history_limit
                    ),
                }
            )
        )
        if not self._write("record_exit", snapshot):
            return None
        return entry


def build_inventory_store(settings: Optional[Settings] = None) -> InventoryStore:
    """Return a store backed by the configured SQLite database."""

    settings = settings or get_settings()
    return InventoryStore(
        SqlKeyValueStore(settings.database_path),
        storage_key=settings.storage_key,
        price_history_limit=settings.price_history_limit,
        exit_history_limit=settings.exit_history_limit,
        soon_days=settings.expiry_soon_days,
    )


__all__ = [
    "DEFAULT_STORAGE_KEY",
    "InventorySnapshot",
    "InventoryStore",
    "STORAGE_VERSION",
    "build_inventory_store",
    "new_item_id",
    "utc_now",
]

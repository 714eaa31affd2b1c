"""Import/export of the inventory and reconciliation of external records."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from frigo import metrics
from frigo.errors import EmptyImportError, ImportParseError, InventoryPersistenceError
from frigo.inventory.identity import Category, identity_key
from frigo.inventory.ledger import should_record_price
from frigo.inventory.store import InventorySnapshot, InventoryStore, new_item_id, utc_now
from frigo.models.inventory import ExitEntry, InventoryItem, PriceHistoryEntry
from frigo.models.product import Product
from frigo.transfer.codecs import (
    decode_csv,
    decode_json,
    encode_csv,
    encode_display_csv,
    encode_json,
    encode_shopping_list,
)
from frigo.transfer.sanitize import ImportCandidate, SanitizeResult, SkipReason, sanitize_record

logger = logging.getLogger(__name__)


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    DISPLAY_CSV = "display-csv"
    SHOPPING_LIST = "shopping-list"


_SUFFIX_FORMATS = {
    ".json": ExportFormat.JSON,
    ".csv": ExportFormat.CSV,
    ".txt": ExportFormat.SHOPPING_LIST,
}


class ImportSummary(BaseModel):
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    skip_reasons: Dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def imported(self) -> int:
        return self.created + self.updated


def format_for_path(path: Union[str, Path]) -> ExportFormat:
    suffix = Path(path).suffix.lower()
    try:
        return _SUFFIX_FORMATS[suffix]
    except KeyError:
        raise ValueError(f"Cannot infer a transfer format from suffix {suffix!r}") from None


# -- export --------------------------------------------------------------


def export_data(
    source: Union[InventoryStore, Iterable[InventoryItem]],
    fmt: Union[ExportFormat, str] = ExportFormat.JSON,
    *,
    exported_at: Optional[datetime] = None,
) -> str:
    """Serialize the inventory (or the given items) in ``fmt``."""

    fmt = ExportFormat(fmt)
    if isinstance(source, InventoryStore):
        items = source.get_all()
        exported_at = exported_at or source.now()
    else:
        items = list(source)

    if fmt is ExportFormat.JSON:
        return encode_json(items, exported_at or utc_now())
    if fmt is ExportFormat.CSV:
        return encode_csv(items)
    if fmt is ExportFormat.DISPLAY_CSV:
        return encode_display_csv(items)
    return encode_shopping_list(items)


def export_to_path(
    store: InventoryStore,
    path: Union[str, Path],
    fmt: Union[ExportFormat, str, None] = None,
) -> int:
    """Write an export to ``path``; returns the number of exported items."""

    target = Path(path)
    resolved = ExportFormat(fmt) if fmt is not None else format_for_path(target)
    items = store.get_all()
    payload = export_data(items, resolved, exported_at=store.now())
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(payload, encoding="utf-8")
    logger.info("Exported %s item(s) to %s as %s", len(items), target, resolved.value)
    return len(items)


# -- import --------------------------------------------------------------


def decode_payload(payload: str, fmt: Union[ExportFormat, str]) -> List[object]:
    fmt = ExportFormat(fmt)
    if fmt is ExportFormat.JSON:
        return decode_json(payload)
    if fmt in (ExportFormat.CSV, ExportFormat.DISPLAY_CSV):
        return list(decode_csv(payload))
    raise ImportParseError(f"Format {fmt.value!r} cannot be imported")


def _merge_product(current: Product, incoming: Product) -> Product:
    """Incoming non-empty fields win; empty ones keep what is already known."""

    updates = {
        name: value
        for name, value in incoming.model_dump().items()
        if value not in ("", {}, None)
    }
    return current.model_copy(update=updates)


def _merge_price_history(
    current: Sequence[PriceHistoryEntry],
    incoming: Sequence[PriceHistoryEntry],
    limit: int,
) -> List[PriceHistoryEntry]:
    seen = {(entry.price, entry.store, entry.date) for entry in current}
    merged = list(current)
    for entry in incoming:
        key = (entry.price, entry.store, entry.date)
        if key not in seen:
            seen.add(key)
            merged.append(entry)
    return merged[-limit:] if limit > 0 else []


def _merge_exit_history(
    current: Sequence[ExitEntry],
    incoming: Sequence[ExitEntry],
    limit: int,
) -> List[ExitEntry]:
    seen = {(entry.quantity, entry.reason, entry.notes, entry.date) for entry in current}
    merged = list(current)
    for entry in incoming:
        key = (entry.quantity, entry.reason, entry.notes, entry.date)
        if key not in seen:
            seen.add(key)
            merged.append(entry)
    return merged[-limit:] if limit > 0 else []


def _settle_price(
    store: InventoryStore,
    item: InventoryItem,
    history: List[PriceHistoryEntry],
    price: Optional[float],
    shop: Optional[str],
    when: Optional[datetime] = None,
) -> InventoryItem:
    """Apply the price ledger rule unless the imported history already ends on this pair."""

    latest = history[-1] if history else None
    already_logged = latest is not None and latest.price == price and latest.store == shop
    if not already_logged and should_record_price(item.current_price, item.current_store, price, shop):
        entry = PriceHistoryEntry(price=price, store=shop, date=when or store.now())
        history = _merge_price_history(history, [entry], store.price_history_limit)
    return item.model_copy(
        update={"current_price": price, "current_store": shop, "price_history": history}
    )


def _merge_candidate(
    store: InventoryStore, existing: InventoryItem, candidate: ImportCandidate
) -> InventoryItem:
    changes: Dict[str, object] = {
        "product": _merge_product(existing.product, candidate.product),
        "quantity": existing.quantity + candidate.quantity,
        "exit_history": _merge_exit_history(
            existing.exit_history, candidate.exit_history, store.exit_history_limit
        ),
    }
    if candidate.category is not None:
        changes["category"] = candidate.category
    if candidate.expiry_date is not None:
        changes["expiry_date"] = candidate.expiry_date
    item = existing.model_copy(update=changes)

    history = _merge_price_history(
        existing.price_history, candidate.price_history, store.price_history_limit
    )
    price = candidate.price if candidate.price is not None else existing.current_price
    shop = candidate.store if candidate.store is not None else existing.current_store
    return _settle_price(store, item, history, price, shop, candidate.priced_at)


def _create_from_candidate(
    store: InventoryStore, snapshot: InventorySnapshot, candidate: ImportCandidate
) -> InventoryItem:
    item_id = candidate.item_id
    if item_id is None or item_id in snapshot:
        item_id = new_item_id()
    item = InventoryItem(
        id=item_id,
        product=candidate.product,
        added_at=candidate.added_at or store.now(),
        quantity=candidate.quantity,
        category=candidate.category or Category.OTHER,
        expiry_date=candidate.expiry_date,
        exit_history=_merge_exit_history([], candidate.exit_history, store.exit_history_limit),
    )
    history = _merge_price_history([], candidate.price_history, store.price_history_limit)
    return _settle_price(
        store, item, history, candidate.price, candidate.store, candidate.priced_at
    )


def reconcile(
    store: InventoryStore,
    records: Iterable[SanitizeResult],
    *,
    merge: bool = True,
) -> ImportSummary:
    """Fold sanitized records into the inventory with a single write.

    With ``merge`` the records are applied on top of the current collection,
    otherwise they replace it. Records sharing an identity with an item are
    merged into it, the others are inserted.
    """

    snapshot = store.snapshot() if merge else InventorySnapshot()
    total = created = updated = 0
    reasons: Counter[str] = Counter()

    for record in records:
        total += 1
        if isinstance(record, SkipReason):
            logger.debug("Skipping record #%s: %s", total, record.value)
            reasons[record.value] += 1
            continue
        existing = snapshot.find_by_identity(identity_key(record.product))
        if existing is not None:
            snapshot.put(_merge_candidate(store, existing, record))
            updated += 1
        else:
            snapshot.put(_create_from_candidate(store, snapshot, record))
            created += 1

    skipped = sum(reasons.values())
    metrics.IMPORT_RECORDS.labels(result="created").inc(created)
    metrics.IMPORT_RECORDS.labels(result="updated").inc(updated)
    metrics.IMPORT_RECORDS.labels(result="skipped").inc(skipped)
    if skipped:
        logger.warning("Skipped %s of %s record(s): %s", skipped, total, dict(reasons))

    if created + updated == 0:
        raise EmptyImportError(f"No usable record among {total} record(s)")
    if not store.commit(snapshot):
        raise InventoryPersistenceError("Imported items could not be saved")

    summary = ImportSummary(
        total=total,
        created=created,
        updated=updated,
        skipped=skipped,
        skip_reasons=dict(reasons),
    )
    logger.info(
        "Import finished created=%s updated=%s skipped=%s merge=%s",
        created,
        updated,
        skipped,
        merge,
    )
    return summary


def import_data(
    store: InventoryStore,
    payload: str,
    fmt: Union[ExportFormat, str] = ExportFormat.JSON,
    *,
    merge: bool = True,
) -> ImportSummary:
    """Parse ``payload``, sanitize each record and reconcile them into ``store``."""

    records = decode_payload(payload, fmt)
    sanitized = (
        sanitize_record(
            raw,
            price_history_limit=store.price_history_limit,
            exit_history_limit=store.exit_history_limit,
        )
        for raw in records
    )
    return reconcile(store, sanitized, merge=merge)


def import_from_path(
    store: InventoryStore,
    path: Union[str, Path],
    fmt: Union[ExportFormat, str, None] = None,
    *,
    merge: bool = True,
) -> ImportSummary:
    source = Path(path)
    resolved = ExportFormat(fmt) if fmt is not None else format_for_path(source)
    payload = source.read_text(encoding="utf-8")
    logger.info("Importing %s as %s", source, resolved.value)
    return import_data(store, payload, resolved, merge=merge)


__all__ = [
    "ExportFormat",
    "ImportSummary",
    "decode_payload",
    "export_data",
    "export_to_path",
    "format_for_path",
    "import_data",
    "import_from_path",
    "reconcile",
]

"""Turn loosely shaped external records into validated import candidates."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from frigo.inventory.identity import Category, normalize_category
from frigo.inventory.ledger import EXIT_HISTORY_LIMIT, PRICE_HISTORY_LIMIT
from frigo.models.inventory import ExitEntry, PriceHistoryEntry
from frigo.models.product import Product, clean_nutrients

logger = logging.getLogger(__name__)

_DAY_FIRST_FORMATS = ("%d/%m/%Y", "%d/%m/%y", "%d-%m-%Y", "%d.%m.%Y")


class SkipReason(str, Enum):
    NOT_A_RECORD = "not_a_record"
    MISSING_NAME = "missing_name"
    MISSING_BRAND = "missing_brand"
    INVALID_PRODUCT = "invalid_product"


@dataclass
class ImportCandidate:
    """Sanitized record, ready to be merged into or inserted in the inventory."""

    product: Product
    quantity: int = 1
    category: Optional[Category] = None
    expiry_date: Optional[date] = None
    price: Optional[float] = None
    store: Optional[str] = None
    added_at: Optional[datetime] = None
    item_id: Optional[str] = None
    priced_at: Optional[datetime] = None
    price_history: List[PriceHistoryEntry] = field(default_factory=list)
    exit_history: List[ExitEntry] = field(default_factory=list)


SanitizeResult = Union[ImportCandidate, SkipReason]


def _first(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def parse_number(value: Any) -> Optional[float]:
    """Parse ints, floats and strings such as ``"2,49"`` or ``"2.49 €"``."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.replace("€", "").replace("\u00a0", "").replace(" ", "").replace(",", ".")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_price(value: Any) -> Optional[float]:
    number = parse_number(value)
    if number is None or number < 0:
        return None
    return number


def parse_quantity(value: Any) -> int:
    """Stock count, defaulting and clamping to at least one unit."""

    number = parse_number(value)
    if number is None:
        return 1
    return max(1, int(number))


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
            for fmt in _DAY_FIRST_FORMATS:
                try:
                    parsed = datetime.strptime(raw, fmt)
                    break
                except ValueError:
                    continue
            if parsed is None:
                return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    parsed = parse_timestamp(value)
    return parsed.date() if parsed is not None else None


def sanitize_price_history(raw: Any, limit: int = PRICE_HISTORY_LIMIT) -> List[PriceHistoryEntry]:
    """Keep the valid entries (numeric price, store, parseable date), newest ``limit`` ones."""

    if not isinstance(raw, list):
        return []
    entries: List[PriceHistoryEntry] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        price = parse_price(entry.get("price"))
        store = _text(entry.get("store"))
        when = parse_timestamp(entry.get("date"))
        if price is None or store is None or when is None:
            continue
        entries.append(PriceHistoryEntry(price=price, store=store, date=when))
    return entries[-limit:] if limit > 0 else []


def sanitize_exit_history(raw: Any, limit: int = EXIT_HISTORY_LIMIT) -> List[ExitEntry]:
    if not isinstance(raw, list):
        return []
    entries: List[ExitEntry] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        quantity = parse_number(entry.get("quantity"))
        when = parse_date(entry.get("date"))
        if quantity is None or quantity < 1 or quantity != int(quantity) or when is None:
            continue
        entries.append(
            ExitEntry(
                quantity=int(quantity),
                reason=_text(entry.get("reason")),
                notes=_text(entry.get("notes")),
                date=when,
            )
        )
    return entries[-limit:] if limit > 0 else []


def _product_fields(raw: Mapping[str, Any]) -> dict[str, Any]:
    nested = raw.get("product")
    if isinstance(nested, Mapping):
        source = nested
        # inside a product object, "quantity" is the packaging label (e.g. "500 g")
        label = _first(source, "quantity_label", "quantityLabel", "quantity")
    else:
        source = raw
        label = _first(source, "quantity_label", "quantityLabel")
    return {
        "name": _text(_first(source, "name", "product_name", "productName")),
        "brand": _text(_first(source, "brand", "brands")),
        "image_url": _text(_first(source, "image_url", "imageUrl")) or "",
        "ingredients_text": _text(
            _first(
                source,
                "ingredients_text",
                "ingredientsText",
                "ingredients_text_with_allergens",
            )
        )
        or "",
        "nutrients": clean_nutrients(_first(source, "nutrients", "nutriments")),
        "quantity_label": _text(label) or "",
        "nutriscore_grade": _text(
            _first(source, "nutriscore_grade", "nutriScoreGrade", "nutriscore")
        )
        or "",
    }


def sanitize_record(
    raw: Any,
    *,
    price_history_limit: int = PRICE_HISTORY_LIMIT,
    exit_history_limit: int = EXIT_HISTORY_LIMIT,
) -> SanitizeResult:
    """Validate one external record; the skip reason is returned instead of raised."""

    if not isinstance(raw, Mapping):
        return SkipReason.NOT_A_RECORD

    fields = _product_fields(raw)
    if not fields["name"]:
        return SkipReason.MISSING_NAME
    if not fields["brand"]:
        return SkipReason.MISSING_BRAND
    try:
        product = Product(**fields)
    except ValidationError as exc:
        logger.debug("Rejecting product fields %s: %s", fields, exc.errors())
        return SkipReason.INVALID_PRODUCT

    raw_category = _first(raw, "category", "categorie")
    return ImportCandidate(
        product=product,
        quantity=parse_quantity(raw.get("quantity")),
        category=normalize_category(raw_category) if raw_category is not None else None,
        expiry_date=parse_date(_first(raw, "expiry_date", "expiryDate", "dlc")),
        price=parse_price(_first(raw, "current_price", "currentPrice", "price")),
        store=_text(_first(raw, "current_store", "currentStore", "store")),
        added_at=parse_timestamp(_first(raw, "added_at", "addedAt")),
        item_id=_text(raw.get("id")),
        price_history=sanitize_price_history(
            _first(raw, "price_history", "priceHistory"), price_history_limit
        ),
        exit_history=sanitize_exit_history(
            _first(raw, "exit_history", "exitHistory", "exits"), exit_history_limit
        ),
    )


__all__ = [
    "ImportCandidate",
    "SanitizeResult",
    "SkipReason",
    "parse_date",
    "parse_number",
    "parse_price",
    "parse_quantity",
    "parse_timestamp",
    "sanitize_exit_history",
    "sanitize_price_history",
    "sanitize_record",
]

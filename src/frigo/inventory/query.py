"""Filtered and sorted views over an inventory snapshot."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from frigo.inventory.expiry import SOON_DAYS, ExpiryBucket, classify
from frigo.inventory.identity import Category, fold_text, normalize_category
from frigo.models.inventory import InventoryItem

ALL_CATEGORIES = "Tous"
_ALL_ALIASES = {fold_text(ALL_CATEGORIES), "all", "*"}


class ExpiryFilter(str, Enum):
    ALL = "all"
    EXPIRED = "expired"
    SOON = "soon"
    OK = "ok"


class SortOrder(str, Enum):
    DATE = "date"
    NAME = "name"
    PRICE = "price"
    DLC = "dlc"


class PriceRange(BaseModel):
    """Inclusive price bounds; either side may be open."""

    min: Optional[float] = Field(default=None, ge=0)
    max: Optional[float] = Field(default=None, ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PriceRange":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("price range minimum is greater than its maximum")
        return self

    @property
    def active(self) -> bool:
        return self.min is not None or self.max is not None

    def contains(self, price: float) -> bool:
        if self.min is not None and price < self.min:
            return False
        if self.max is not None and price > self.max:
            return False
        return True


class InventoryQuery(BaseModel):
    category: Optional[Category] = None
    text: Optional[str] = None
    expiry: ExpiryFilter = ExpiryFilter.ALL
    price_range: Optional[PriceRange] = None
    sort_by: SortOrder = SortOrder.DATE

    model_config = ConfigDict(frozen=True)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: object) -> Optional[Category]:
        if value is None or isinstance(value, Category):
            return value
        if isinstance(value, str) and (not value.strip() or fold_text(value) in _ALL_ALIASES):
            return None
        return normalize_category(value)

    @field_validator("text", mode="before")
    @classmethod
    def _blank_text(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


def _matches_text(item: InventoryItem, needle: str) -> bool:
    haystacks = (
        item.product.name,
        item.product.brand,
        item.category.value,
        item.current_store or "",
    )
    return any(needle in haystack.lower() for haystack in haystacks)


def _sorted(items: List[InventoryItem], order: SortOrder) -> List[InventoryItem]:
    if order is SortOrder.NAME:
        return sorted(items, key=lambda item: (fold_text(item.product.name), item.product.name))
    if order is SortOrder.PRICE:
        return sorted(items, key=lambda item: item.current_price or 0.0, reverse=True)
    if order is SortOrder.DLC:
        # missing dates last
        return sorted(
            items,
            key=lambda item: (item.expiry_date is None, item.expiry_date or date.max),
        )
    return sorted(items, key=lambda item: item.added_at, reverse=True)


def query_items(
    items: Iterable[InventoryItem],
    query: Optional[InventoryQuery] = None,
    *,
    today: Optional[date] = None,
    soon_days: int = SOON_DAYS,
) -> List[InventoryItem]:
    """Apply every active filter (AND), then a stable sort."""

    query = query or InventoryQuery()
    reference = today or date.today()
    needle = query.text.lower() if query.text else None
    wanted_bucket = ExpiryBucket(query.expiry.value) if query.expiry is not ExpiryFilter.ALL else None
    price_range = query.price_range if query.price_range and query.price_range.active else None

    selected: List[InventoryItem] = []
    for item in items:
        if query.category is not None and item.category is not query.category:
            continue
        if needle and not _matches_text(item, needle):
            continue
        if wanted_bucket is not None:
            if classify(item, reference, soon_days=soon_days).bucket is not wanted_bucket:
                continue
        if price_range is not None:
            if item.current_price is None or not price_range.contains(item.current_price):
                continue
        selected.append(item)

    return _sorted(selected, query.sort_by)


__all__ = [
    "ALL_CATEGORIES",
    "ExpiryFilter",
    "InventoryQuery",
    "PriceRange",
    "SortOrder",
    "query_items",
]

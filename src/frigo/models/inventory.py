"""Inventory data models."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from frigo.inventory.identity import Category, identity_key, normalize_category
from frigo.models.product import Product


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PriceHistoryEntry(BaseModel):
    """Price paid for an item at a given store and time."""

    price: float = Field(ge=0)
    store: str = Field(min_length=1)
    date: datetime

    model_config = ConfigDict(frozen=True)

    @field_validator("date")
    @classmethod
    def _aware_date(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class ExitEntry(BaseModel):
    """Units taken out of the inventory (consumed, thrown away, given...)."""

    quantity: int = Field(gt=0)
    reason: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None, max_length=1000)
    date: date

    model_config = ConfigDict(frozen=True)


class InventoryItem(BaseModel):
    """Product currently tracked in the fridge, with its stock and ledgers."""

    id: str
    product: Product
    added_at: datetime
    quantity: int = Field(default=1, ge=0)
    category: Category = Field(default=Category.OTHER)
    expiry_date: Optional[date] = Field(default=None)
    current_price: Optional[float] = Field(default=None, ge=0)
    current_store: Optional[str] = Field(default=None)
    price_history: list[PriceHistoryEntry] = Field(default_factory=list)
    exit_history: list[ExitEntry] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> Category:
        return normalize_category(value)

    @field_validator("added_at")
    @classmethod
    def _aware_added_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def identity(self) -> str:
        return identity_key(self.product)


class ItemPatch(BaseModel):
    """Partial update of an inventory item; only explicitly set fields apply."""

    product: Optional[Product] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    category: Optional[Category] = None
    expiry_date: Optional[date] = None
    current_price: Optional[float] = Field(
        default=None, ge=0, validation_alias=AliasChoices("current_price", "price")
    )
    current_store: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("current_store", "store")
    )

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> Optional[Category]:
        if value is None:
            return None
        return normalize_category(value)

    @field_validator("current_store", mode="before")
    @classmethod
    def _blank_store(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    def touches_price(self) -> bool:
        return bool({"current_price", "current_store"} & self.model_fields_set)


class PriceVariation(BaseModel):
    """Change between the two most recent price history entries."""

    amount: float
    percentage_change: Optional[float] = None

    model_config = ConfigDict(frozen=True)


class PriceSummary(BaseModel):
    """Lowest, highest and average price over an item's history."""

    lowest: PriceHistoryEntry
    highest: PriceHistoryEntry
    average: float
    count: int

    model_config = ConfigDict(frozen=True)


__all__ = [
    "ensure_utc",
    "Category",
    "ExitEntry",
    "InventoryItem",
    "ItemPatch",
    "PriceHistoryEntry",
    "PriceSummary",
    "PriceVariation",
]

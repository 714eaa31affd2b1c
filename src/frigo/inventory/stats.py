"""Aggregate figures over the inventory: cost, waste and recent activity."""

from __future__ import annotations

from datetime import date, timedelta, tzinfo
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from frigo.inventory.expiry import SOON_DAYS, ExpiryBucket, classify
from frigo.models.inventory import InventoryItem

TOP_PRODUCTS = 5
ACTIVITY_DAYS = 7


class ProductTotal(BaseModel):
    identity: str
    name: str
    brand: str
    quantity: int

    model_config = ConfigDict(frozen=True)


class DailyActivity(BaseModel):
    """Items added on ``day`` and items whose DLC falls on ``day``."""

    day: date
    added: int = 0
    expiring: int = 0

    model_config = ConfigDict(frozen=True)


class InventoryStats(BaseModel):
    item_count: int = 0
    unit_count: int = 0
    total_cost: float = 0.0
    expired_count: int = 0
    expiring_soon_count: int = 0
    waste_rate: int = Field(default=0, description="Expired items as a rounded percentage.")
    expired_cost: float = 0.0
    top_products: List[ProductTotal] = Field(default_factory=list)
    daily_activity: List[DailyActivity] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


def item_cost(item: InventoryItem) -> float:
    return (item.current_price or 0.0) * item.quantity


def compute_stats(
    items: Iterable[InventoryItem],
    today: Optional[date] = None,
    *,
    soon_days: int = SOON_DAYS,
    tz: Optional[tzinfo] = None,
) -> InventoryStats:
    reference = today or date.today()
    snapshot = list(items)
    if not snapshot:
        return InventoryStats(daily_activity=_daily_activity([], reference, tz))

    expired: List[InventoryItem] = []
    soon_count = 0
    for item in snapshot:
        bucket = classify(item, reference, soon_days=soon_days).bucket
        if bucket is ExpiryBucket.EXPIRED:
            expired.append(item)
        elif bucket is ExpiryBucket.SOON:
            soon_count += 1

    ranked = sorted(snapshot, key=lambda item: item.quantity, reverse=True)[:TOP_PRODUCTS]

    return InventoryStats(
        item_count=len(snapshot),
        unit_count=sum(item.quantity for item in snapshot),
        total_cost=round(sum(item_cost(item) for item in snapshot), 2),
        expired_count=len(expired),
        expiring_soon_count=soon_count,
        waste_rate=round(len(expired) / len(snapshot) * 100),
        expired_cost=round(sum(item_cost(item) for item in expired), 2),
        top_products=[
            ProductTotal(
                identity=item.identity,
                name=item.product.name,
                brand=item.product.brand,
                quantity=item.quantity,
            )
            for item in ranked
        ],
        daily_activity=_daily_activity(snapshot, reference, tz),
    )


def _daily_activity(
    items: List[InventoryItem], today: date, tz: Optional[tzinfo]
) -> List[DailyActivity]:
    days = [today - timedelta(days=offset) for offset in range(ACTIVITY_DAYS - 1, -1, -1)]
    added = {day: 0 for day in days}
    expiring = {day: 0 for day in days}
    for item in items:
        added_day = item.added_at.astimezone(tz).date()
        if added_day in added:
            added[added_day] += 1
        if item.expiry_date in expiring:
            expiring[item.expiry_date] += 1
    return [DailyActivity(day=day, added=added[day], expiring=expiring[day]) for day in days]


__all__ = [
    "ACTIVITY_DAYS",
    "DailyActivity",
    "InventoryStats",
    "ProductTotal",
    "TOP_PRODUCTS",
    "compute_stats",
    "item_cost",
]

"""Append-only price and exit ledgers attached to inventory items."""

from __future__ import annotations

from typing import Optional, Sequence, TypeVar

from frigo.models.inventory import PriceHistoryEntry, PriceSummary, PriceVariation

PRICE_HISTORY_LIMIT = 10
EXIT_HISTORY_LIMIT = 50

T = TypeVar("T")


def append_capped(entries: Sequence[T], entry: T, limit: int) -> list[T]:
    """Return a copy of ``entries`` with ``entry`` appended, oldest entries evicted first."""

    appended = [*entries, entry]
    if limit <= 0:
        return []
    return appended[-limit:]


def should_record_price(
    old_price: Optional[float],
    old_store: Optional[str],
    new_price: Optional[float],
    new_store: Optional[str],
) -> bool:
    """A ledger entry is due when price or store changed and both are now known."""

    if new_price is None or not new_store:
        return False
    return new_price != old_price or new_store != old_store


def price_variation(history: Sequence[PriceHistoryEntry]) -> Optional[PriceVariation]:
    """Variation between the two most recently appended entries."""

    if len(history) < 2:
        return None
    previous, latest = history[-2], history[-1]
    amount = latest.price - previous.price
    percentage = (amount / previous.price) * 100 if previous.price else None
    return PriceVariation(amount=amount, percentage_change=percentage)


def price_summary(history: Sequence[PriceHistoryEntry]) -> Optional[PriceSummary]:
    if not history:
        return None
    lowest = history[0]
    highest = history[0]
    for entry in history[1:]:
        if entry.price < lowest.price:
            lowest = entry
        if entry.price > highest.price:
            highest = entry
    average = sum(entry.price for entry in history) / len(history)
    return PriceSummary(lowest=lowest, highest=highest, average=average, count=len(history))


__all__ = [
    "EXIT_HISTORY_LIMIT",
    "PRICE_HISTORY_LIMIT",
    "append_capped",
    "price_summary",
    "price_variation",
    "should_record_price",
]

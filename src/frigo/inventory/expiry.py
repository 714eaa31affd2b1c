"""Classification of consumption deadlines (DLC) relative to a reference day."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from frigo.models.inventory import InventoryItem

SOON_DAYS = 3


class ExpiryBucket(str, Enum):
    NONE = "none"
    EXPIRED = "expired"
    SOON = "soon"
    OK = "ok"


@dataclass(frozen=True)
class ExpiryStatus:
    """Bucket plus day count: days overdue when expired, days remaining otherwise."""

    bucket: ExpiryBucket
    days: Optional[int] = None


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_until(expiry: Union[date, datetime], today: Union[date, datetime]) -> int:
    """Whole days between ``today`` and ``expiry``, ignoring time of day."""

    return (_as_date(expiry) - _as_date(today)).days


def classify(
    target: Union[InventoryItem, date, datetime, None],
    today: Optional[date] = None,
    *,
    soon_days: int = SOON_DAYS,
) -> ExpiryStatus:
    """Classify an item (or a bare expiry date) into expired / soon / ok / none.

    ``soon`` covers ``0 <= days <= soon_days``, so an item expiring today is
    "soon" with 0 days left and only becomes "expired" the following day.
    """

    expiry = target.expiry_date if isinstance(target, InventoryItem) else target
    if expiry is None:
        return ExpiryStatus(ExpiryBucket.NONE)

    diff = days_until(expiry, today or date.today())
    if diff < 0:
        return ExpiryStatus(ExpiryBucket.EXPIRED, abs(diff))
    if diff <= soon_days:
        return ExpiryStatus(ExpiryBucket.SOON, diff)
    return ExpiryStatus(ExpiryBucket.OK, diff)


def is_expired(item: InventoryItem, today: Optional[date] = None) -> bool:
    return classify(item, today).bucket is ExpiryBucket.EXPIRED


def is_expiring_soon(
    item: InventoryItem, today: Optional[date] = None, *, soon_days: int = SOON_DAYS
) -> bool:
    return classify(item, today, soon_days=soon_days).bucket is ExpiryBucket.SOON


__all__ = [
    "ExpiryBucket",
    "ExpiryStatus",
    "SOON_DAYS",
    "classify",
    "days_until",
    "is_expired",
    "is_expiring_soon",
]

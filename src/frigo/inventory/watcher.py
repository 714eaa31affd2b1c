"""Periodic read-only scan of the inventory for expired and expiring items."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from frigo import metrics
from frigo.inventory.expiry import ExpiryBucket, classify
from frigo.inventory.store import InventoryStore
from frigo.models.inventory import InventoryItem

logger = logging.getLogger(__name__)


@dataclass
class ExpiryReport:
    day: date
    expired: List[InventoryItem] = field(default_factory=list)
    expiring_soon: List[InventoryItem] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.expired or self.expiring_soon)


Notifier = Callable[[ExpiryReport], None]


class ExpiryWatcher:
    """Scan the store on a fixed interval and hand non-empty reports to a notifier."""

    def __init__(
        self,
        store: InventoryStore,
        notifier: Notifier,
        *,
        interval: float = 60.0,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._interval = interval
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def poll_once(self, today: Optional[date] = None) -> ExpiryReport:
        """Scan once and notify if anything is expired or expiring soon."""

        reference = today or self._store.today()
        report = ExpiryReport(day=reference)
        for item in self._store.get_all():
            bucket = classify(item, reference, soon_days=self._store.soon_days).bucket
            if bucket is ExpiryBucket.EXPIRED:
                report.expired.append(item)
            elif bucket is ExpiryBucket.SOON:
                report.expiring_soon.append(item)

        if not report:
            return report

        metrics.EXPIRY_ALERTS.labels(bucket="expired").inc(len(report.expired))
        metrics.EXPIRY_ALERTS.labels(bucket="soon").inc(len(report.expiring_soon))
        logger.info(
            "Expiry scan found expired=%s expiring_soon=%s",
            len(report.expired),
            len(report.expiring_soon),
        )
        try:
            self._notifier(report)
        except Exception:
            logger.exception("Expiry notifier failed")
        return report

    def start(self) -> None:
        """Run ``poll_once`` immediately, then on the configured interval."""

        if self.running:
            logger.debug("Expiry watcher already running")
            return
        logger.info("Starting expiry watcher interval=%ss", self._interval)
        self.poll_once()
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self.poll_once,
            "interval",
            seconds=self._interval,
            max_instances=1,
            coalesce=True,
            id="frigo-expiry-scan",
        )
        scheduler.start()
        self._scheduler = scheduler

    def stop(self) -> None:
        if self._scheduler is None:
            return
        logger.info("Stopping expiry watcher")
        self._scheduler.shutdown(wait=False)
        self._scheduler = None


__all__ = ["ExpiryReport", "ExpiryWatcher", "Notifier"]

"""Prometheus metrics definitions for Frigo."""

from __future__ import annotations

from prometheus_client import Counter

STORE_OPERATIONS = Counter(
    "frigo_store_operations_total",
    "Inventory store operations by outcome",
    ["operation", "result"],
)

IMPORT_RECORDS = Counter(
    "frigo_import_records_total",
    "Number of records processed by imports by result",
    ["result"],
)

EXPIRY_ALERTS = Counter(
    "frigo_expiry_alerts_total",
    "Number of items reported by the expiry watcher",
    ["bucket"],
)

__all__ = [
    "STORE_OPERATIONS",
    "IMPORT_RECORDS",
    "EXPIRY_ALERTS",
]

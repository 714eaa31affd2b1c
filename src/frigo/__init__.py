"""
Frigo personal food-inventory tracker.

The package contains the inventory engine (identity resolution, price and exit ledgers,
expiry classification, queries) together with import/export reconciliation and the
adapters used to feed scanned or photographed products into the store.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

"""Inventory engine: identity, ledgers, expiry, queries and the persistent store."""

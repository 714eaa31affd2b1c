"""Durable key-value persistence backing the inventory store."""

"""Pydantic models defining shared data contracts."""

"""Shared pytest fixtures for the Frigo test suite."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from frigo.config import get_settings
from frigo.db.kv import MemoryKeyValueStore
from frigo.db.repository import reset_repository_state
from frigo.inventory.store import InventoryStore
from frigo.models.product import Product

FIXED_NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)
TODAY = date(2024, 6, 10)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FlakyKeyValueStore(MemoryKeyValueStore):
    """Memory store whose writes can be switched to failing."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False
        self.writes = 0

    def set(self, key: str, value: str) -> bool:
        if self.fail_writes:
            return False
        self.writes += 1
        return super().set(key, value)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database location."""

    db_path = tmp_path / "test_frigo.db"
    monkeypatch.setenv("FRIGO_DATABASE_PATH", str(db_path))
    get_settings.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    monkeypatch.delenv("FRIGO_DATABASE_PATH", raising=False)
    get_settings.cache_clear()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def kv() -> FlakyKeyValueStore:
    return FlakyKeyValueStore()


@pytest.fixture()
def store(kv, clock) -> InventoryStore:
    return InventoryStore(kv, clock=clock, tz=timezone.utc)


@pytest.fixture()
def yogurt() -> Product:
    return Product(name="Yaourt nature", brand="Danone", nutriscore_grade="a")


@pytest.fixture()
def make_product():
    def _make(name: str, brand: Optional[str] = None, **fields) -> Product:
        return Product(name=name, brand=brand, **fields)

    return _make

from __future__ import annotations

from frigo.config import get_settings
from frigo.db.kv import MemoryKeyValueStore, SqlKeyValueStore
from frigo.db.models import KeyValueEntryORM
from frigo.db.repository import get_engine, reset_repository_state, session_scope
from frigo.inventory.store import InventoryStore, build_inventory_store
from frigo.models.product import Product


def test_memory_store_round_trip():
    kv = MemoryKeyValueStore({"a": "1"})

    assert kv.get("a") == "1"
    assert kv.get("missing") is None
    assert kv.set("b", "2")
    assert kv.get("b") == "2"


def test_sql_store_persists_values():
    kv = SqlKeyValueStore()

    assert kv.get("frigo") is None
    assert kv.set("frigo", "[]")
    assert kv.set("frigo", '[{"x": 1}]')
    assert kv.get("frigo") == '[{"x": 1}]'

    with session_scope() as session:
        row = session.get(KeyValueEntryORM, "frigo")
        assert row is not None
        assert row.value == '[{"x": 1}]'


def test_sql_store_survives_engine_reset():
    SqlKeyValueStore().set("frigo", "value")
    reset_repository_state()

    assert SqlKeyValueStore().get("frigo") == "value"


def test_engine_follows_requested_path(tmp_path):
    other = tmp_path / "nested" / "other.db"
    kv = SqlKeyValueStore(other)

    assert kv.set("k", "v")
    assert other.exists()
    assert str(get_engine(other).url).endswith("other.db")
    assert SqlKeyValueStore().get("k") is None


def test_inventory_store_on_sqlite():
    store = build_inventory_store()
    assert isinstance(store, InventoryStore)

    store.add(Product(name="Lait", brand="Lactel"), 2)

    reopened = build_inventory_store(get_settings())
    items = reopened.get_all()
    assert len(items) == 1
    assert items[0].quantity == 2

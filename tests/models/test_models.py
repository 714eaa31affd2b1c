from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from frigo.inventory.identity import Category
from frigo.models.inventory import InventoryItem, ItemPatch, PriceHistoryEntry
from frigo.models.product import UNKNOWN_BRAND, Product


def test_product_normalization():
    product = Product(name="  Comté 18 mois ", brand=None, nutriscore_grade=" D ", image_url=None)

    assert product.name == "Comté 18 mois"
    assert product.brand == UNKNOWN_BRAND
    assert product.nutriscore_grade == "d"
    assert product.image_url == ""


def test_product_requires_name():
    with pytest.raises(ValidationError):
        Product(name="   ")


def test_unknown_nutriscore_is_dropped():
    assert Product(name="Eau", nutriscore_grade="not-applicable").nutriscore_grade == ""


def test_from_open_food_facts_prefers_allergen_ingredients():
    product = Product.from_open_food_facts(
        {
            "product_name": "Biscuits",
            "brands": "LU",
            "ingredients_text": "farine",
            "ingredients_text_with_allergens": "farine de <span>blé</span>",
            "nutriments": {"salt": 0.5, "flag": True},
        }
    )

    assert product.ingredients_text == "farine de <span>blé</span>"
    assert product.nutrients == {"salt": 0.5}


def test_naive_timestamps_are_treated_as_utc():
    item = InventoryItem(id="x", product=Product(name="Lait"), added_at=datetime(2024, 6, 1, 8))
    entry = PriceHistoryEntry(price=1.0, store="Lidl", date=datetime(2024, 6, 1, 8))

    assert item.added_at.tzinfo is timezone.utc
    assert entry.date.tzinfo is timezone.utc


def test_item_category_is_normalized_and_stock_cannot_be_negative():
    item = InventoryItem(
        id="x", product=Product(name="Lait"), added_at=datetime.now(timezone.utc), category="boissons"
    )
    assert item.category is Category.DRINKS

    with pytest.raises(ValidationError):
        InventoryItem(
            id="y", product=Product(name="Lait"), added_at=datetime.now(timezone.utc), quantity=-1
        )


def test_item_patch_tracks_price_fields():
    assert ItemPatch.model_validate({"current_store": "Lidl"}).touches_price()
    assert not ItemPatch.model_validate({"quantity": 2}).touches_price()
    assert ItemPatch.model_validate({"current_store": "  "}).current_store is None


def test_item_patch_accepts_short_price_keys():
    patch = ItemPatch.model_validate({"price": 2.0, "store": "Carrefour"})

    assert patch.touches_price()
    assert (patch.current_price, patch.current_store) == (2.0, "Carrefour")


@pytest.mark.parametrize("payload", [{"quantity": 2, "unknown": 1}, {"id": "other"}, {"added_at": "2024-06-01"}])
def test_item_patch_rejects_unknown_and_immutable_keys(payload):
    with pytest.raises(ValidationError):
        ItemPatch.model_validate(payload)

from __future__ import annotations

import pytest

from frigo.inventory.identity import (
    Category,
    fold_text,
    identity_key,
    identity_key_for,
    normalize_category,
)
from frigo.models.product import Product


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Produits Laitiers", Category.DAIRY),
        ("produits laitiers", Category.DAIRY),
        ("epicerie", Category.GROCERY),
        ("ÉPICERIE", Category.GROCERY),
        ("surgeles", Category.FROZEN),
        ("FRUITS_VEGETABLES", Category.FRUITS_VEGETABLES),
        (Category.DRINKS, Category.DRINKS),
        ("Rayon inconnu", Category.OTHER),
        ("", Category.OTHER),
        (None, Category.OTHER),
        (42, Category.OTHER),
    ],
)
def test_normalize_category(raw, expected):
    assert normalize_category(raw) is expected


def test_fold_text_strips_accents_and_spaces():
    assert fold_text("  Fruits   &  Légumes ") == "fruits & legumes"


def test_identity_key_is_case_insensitive():
    assert identity_key(Product(name="Lait", brand="Lactel")) == identity_key(
        Product(name=" lait", brand="LACTEL ")
    )


def test_identity_key_distinguishes_brands():
    assert identity_key(Product(name="Lait", brand="Lactel")) != identity_key(
        Product(name="Lait", brand="Candia")
    )


def test_blank_brand_uses_unknown_brand():
    assert identity_key_for("Pommes", "  ") == identity_key_for("pommes", None)
    assert identity_key_for("Pommes", None) == "pommes|marque inconnue"

"""Product identity keys and category normalization."""

from __future__ import annotations

import unicodedata
from enum import Enum
from typing import Any, Optional

from frigo.models.product import UNKNOWN_BRAND, Product

IDENTITY_SEPARATOR = "|"


class Category(str, Enum):
    """Closed set of storage categories."""

    FRUITS_VEGETABLES = "Fruits & Légumes"
    MEAT_FISH = "Viandes & Poissons"
    DAIRY = "Produits Laitiers"
    GROCERY = "Épicerie"
    DRINKS = "Boissons"
    FROZEN = "Surgelés"
    BAKERY = "Boulangerie"
    OTHER = "Autre"


def fold_text(value: str) -> str:
    """Lower-case and strip accents so that 'Épicerie' and 'epicerie' compare equal."""

    decomposed = unicodedata.normalize("NFKD", value.strip())
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return " ".join(stripped.casefold().split())


_CATEGORY_LOOKUP = {fold_text(category.value): category for category in Category}
_CATEGORY_LOOKUP.update({fold_text(category.name): category for category in Category})


def normalize_category(raw: Any) -> Category:
    """Map any input onto the category enum, falling back to ``Category.OTHER``."""

    if isinstance(raw, Category):
        return raw
    if not isinstance(raw, str):
        return Category.OTHER
    return _CATEGORY_LOOKUP.get(fold_text(raw), Category.OTHER)


def identity_key_for(name: str, brand: Optional[str]) -> str:
    brand_value = brand if brand and brand.strip() else UNKNOWN_BRAND
    return f"{name.strip().lower()}{IDENTITY_SEPARATOR}{brand_value.strip().lower()}"


def identity_key(product: Product) -> str:
    """Return the key under which two products count as the same purchasable good."""

    return identity_key_for(product.name, product.brand)


__all__ = [
    "Category",
    "IDENTITY_SEPARATOR",
    "fold_text",
    "identity_key",
    "identity_key_for",
    "normalize_category",
]

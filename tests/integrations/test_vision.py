from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from frigo.errors import EmptyImportError, ProductNotFoundError
from frigo.integrations.vision import DetectedProduct, ImageAnalysis, ingest_image_analysis
from frigo.models.product import UNKNOWN_BRAND, Product


class StubLookup:
    def __init__(self, products):
        self.products = products
        self.calls = []

    def fetch_product(self, barcode: str) -> Product:
        self.calls.append(barcode)
        try:
            return self.products[barcode]
        except KeyError:
            raise ProductNotFoundError(barcode) from None


def test_receipt_products_are_added_with_price_metadata(store):
    analysis = ImageAnalysis.model_validate(
        {
            "products": [
                {"name": "Lait demi-écrémé", "brand": "Lactel", "quantity": 2, "price": 1.15},
                {"name": "Bananes", "quantity": 0},
            ],
            "store": "Intermarché",
            "date": "08/06/2024",
            "kind": "receipt",
        }
    )

    summary = ingest_image_analysis(store, analysis)

    assert (summary.created, summary.updated) == (2, 0)
    milk = store.get_by_product(Product(name="Lait demi-écrémé", brand="Lactel"))
    assert milk.quantity == 2
    assert milk.current_store == "Intermarché"
    assert milk.price_history[0].date == datetime(2024, 6, 8, 12, tzinfo=timezone.utc)
    bananas = store.get_by_product(Product(name="Bananes"))
    assert bananas.product.brand == UNKNOWN_BRAND
    assert bananas.quantity == 1


def test_brandless_names_reuse_close_inventory_items(store):
    store.add(Product(name="Yaourt nature", brand="Danone"), 1)
    analysis = ImageAnalysis(products=[DetectedProduct(name="yaourt nature", quantity=3)])

    summary = ingest_image_analysis(store, analysis)

    assert summary.updated == 1
    items = store.get_all()
    assert len(items) == 1
    assert items[0].quantity == 4


def test_low_scores_create_new_items(store):
    store.add(Product(name="Yaourt nature", brand="Danone"), 1)
    analysis = ImageAnalysis(products=[DetectedProduct(name="Camembert")])

    summary = ingest_image_analysis(store, analysis, match_threshold=0.95)

    assert summary.created == 1
    assert store.get_count() == 2


def test_barcodes_are_resolved_and_failures_fall_back(store):
    lookup = StubLookup({"3017620422003": Product(name="Nutella", brand="Ferrero")})
    analysis = ImageAnalysis(
        products=[
            DetectedProduct(name="Pâte à tartiner", barcode="3017620422003"),
            DetectedProduct(name="Chips", brand="Lay's", barcode="999"),
        ]
    )

    ingest_image_analysis(store, analysis, lookup=lookup)

    names = sorted(item.product.name for item in store.get_all())
    assert names == ["Chips", "Nutella"]
    assert lookup.calls == ["3017620422003", "999"]


def test_unparseable_analysis_date_is_ignored():
    analysis = ImageAnalysis.model_validate({"date": "date d'achat si visible", "store": "  "})

    assert analysis.date is None
    assert analysis.store is None


def test_nothing_usable_raises(store):
    with pytest.raises(EmptyImportError):
        ingest_image_analysis(store, ImageAnalysis(products=[DetectedProduct(name="  ")]))


def test_analysis_date_parsing():
    assert ImageAnalysis(date="2024-06-08").date == date(2024, 6, 8)

"""Tests for the Open Food Facts client using a mocked transport."""

from __future__ import annotations

import httpx
import pytest

from frigo.errors import InvalidProductDataError, ProductLookupError, ProductNotFoundError
from frigo.integrations.openfoodfacts import OpenFoodFactsClient, add_scanned_product

NUTELLA = {
    "status": 1,
    "product": {
        "product_name": "Nutella",
        "brands": "Ferrero",
        "image_url": "https://images.example/nutella.jpg",
        "ingredients_text": "Sucre, huile de palme",
        "nutriments": {"energy-kcal_100g": 539, "sugars_unit": "g"},
        "quantity": "400 g",
        "nutriscore_grade": "e",
    },
}


def _client(handler) -> OpenFoodFactsClient:
    transport = httpx.MockTransport(handler)
    return OpenFoodFactsClient(
        base_url="https://off.test/",
        client=httpx.Client(transport=transport),
    )


def test_fetch_product_maps_payload():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=NUTELLA)

    product = _client(handler).fetch_product("3017620422003")

    assert str(seen[0].url) == "https://off.test/api/v2/product/3017620422003.json"
    assert seen[0].headers["User-Agent"].startswith("frigo/")
    assert product.name == "Nutella"
    assert product.brand == "Ferrero"
    assert product.quantity_label == "400 g"
    assert product.nutriscore_grade == "e"
    assert product.nutrients["energy-kcal_100g"] == 539


def test_unknown_barcode():
    client = _client(lambda request: httpx.Response(200, json={"status": 0}))

    with pytest.raises(ProductNotFoundError):
        client.fetch_product("0000")


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"status": 1}),
        httpx.Response(200, json={"status": 1, "product": {"brands": "Ferrero"}}),
        httpx.Response(200, json=["unexpected"]),
    ],
)
def test_unusable_payloads(response):
    client = _client(lambda request: response)

    with pytest.raises(InvalidProductDataError):
        client.fetch_product("3017620422003")


def test_http_errors_are_wrapped():
    client = _client(lambda request: httpx.Response(503))

    with pytest.raises(ProductLookupError):
        client.fetch_product("3017620422003")


def test_invalid_json_is_wrapped():
    client = _client(lambda request: httpx.Response(200, content=b"<html>"))

    with pytest.raises(ProductLookupError):
        client.fetch_product("3017620422003")


def test_add_scanned_product(store):
    client = _client(lambda request: httpx.Response(200, json=NUTELLA))

    assert add_scanned_product(store, client, "3017620422003", quantity=2, category="Épicerie")

    item = store.get_all()[0]
    assert item.product.name == "Nutella"
    assert item.quantity == 2


def test_add_scanned_product_lookup_failure_adds_nothing(store):
    client = _client(lambda request: httpx.Response(200, json={"status": 0}))

    assert add_scanned_product(store, client, "0000") is False
    assert store.get_count() == 0

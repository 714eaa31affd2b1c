from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from frigo.inventory.identity import Category
from frigo.models.product import UNKNOWN_BRAND
from frigo.transfer.sanitize import (
    ImportCandidate,
    SkipReason,
    parse_date,
    parse_price,
    parse_quantity,
    sanitize_record,
)


@pytest.mark.parametrize(
    "raw, reason",
    [
        ("not a record", SkipReason.NOT_A_RECORD),
        (["list"], SkipReason.NOT_A_RECORD),
        ({"product": {"brand": "Lactel"}}, SkipReason.MISSING_NAME),
        ({"product": {"name": "   ", "brand": "Lactel"}}, SkipReason.MISSING_NAME),
        ({"product": {"name": "Lait"}}, SkipReason.MISSING_BRAND),
        ({"name": "Lait", "brand": ""}, SkipReason.MISSING_BRAND),
    ],
)
def test_unusable_records_are_skipped(raw, reason):
    assert sanitize_record(raw) is reason


def test_nested_camel_case_record():
    raw = {
        "id": "abc",
        "product": {
            "product_name": "Lait demi-écrémé",
            "brands": "Lactel",
            "quantity": "1 L",
            "nutriscore_grade": "B",
            "nutriments": {"fat_100g": 1.5, "bogus": {"nested": True}},
        },
        "quantity": "3",
        "category": "produits laitiers",
        "expiryDate": "2024-06-20",
        "currentPrice": "1,25",
        "currentStore": " Carrefour ",
        "addedAt": "2024-06-01T08:00:00.000Z",
        "priceHistory": [
            {"price": 1.1, "store": "Carrefour", "date": "2024-05-01T10:00:00Z"},
            {"price": "oops", "store": "Carrefour", "date": "2024-05-02"},
            {"price": 1.25, "store": "", "date": "2024-05-03"},
        ],
        "exits": [
            {"quantity": 1, "reason": "consumed", "date": "2024-06-02"},
            {"quantity": 0, "date": "2024-06-03"},
        ],
    }

    candidate = sanitize_record(raw)

    assert isinstance(candidate, ImportCandidate)
    assert candidate.item_id == "abc"
    assert candidate.product.name == "Lait demi-écrémé"
    assert candidate.product.quantity_label == "1 L"
    assert candidate.product.nutriscore_grade == "b"
    assert candidate.product.nutrients == {"fat_100g": 1.5}
    assert candidate.quantity == 3
    assert candidate.category is Category.DAIRY
    assert candidate.expiry_date == date(2024, 6, 20)
    assert candidate.price == 1.25
    assert candidate.store == "Carrefour"
    assert candidate.added_at == datetime(2024, 6, 1, 8, tzinfo=timezone.utc)
    assert [entry.price for entry in candidate.price_history] == [1.1]
    assert [entry.quantity for entry in candidate.exit_history] == [1]


def test_flat_record_with_display_conventions():
    candidate = sanitize_record(
        {"name": "Baguette", "brand": "Paul", "dlc": "12/06/2024", "price": "0,95", "quantity": None}
    )

    assert candidate.expiry_date == date(2024, 6, 12)
    assert candidate.price == 0.95
    assert candidate.quantity == 1
    assert candidate.category is None
    assert candidate.added_at is None


def test_price_history_is_capped_to_newest_entries():
    history = [
        {"price": index, "store": "Lidl", "date": f"2024-01-{index + 1:02d}"} for index in range(15)
    ]

    candidate = sanitize_record(
        {"product": {"name": "Oeufs", "brand": "Loué"}, "price_history": history},
        price_history_limit=10,
    )

    assert [entry.price for entry in candidate.price_history] == list(range(5, 15))


@pytest.mark.parametrize(
    "value, expected",
    [(None, 1), ("", 1), ("abc", 1), (0, 1), (-4, 1), ("2", 2), (3.7, 3), (True, 1)],
)
def test_parse_quantity(value, expected):
    assert parse_quantity(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [("2,49", 2.49), ("2.49 €", 2.49), (3, 3.0), ("-1", None), ("nan", None), ("", None), (None, None)],
)
def test_parse_price(value, expected):
    assert parse_price(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-06-20", date(2024, 6, 20)),
        ("20/06/2024", date(2024, 6, 20)),
        ("2024-06-20T23:00:00Z", date(2024, 6, 20)),
        ("2024-02-30", None),
        ("demain", None),
        (None, None),
    ],
)
def test_parse_date(value, expected):
    assert parse_date(value) == expected


def test_unknown_brand_string_is_a_brand():
    candidate = sanitize_record({"name": "Pommes", "brand": UNKNOWN_BRAND})

    assert candidate.product.brand == UNKNOWN_BRAND

"""Wire formats for inventory exports and imports."""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from frigo.errors import ImportParseError
from frigo.inventory.identity import Category, fold_text
from frigo.models.inventory import InventoryItem

EXPORT_VERSION = 1
CSV_DELIMITER = ";"

CSV_FIELDS = (
    "id",
    "name",
    "brand",
    "quantity",
    "category",
    "expiry_date",
    "price",
    "store",
    "added_at",
    "nutriscore_grade",
    "quantity_label",
    "image_url",
)

DISPLAY_CSV_FIELDS = (
    "Nom",
    "Marque",
    "Quantité",
    "Catégorie",
    "DLC",
    "Prix (EUR)",
    "Magasin",
    "Ajouté le",
    "NutriScore",
    "Commentaires",
)

_HEADER_ALIASES: Dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "name": ("name", "nom", "product_name", "productname", "produit"),
    "brand": ("brand", "brands", "marque"),
    "quantity": ("quantity", "quantite", "qty"),
    "category": ("category", "categorie"),
    "expiry_date": ("expiry_date", "expirydate", "dlc"),
    "price": ("price", "prix", "prix (eur)", "current_price", "currentprice"),
    "store": ("store", "magasin", "current_store", "currentstore"),
    "added_at": ("added_at", "addedat", "ajoute le"),
    "nutriscore_grade": ("nutriscore_grade", "nutriscoregrade", "nutriscore"),
    "quantity_label": ("quantity_label", "quantitylabel", "contenance"),
    "image_url": ("image_url", "imageurl"),
    "notes": ("commentaires", "notes"),
}
HEADER_LOOKUP = {alias: field for field, aliases in _HEADER_ALIASES.items() for alias in aliases}


def _day_first(value: Any) -> str:
    return value.strftime("%d/%m/%Y") if value is not None else ""


def _machine_number(value: Optional[float]) -> str:
    return "" if value is None else repr(float(value))


def _display_price(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.2f}".replace(".", ",")


# -- encoders ------------------------------------------------------------


def encode_json(items: Iterable[InventoryItem], exported_at: datetime) -> str:
    records = [item.model_dump(mode="json") for item in items]
    document = {
        "version": EXPORT_VERSION,
        "exportedAt": exported_at.isoformat(),
        "count": len(records),
        "items": records,
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def _write_csv(header: Iterable[str], rows: Iterable[List[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=CSV_DELIMITER, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(list(header))
    writer.writerows(rows)
    return buffer.getvalue()


def encode_csv(items: Iterable[InventoryItem]) -> str:
    rows = [
        [
            item.id,
            item.product.name,
            item.product.brand,
            str(item.quantity),
            item.category.value,
            item.expiry_date.isoformat() if item.expiry_date else "",
            _machine_number(item.current_price),
            item.current_store or "",
            item.added_at.isoformat(),
            item.product.nutriscore_grade,
            item.product.quantity_label,
            item.product.image_url,
        ]
        for item in items
    ]
    return _write_csv(CSV_FIELDS, rows)


def encode_display_csv(items: Iterable[InventoryItem]) -> str:
    rows = []
    for item in items:
        latest_exit = item.exit_history[-1] if item.exit_history else None
        rows.append(
            [
                item.product.name,
                item.product.brand,
                str(item.quantity),
                item.category.value,
                _day_first(item.expiry_date),
                _display_price(item.current_price),
                item.current_store or "",
                _day_first(item.added_at.astimezone()),
                item.product.nutriscore_grade.upper(),
                (latest_exit.notes or "") if latest_exit else "",
            ]
        )
    return _write_csv(DISPLAY_CSV_FIELDS, rows)


def encode_shopping_list(items: Iterable[InventoryItem]) -> str:
    """Plain-text list grouped by category, in category order."""

    grouped: Dict[Category, List[InventoryItem]] = {category: [] for category in Category}
    for item in items:
        grouped[item.category].append(item)

    blocks: List[str] = []
    for category, members in grouped.items():
        if not members:
            continue
        lines = [f"{category.value} :"]
        for item in members:
            line = f"• {item.product.name} (x{item.quantity}) – {category.value}"
            if item.expiry_date is not None:
                line += f" – DLC {_day_first(item.expiry_date)}"
            lines.append(line)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + ("\n" if blocks else "")


# -- decoders ------------------------------------------------------------


def decode_json(payload: str) -> List[Any]:
    try:
        document = json.loads(payload)
    except ValueError as exc:
        raise ImportParseError(f"Invalid JSON payload: {exc}") from exc

    if isinstance(document, list):
        return document
    if isinstance(document, dict):
        for key in ("items", "frigo"):
            records = document.get(key)
            if isinstance(records, list):
                return records
    raise ImportParseError("JSON payload must be an array or an object with an 'items' array")


def detect_delimiter(header_line: str) -> str:
    return ";" if ";" in header_line else ","


def canonical_header(name: str) -> str:
    folded = fold_text(name)
    return HEADER_LOOKUP.get(folded, folded)


def decode_csv(payload: str) -> List[Dict[str, Optional[str]]]:
    """Parse CSV rows into records keyed by canonical field names."""

    text = payload.lstrip("\ufeff")
    header_line = next((line for line in text.splitlines() if line.strip()), None)
    if header_line is None:
        raise ImportParseError("CSV payload has no header row")

    reader = csv.reader(io.StringIO(text, newline=""), delimiter=detect_delimiter(header_line))
    try:
        rows = [row for row in reader if any(cell.strip() for cell in row)]
    except csv.Error as exc:
        raise ImportParseError(f"Malformed CSV payload: {exc}") from exc

    if not rows:
        raise ImportParseError("CSV payload has no header row")
    if len(rows) < 2:
        raise ImportParseError("CSV payload has a header but no rows")

    header = [canonical_header(cell) for cell in rows[0]]

    records: List[Dict[str, Optional[str]]] = []
    for row in rows[1:]:
        record: Dict[str, Optional[str]] = {}
        for column, cell in zip(header, row):
            value = cell.strip()
            record[column] = value or None
        records.append(record)
    return records


__all__ = [
    "CSV_DELIMITER",
    "CSV_FIELDS",
    "DISPLAY_CSV_FIELDS",
    "EXPORT_VERSION",
    "HEADER_LOOKUP",
    "canonical_header",
    "decode_csv",
    "decode_json",
    "detect_delimiter",
    "encode_csv",
    "encode_display_csv",
    "encode_json",
    "encode_shopping_list",
]

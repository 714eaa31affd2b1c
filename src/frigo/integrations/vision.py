"""Ingestion of products detected on a receipt or basket photo."""

from __future__ import annotations

import datetime as dt
import logging
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from rapidfuzz import fuzz, process

from frigo.errors import ProductLookupError
from frigo.integrations.openfoodfacts import ProductLookup
from frigo.inventory.store import InventoryStore
from frigo.models.product import Product
from frigo.transfer.reconcile import ImportSummary, reconcile
from frigo.transfer.sanitize import ImportCandidate, SanitizeResult, SkipReason, parse_date

logger = logging.getLogger(__name__)


class AnalysisKind(str, Enum):
    RECEIPT = "receipt"
    BASKET = "basket"


class DetectedProduct(BaseModel):
    name: str = ""
    brand: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    barcode: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ImageAnalysis(BaseModel):
    """Structured result of an image analysis (products plus receipt metadata)."""

    products: List[DetectedProduct] = Field(default_factory=list)
    total_amount: Optional[float] = None
    store: Optional[str] = None
    date: Optional[dt.date] = None
    kind: AnalysisKind = AnalysisKind.BASKET

    model_config = ConfigDict(frozen=True)

    @field_validator("date", mode="before")
    @classmethod
    def _lenient_date(cls, value: object) -> Optional[dt.date]:
        # analysis services return free-form dates; unparseable ones are dropped
        return parse_date(value)

    @field_validator("store", mode="before")
    @classmethod
    def _blank_store(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


def _resolve_product(
    detected: DetectedProduct,
    lookup: Optional[ProductLookup],
    known: List[Product],
    match_threshold: float,
) -> Product:
    if detected.barcode and lookup is not None:
        try:
            return lookup.fetch_product(detected.barcode)
        except ProductLookupError as exc:
            logger.info(
                "Barcode %s lookup failed, using detected name %r: %s",
                detected.barcode,
                detected.name,
                exc,
            )

    name = detected.name.strip()
    if detected.brand and detected.brand.strip():
        return Product(name=name, brand=detected.brand)

    if known:
        match = process.extractOne(name, [product.name for product in known], scorer=fuzz.WRatio)
        if match:
            matched_name, score, index = match
            if score / 100.0 >= match_threshold:
                logger.debug("Matched detected %r to %r (score=%.1f)", name, matched_name, score)
                return known[index]
    return Product(name=name)


def ingest_image_analysis(
    store: InventoryStore,
    analysis: ImageAnalysis,
    lookup: Optional[ProductLookup] = None,
    match_threshold: float = 0.85,
) -> ImportSummary:
    """Add the detected products to the inventory, merging with known items."""

    known = [item.product for item in store.get_all()]
    priced_at = (
        dt.datetime.combine(analysis.date, dt.time(12, 0), tzinfo=dt.timezone.utc)
        if analysis.date is not None
        else None
    )

    records: List[SanitizeResult] = []
    for detected in analysis.products:
        if not detected.name.strip():
            records.append(SkipReason.MISSING_NAME)
            continue
        product = _resolve_product(detected, lookup, known, match_threshold)
        records.append(
            ImportCandidate(
                product=product,
                quantity=max(1, detected.quantity or 1),
                price=detected.price,
                store=analysis.store,
                priced_at=priced_at,
            )
        )
        known.append(product)

    logger.info(
        "Ingesting %s product(s) from %s analysis store=%s",
        len(analysis.products),
        analysis.kind.value,
        analysis.store,
    )
    return reconcile(store, records, merge=True)


__all__ = ["AnalysisKind", "DetectedProduct", "ImageAnalysis", "ingest_image_analysis"]

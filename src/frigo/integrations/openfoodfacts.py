"""Open Food Facts barcode lookup."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx
from pydantic import ValidationError

from frigo import __version__
from frigo.config import get_settings
from frigo.errors import InvalidProductDataError, ProductLookupError, ProductNotFoundError
from frigo.inventory.store import InventoryStore
from frigo.models.product import Product

logger = logging.getLogger(__name__)


class ProductLookup(Protocol):
    def fetch_product(self, barcode: str) -> Product:
        ...


class OpenFoodFactsClient:
    """Minimal client for the Open Food Facts v2 product endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.product_lookup_base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.product_lookup_timeout
        self._client = client

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": f"frigo/{__version__}", "Accept": "application/json"}

    def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return self._client.get(url, headers=self._headers(), timeout=self._timeout)
        with httpx.Client() as client:
            return client.get(url, headers=self._headers(), timeout=self._timeout)

    def fetch_product(self, barcode: str) -> Product:
        code = barcode.strip()
        if not code:
            raise ProductNotFoundError("Empty barcode")

        url = f"{self._base_url}/api/v2/product/{code}.json"
        try:
            response = self._get(url)
            response.raise_for_status()
            data: Any = response.json()
        except httpx.HTTPError as exc:
            raise ProductLookupError(f"Product lookup failed for {code}: {exc}") from exc
        except ValueError as exc:
            raise ProductLookupError(f"Product lookup returned invalid JSON for {code}") from exc

        if not isinstance(data, dict):
            raise InvalidProductDataError(f"Unexpected lookup payload for {code}")
        if data.get("status") == 0:
            raise ProductNotFoundError(f"Product {code} not found")
        payload = data.get("product")
        if not isinstance(payload, dict):
            raise InvalidProductDataError(f"Lookup payload for {code} has no product")
        try:
            return Product.from_open_food_facts(payload)
        except ValidationError as exc:
            raise InvalidProductDataError(f"Unusable product data for {code}") from exc


def add_scanned_product(
    store: InventoryStore,
    lookup: ProductLookup,
    barcode: str,
    **add_kwargs: Any,
) -> bool:
    """Look ``barcode`` up and add the product; lookup failures mean nothing is added."""

    try:
        product = lookup.fetch_product(barcode)
    except ProductLookupError as exc:
        logger.warning("Barcode %s could not be resolved: %s", barcode, exc)
        return False
    return store.add(product, **add_kwargs)


__all__ = ["OpenFoodFactsClient", "ProductLookup", "add_scanned_product"]

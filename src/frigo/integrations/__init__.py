"""Collaborators feeding products into the inventory."""

from frigo.integrations.openfoodfacts import OpenFoodFactsClient, ProductLookup, add_scanned_product
from frigo.integrations.vision import (
    AnalysisKind,
    DetectedProduct,
    ImageAnalysis,
    ingest_image_analysis,
)

__all__ = [
    "AnalysisKind",
    "DetectedProduct",
    "ImageAnalysis",
    "OpenFoodFactsClient",
    "ProductLookup",
    "add_scanned_product",
    "ingest_image_analysis",
]

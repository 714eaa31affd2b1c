"""Product data models."""

from __future__ import annotations

from typing import Any, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_BRAND = "Marque inconnue"
NUTRISCORE_GRADES = ("a", "b", "c", "d", "e")

NutrientValue = Union[float, int, str]


def clean_nutrients(raw: Any) -> dict[str, NutrientValue]:
    """Keep the scalar entries of a nutrient mapping, dropping anything else."""

    if not isinstance(raw, Mapping):
        return {}
    return {
        str(key): value
        for key, value in raw.items()
        if isinstance(value, (int, float, str)) and not isinstance(value, bool)
    }


class Product(BaseModel):
    """Purchasable good, either looked up by barcode or entered by hand."""

    name: str = Field(min_length=1)
    brand: str = Field(default=UNKNOWN_BRAND)
    image_url: str = Field(default="")
    ingredients_text: str = Field(default="")
    nutrients: dict[str, NutrientValue] = Field(default_factory=dict)
    quantity_label: str = Field(default="")
    nutriscore_grade: str = Field(default="")

    model_config = ConfigDict(frozen=True)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("brand", mode="before")
    @classmethod
    def _default_brand(cls, value: Any) -> Any:
        if value is None:
            return UNKNOWN_BRAND
        if isinstance(value, str):
            return value.strip() or UNKNOWN_BRAND
        return value

    @field_validator("image_url", "ingredients_text", "quantity_label", mode="before")
    @classmethod
    def _blank_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value

    @field_validator("nutriscore_grade", mode="before")
    @classmethod
    def _normalize_grade(cls, value: Any) -> str:
        if not isinstance(value, str):
            return ""
        grade = value.strip().lower()
        return grade if grade in NUTRISCORE_GRADES else ""

    @classmethod
    def from_open_food_facts(cls, payload: Mapping[str, Any]) -> "Product":
        """Build a product from an Open Food Facts ``product`` object."""

        return cls(
            name=payload.get("product_name") or "",
            brand=payload.get("brands"),
            image_url=payload.get("image_url") or "",
            ingredients_text=payload.get("ingredients_text_with_allergens")
            or payload.get("ingredients_text")
            or "",
            nutrients=clean_nutrients(payload.get("nutriments")),
            quantity_label=payload.get("quantity") or "",
            nutriscore_grade=payload.get("nutriscore_grade") or "",
        )


__all__ = ["Product", "UNKNOWN_BRAND", "NUTRISCORE_GRADES", "clean_nutrients"]

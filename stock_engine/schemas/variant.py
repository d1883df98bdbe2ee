# stock_engine/schemas/variant.py
"""In-memory view of the ``products.variants`` JSON document.

The catalog writes this document out-of-band, so parsing is lenient: unknown
keys are kept and written back untouched, a null ``quantity`` reads as 0 and a
null ``sizeStock`` reads as an empty list.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SizeCell(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    # labels are free text, sometimes numeric ("38")
    size: str | int | float | None = None
    quantity: int = 0

    @field_validator("quantity", mode="before")
    @classmethod
    def null_quantity_is_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @property
    def label(self) -> str:
        return "" if self.size is None else str(self.size)


class ColorVariant(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    color_name: str | None = Field(None, alias="colorName")
    size_stock: list[SizeCell] = Field(default_factory=list, alias="sizeStock")

    @field_validator("size_stock", mode="before")
    @classmethod
    def null_size_stock_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def label(self) -> str:
        return self.color_name or ""


class VariantDocument(BaseModel):
    """Owned copy of a product's variants, exclusive to one adjustment call."""

    variants: list[ColorVariant] = Field(default_factory=list)

    @classmethod
    def from_json(cls, raw: list[dict[str, Any]] | None) -> "VariantDocument":
        return cls.model_validate({"variants": raw or []})

    def to_json(self) -> list[dict[str, Any]]:
        # keys absent from the stored document stay absent
        return [variant.model_dump(by_alias=True, exclude_unset=True) for variant in self.variants]

    def total_quantity(self) -> int:
        return sum(cell.quantity for variant in self.variants for cell in variant.size_stock)

    def color_names(self) -> list[str]:
        return [variant.label for variant in self.variants]

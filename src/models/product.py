"""Product domain models and API schemas."""

from __future__ import annotations

import re

from pydantic import Field, model_validator

from src.models.document import StoreModel

_NON_PRICE_CHARS = re.compile(r"[^\d.]")


def parse_price(price: str | None) -> float:
    """Derive the numeric price from a display string such as ``"25,990,000 ₫"``."""
    if price is None:
        return 0.0
    try:
        return float(_NON_PRICE_CHARS.sub("", price))
    except ValueError:
        return 0.0


class Product(StoreModel):
    """Catalog entry as read from the products collection."""

    id: str = Field(..., description="Store-assigned document id")
    name: str = ""
    price: str = Field("", description="Display price, e.g. '25,990,000 ₫'")
    price_value: float = Field(0.0, description="Always derived from price")
    image_url: str | None = None
    description: str | None = None
    category: str = ""
    brand: str = ""
    stock_quantity: int = 0
    is_featured: bool = False
    is_best_deal: bool = False
    is_flash_sale: bool = False
    has_variants: bool = False
    spec_screen: str | None = None
    spec_processor: str | None = None
    spec_ram: str | None = None
    spec_storage: str | None = None
    average_rating: float = 0.0
    total_reviews: int = 0

    @model_validator(mode="after")
    def _derive_price_value(self) -> Product:
        self.price_value = parse_price(self.price)
        return self


class ProductRatingSummary(StoreModel):
    """Aggregate rating fields written onto a product."""

    product_id: str = Field(..., exclude=True)
    average_rating: float
    total_reviews: int

"""Favorite item models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from src.models.document import StoreModel
from src.models.product import Product


class FavoriteItem(StoreModel):
    """A user's favorite, carrying a snapshot of the product it points to."""

    id: str | None = None
    user_id: str
    product_id: str
    product_name: str = ""
    product_price: str = ""
    product_price_value: float = 0.0
    product_image_url: str | None = None
    product_category: str = ""
    added_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_product(cls, user_id: str, product: Product) -> FavoriteItem:
        now = datetime.now(UTC)
        return cls(
            user_id=user_id,
            product_id=product.id,
            product_name=product.name,
            product_price=product.price,
            product_price_value=product.price_value,
            product_image_url=product.image_url,
            product_category=product.category,
            added_at=now,
            updated_at=now,
        )


class FavoriteRequest(BaseModel):
    """Payload naming the product to add or toggle."""

    product_id: str = Field(..., min_length=1)


class FavoriteToggleResponse(BaseModel):
    product_id: str
    favorited: bool
    count: int


class FavoriteListResponse(BaseModel):
    user_id: str | None
    count: int
    items: list[FavoriteItem] = Field(default_factory=list)

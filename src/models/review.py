"""Review models and API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.models.document import StoreModel

MIN_RATING = 1
MAX_RATING = 5
MIN_COMMENT_LENGTH = 10
MAX_COMMENT_LENGTH = 500
MAX_REVIEW_IMAGES = 5


class Review(StoreModel):
    """A permanent review of a purchased product variant."""

    review_id: str | None = Field(None, description="Also the document id")
    order_id: str = ""
    user_id: str = ""
    user_name: str = ""
    product_id: str = ""
    product_name: str = ""
    variant_id: str | None = None
    variant_name: str | None = None
    variant_color: str | None = None
    variant_ram: str | None = None
    variant_storage: str | None = None
    rating: float = 0.0
    comment: str = ""
    review_images: list[str] = Field(default_factory=list)
    is_verified_purchase: bool = False
    avatar_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_images(self) -> bool:
        return bool(self.review_images)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> Review:
        return cls.model_validate({**data, "reviewId": data.get("reviewId") or doc_id})


class ReviewRequest(BaseModel):
    """Review submission coming from a completed order."""

    order_id: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    product_name: str = ""
    variant_id: str | None = None
    variant_name: str | None = None
    variant_color: str | None = None
    variant_ram: str | None = None
    variant_storage: str | None = None
    rating: float = Field(..., ge=MIN_RATING, le=MAX_RATING)
    comment: str = Field(..., min_length=MIN_COMMENT_LENGTH, max_length=MAX_COMMENT_LENGTH)
    review_images: list[str] = Field(default_factory=list, max_length=MAX_REVIEW_IMAGES)
    user_name: str = ""
    avatar_url: str | None = None

    @field_validator("order_id", "product_id", "comment", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class RatingSummary(BaseModel):
    """Rating breakdown for a list of reviews."""

    average_rating: float
    total_reviews: int
    distribution: dict[int, int]


class ReviewStatusResponse(BaseModel):
    order_id: str
    has_review: bool
    can_review: bool

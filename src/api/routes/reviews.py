"""Routes for submitting and listing reviews."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.errors import to_http_exception
from src.models.review import RatingSummary, Review, ReviewRequest, ReviewStatusResponse
from src.services.container import ServiceContainer, get_services
from src.services.errors import ConsistencyError
from src.services.reviews import stats

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews"])

ServicesDependency = Annotated[ServiceContainer, Depends(get_services)]


@router.post(
    "/reviews",
    response_model=Review,
    status_code=status.HTTP_201_CREATED,
    summary="Review a completed order",
)
async def submit_review(payload: ReviewRequest, services: ServicesDependency) -> Review:
    user_id = services.session.current_user_id()
    if user_id is None:
        raise HTTPException(status_code=401, detail="Sign in to write a review")

    try:
        return await services.reviews.submit_review(payload, user_id)
    except ConsistencyError as exc:
        logger.warning("Review for order %s rejected: %s", payload.order_id, exc)
        raise to_http_exception(exc) from exc


@router.get(
    "/products/{product_id}/reviews",
    response_model=list[Review],
    summary="List a product's reviews, newest first",
)
async def list_product_reviews(
    product_id: str,
    services: ServicesDependency,
    rating: Annotated[int, Query(ge=0, le=5)] = 0,
    verified_only: bool = False,
    with_images: bool = False,
) -> list[Review]:
    try:
        reviews = await services.reviews.get_reviews_by_product(product_id)
    except ConsistencyError as exc:
        raise to_http_exception(exc) from exc

    reviews = stats.filter_by_rating(reviews, rating)
    if verified_only:
        reviews = stats.filter_verified(reviews)
    if with_images:
        reviews = stats.filter_with_images(reviews)
    return reviews


@router.get(
    "/products/{product_id}/reviews/summary",
    response_model=RatingSummary,
    summary="Rating breakdown of a product's reviews",
)
async def product_rating_summary(
    product_id: str, services: ServicesDependency
) -> RatingSummary:
    try:
        reviews = await services.reviews.get_reviews_by_product(product_id)
    except ConsistencyError as exc:
        raise to_http_exception(exc) from exc
    return stats.summarize(reviews)


@router.get(
    "/users/{user_id}/reviews",
    response_model=list[Review],
    summary="List a user's reviews, newest first",
)
async def list_user_reviews(user_id: str, services: ServicesDependency) -> list[Review]:
    try:
        return await services.reviews.get_user_reviews(user_id)
    except ConsistencyError as exc:
        raise to_http_exception(exc) from exc


@router.get(
    "/orders/{order_id}/review-status",
    response_model=ReviewStatusResponse,
    summary="Whether an order can still be reviewed",
)
async def order_review_status(
    order_id: str, services: ServicesDependency
) -> ReviewStatusResponse:
    try:
        reviewed = await services.reviews.has_order_been_reviewed(order_id)
    except ConsistencyError as exc:
        raise to_http_exception(exc) from exc
    return ReviewStatusResponse(order_id=order_id, has_review=reviewed, can_review=not reviewed)

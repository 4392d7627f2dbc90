"""Routes managing the session user's favorites."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from src.api.errors import to_http_exception
from src.models.favorite import (
    FavoriteItem,
    FavoriteListResponse,
    FavoriteRequest,
    FavoriteToggleResponse,
)
from src.services.container import ServiceContainer, get_services
from src.services.errors import ConsistencyError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/favorites", tags=["favorites"])

ServicesDependency = Annotated[ServiceContainer, Depends(get_services)]


@router.get("", response_model=FavoriteListResponse, summary="List favorites")
async def list_favorites(
    services: ServicesDependency, refresh: bool = False
) -> FavoriteListResponse:
    favorites = services.favorites
    if refresh:
        try:
            await favorites.refresh()
        except ConsistencyError as exc:
            raise to_http_exception(exc) from exc
    return FavoriteListResponse(
        user_id=services.session.current_user_id(),
        count=favorites.count,
        items=favorites.items,
    )


@router.post(
    "",
    response_model=FavoriteItem,
    status_code=status.HTTP_201_CREATED,
    summary="Add a product to favorites",
)
async def add_favorite(
    payload: FavoriteRequest, services: ServicesDependency
) -> FavoriteItem:
    try:
        product = await services.catalog.get_product(payload.product_id)
        return await services.favorites.add(product)
    except ConsistencyError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/toggle",
    response_model=FavoriteToggleResponse,
    summary="Add the product if absent, remove it otherwise",
)
async def toggle_favorite(
    payload: FavoriteRequest, services: ServicesDependency
) -> FavoriteToggleResponse:
    try:
        product = await services.catalog.get_product(payload.product_id)
        favorited = await services.favorites.toggle(product)
    except ConsistencyError as exc:
        raise to_http_exception(exc) from exc
    return FavoriteToggleResponse(
        product_id=product.id,
        favorited=favorited,
        count=services.favorites.count,
    )


@router.delete(
    "/by-product/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove the favorite pointing at a product",
)
async def remove_favorite_by_product(
    product_id: str, services: ServicesDependency
) -> None:
    try:
        await services.favorites.remove_by_product(product_id)
    except ConsistencyError as exc:
        raise to_http_exception(exc) from exc


@router.delete(
    "/{favorite_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a favorite by id",
)
async def remove_favorite(favorite_id: str, services: ServicesDependency) -> None:
    try:
        await services.favorites.remove(favorite_id)
    except ConsistencyError as exc:
        raise to_http_exception(exc) from exc

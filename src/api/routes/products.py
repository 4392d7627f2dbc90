"""Routes serving the cached product catalog."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from src.api.errors import to_http_exception
from src.models.product import Product
from src.services.container import ServiceContainer, get_services
from src.services.errors import ConsistencyError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

ServicesDependency = Annotated[ServiceContainer, Depends(get_services)]


@router.get(
    "",
    response_model=list[Product],
    summary="List the catalog, refreshing it from the store when stale",
)
async def list_products(
    services: ServicesDependency,
    force_refresh: Annotated[bool, Query()] = False,
) -> list[Product]:
    try:
        return await services.catalog.load(force_refresh=force_refresh)
    except ConsistencyError as exc:
        logger.warning("Catalog load failed: %s", exc)
        raise to_http_exception(exc) from exc


@router.post(
    "/cache/invalidate",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Drop the cached catalog",
)
async def invalidate_catalog(services: ServicesDependency) -> None:
    services.catalog.invalidate()


@router.get("/{product_id}", response_model=Product, summary="Fetch one product")
async def get_product(product_id: str, services: ServicesDependency) -> Product:
    try:
        return await services.catalog.get_product(product_id)
    except ConsistencyError as exc:
        raise to_http_exception(exc) from exc

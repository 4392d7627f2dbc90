"""System-level routes such as health checks."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from src.config import settings
from src.services.container import ServiceContainer, get_services
from src.services.storage.redis_store import RedisDocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/")
async def read_root() -> dict[str, str]:
    """Identify the service."""

    return {"service": "phoneshop-consistency", "version": "1.0.0"}


@router.get("/health")
async def health_check(
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> dict[str, str]:
    """Health check endpoint with document store connectivity check."""

    store_status = "unknown"
    if isinstance(services.store, RedisDocumentStore):
        try:
            await services.store.client.ping()
            store_status = "connected"
        except Exception:
            logger.debug("Store ping failed", exc_info=True)
            store_status = "disconnected"

    return {
        "status": "healthy",
        "store": store_status,
        "environment": settings.ENVIRONMENT,
    }

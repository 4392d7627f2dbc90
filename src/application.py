"""FastAPI application factory and bootstrap helpers."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes import include_api_routes
from src.config import settings
from src.services.container import ServiceContainer, create_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the shared services on startup and settle cascades on shutdown."""
    services: ServiceContainer | None = getattr(app.state, "services", None)
    if services is None:
        services = create_services()
        app.state.services = services
        logger.info("Services initialized against %s", settings.REDIS_URL)

    yield

    if services.reviews.pending_cascades:
        logger.info(
            "Waiting for %d review cascades before shutdown",
            services.reviews.pending_cascades,
        )
    await services.reviews.drain()


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Phone Shop Consistency Service",
        description="Catalog cache, favorites and review consistency for the phone shop",
        version="1.0.0",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    _configure_cors(app)
    include_api_routes(app)

    return app


def _configure_cors(app: FastAPI) -> None:
    """Allow broad access in non-production environments."""

    if settings.is_production:
        return

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

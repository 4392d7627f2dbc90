"""Composition root: the single shared instance of every service."""

from __future__ import annotations

from dataclasses import dataclass

import redis.asyncio as redis  # type: ignore[import]
from fastapi import Request

from src.services.catalog.cache import CatalogCache
from src.services.favorites.service import FavoritesService
from src.services.reviews.coordinator import ReviewCoordinator
from src.services.session import SessionIdentity
from src.services.storage.document_store import DocumentStore
from src.services.storage.redis_store import create_document_store


@dataclass
class ServiceContainer:
    store: DocumentStore
    session: SessionIdentity
    catalog: CatalogCache
    favorites: FavoritesService
    reviews: ReviewCoordinator


def build_services(
    store: DocumentStore, session: SessionIdentity | None = None
) -> ServiceContainer:
    session = session or SessionIdentity()
    return ServiceContainer(
        store=store,
        session=session,
        catalog=CatalogCache(store),
        favorites=FavoritesService(store, session),
        reviews=ReviewCoordinator(store),
    )


def create_services(client: redis.Redis | None = None) -> ServiceContainer:
    """Factory wiring the services onto the Redis document store."""
    return build_services(create_document_store(client))


def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the application's services."""

    return request.app.state.services

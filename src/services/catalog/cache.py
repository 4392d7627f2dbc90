"""In-memory product catalog with a staleness window and single-flight loads."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from pydantic import ValidationError

from src.config import settings
from src.models.product import Product
from src.services.errors import EmptyCatalogError, NotFoundError
from src.services.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)


class CatalogCache:
    """Sole gateway between the application and the products collection.

    Concurrent ``load`` calls share one store query: callers arriving while a
    load is running await that load's result instead of starting another.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        collection: str | None = None,
        ttl_seconds: float | None = None,
        allow_empty: bool | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.collection = collection or settings.PRODUCTS_COLLECTION
        self.ttl_seconds = (
            settings.CATALOG_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        )
        self.allow_empty = (
            settings.CATALOG_ALLOW_EMPTY if allow_empty is None else allow_empty
        )
        self._clock = clock
        self._lock = asyncio.Lock()
        self._products: list[Product] | None = None
        self._loaded_at: float | None = None
        self._inflight: asyncio.Task[list[Product]] | None = None
        self._generation = 0

    @property
    def cached_products(self) -> list[Product] | None:
        return None if self._products is None else list(self._products)

    @property
    def load_in_flight(self) -> bool:
        return self._inflight is not None

    def _is_fresh(self) -> bool:
        if self._products is None or self._loaded_at is None:
            return False
        return self._clock() - self._loaded_at < self.ttl_seconds

    async def load(self, force_refresh: bool = False) -> list[Product]:
        """Return the catalog, querying the store only when stale or forced."""
        async with self._lock:
            if self._inflight is None:
                if not force_refresh and self._is_fresh():
                    logger.debug("Serving %d cached products", len(self._products))
                    return list(self._products)
                self._inflight = asyncio.create_task(self._fetch(self._generation))
                self._inflight.add_done_callback(self._on_fetch_done)
            else:
                logger.debug("Joining catalog load already in flight")
            task = self._inflight

        # Shielded so a cancelled caller does not abort the load for the others.
        return list(await asyncio.shield(task))

    async def get_product(self, product_id: str) -> Product:
        for product in await self.load():
            if product.id == product_id:
                return product
        logger.warning("Product not found with id %s", product_id)
        raise NotFoundError(f"Product {product_id} not found")

    def invalidate(self) -> None:
        """Forget the cache so the next ``load`` hits the store."""
        self._products = None
        self._loaded_at = None
        self._inflight = None
        self._generation += 1
        logger.info("Catalog cache invalidated")

    async def _fetch(self, generation: int) -> list[Product]:
        logger.info("Loading products from %s", self.collection)
        documents = await self.store.query(self.collection)

        products: list[Product] = []
        for doc_id, data in documents:
            try:
                products.append(Product.from_document(doc_id, data))
            except ValidationError as exc:
                logger.error("Skipping malformed product %s: %s", doc_id, exc)

        if not documents and not self.allow_empty:
            raise EmptyCatalogError(f"No products found in {self.collection}")

        if generation == self._generation:
            self._products = products
            self._loaded_at = self._clock()
        else:
            logger.debug("Discarding catalog load started before invalidation")

        logger.info("Loaded %d products", len(products))
        return products

    def _on_fetch_done(self, task: asyncio.Task[list[Product]]) -> None:
        if self._inflight is task:
            self._inflight = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Catalog load failed: %s", exc)

"""Favorites of the signed-in user, kept in sync with the document store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol

from pydantic import ValidationError

from src.config import settings
from src.models.favorite import FavoriteItem
from src.models.product import Product
from src.services.errors import (
    AlreadyFavoritedError,
    NotFoundError,
    NotSignedInError,
    StoreError,
)
from src.services.session import IdentityProvider
from src.services.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)


class FavoritesListener(Protocol):
    """Receives a broadcast after every refresh."""

    def on_favorites_updated(self, items: list[FavoriteItem]) -> None: ...

    def on_favorite_count_changed(self, count: int) -> None: ...

    def on_favorite_error(self, message: str) -> None: ...


def sort_favorites(items: list[FavoriteItem]) -> list[FavoriteItem]:
    """Newest first; items without ``added_at`` go last."""
    dated = sorted(
        (item for item in items if item.added_at is not None),
        key=lambda item: item.added_at,
        reverse=True,
    )
    return dated + [item for item in items if item.added_at is None]


class FavoritesService:
    """Authoritative in-memory view of the current user's favorites.

    Mutations for one ``(user, product)`` pair run one at a time, so the
    existence check and the insert or delete that follows it cannot interleave
    with another mutation of the same pair. Refresh results are applied in the
    order the refreshes were issued; an older result arriving late is dropped.
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        collection: str | None = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.collection = collection or settings.FAVORITES_COLLECTION
        self._items: list[FavoriteItem] = []
        self._listeners: list[FavoritesListener] = []
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_waiters: dict[tuple[str, str], int] = {}
        self._refresh_issued = 0
        self._refresh_applied = 0

    # Listener management

    def subscribe(self, listener: FavoritesListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: FavoritesListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify_updated(self) -> None:
        items = list(self._items)
        for listener in tuple(self._listeners):
            try:
                listener.on_favorites_updated(list(items))
                listener.on_favorite_count_changed(len(items))
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Favorites listener %r failed", listener)

    def _notify_error(self, message: str) -> None:
        for listener in tuple(self._listeners):
            try:
                listener.on_favorite_error(message)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Favorites listener %r failed", listener)

    # Store synchronization

    async def refresh(self) -> list[FavoriteItem]:
        """Reload the current user's favorites and broadcast them."""
        self._refresh_issued += 1
        ticket = self._refresh_issued
        user_id = self.identity.current_user_id()

        if user_id is None:
            logger.info("No signed-in user, clearing favorites")
            self._apply(ticket, [])
            return self.items

        try:
            documents = await self.store.query(self.collection, [("userId", user_id)])
        except StoreError as exc:
            logger.error("Failed to load favorites for user %s: %s", user_id, exc)
            self._notify_error(f"Could not load favorites: {exc}")
            raise

        if self.identity.current_user_id() != user_id:
            logger.debug("Discarding favorites of %s, session user changed", user_id)
            return self.items

        items: list[FavoriteItem] = []
        for doc_id, data in documents:
            try:
                items.append(FavoriteItem.from_document(doc_id, data))
            except ValidationError as exc:
                logger.error("Skipping malformed favorite %s: %s", doc_id, exc)

        self._apply(ticket, sort_favorites(items))
        logger.debug("Loaded %d favorites for user %s", len(items), user_id)
        return self.items

    def _apply(self, ticket: int, items: list[FavoriteItem]) -> None:
        if ticket < self._refresh_applied:
            logger.debug(
                "Dropping stale favorites refresh",
                extra={"ticket": ticket, "applied": self._refresh_applied},
            )
            return
        self._refresh_applied = ticket
        self._items = items
        self._notify_updated()

    async def _resync(self) -> None:
        # The mutation already succeeded; a failed reload has been broadcast
        # to listeners and must not turn it into a failure.
        try:
            await self.refresh()
        except StoreError:
            logger.warning("Favorites changed but the reload failed", exc_info=True)

    @asynccontextmanager
    async def _pair_lock(self, user_id: str, product_id: str) -> AsyncIterator[None]:
        key = (user_id, product_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_waiters[key] = self._lock_waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_waiters[key] -= 1
            if not self._lock_waiters[key]:
                del self._lock_waiters[key]
                del self._locks[key]

    def _require_user(self) -> str:
        user_id = self.identity.current_user_id()
        if user_id is None:
            raise NotSignedInError("Sign in to manage favorites")
        return user_id

    # Mutations

    async def is_favorite(self, user_id: str, product_id: str) -> tuple[bool, str | None]:
        """Check the store (not the local list) for the pair."""
        matches = await self.store.query(
            self.collection,
            [("userId", user_id), ("productId", product_id)],
            limit=1,
        )
        if not matches:
            return False, None
        return True, matches[0][0]

    async def _insert(self, user_id: str, product: Product) -> FavoriteItem:
        item = FavoriteItem.from_product(user_id, product)
        item.id = await self.store.insert(self.collection, item.to_document())
        logger.info("Added product %s to favorites of %s", product.id, user_id)
        return item

    async def add(self, product: Product) -> FavoriteItem:
        user_id = self._require_user()
        async with self._pair_lock(user_id, product.id):
            exists, _ = await self.is_favorite(user_id, product.id)
            if exists:
                raise AlreadyFavoritedError(user_id, product.id)
            item = await self._insert(user_id, product)
        await self._resync()
        return item

    async def remove(self, favorite_id: str) -> None:
        """Delete one of the signed-in user's favorites by id."""
        user_id = self._require_user()
        document = await self.store.get_by_id(self.collection, favorite_id)
        if document.get("userId") != user_id:
            # Someone else's favorite is reported exactly like a missing one.
            raise NotFoundError(f"Favorite {favorite_id} not found")
        await self.store.delete(self.collection, favorite_id)
        logger.info("Removed favorite %s", favorite_id)
        await self._resync()

    async def remove_by_product(self, product_id: str) -> None:
        user_id = self._require_user()
        async with self._pair_lock(user_id, product_id):
            exists, favorite_id = await self.is_favorite(user_id, product_id)
            if not exists:
                raise NotFoundError(f"Product {product_id} is not a favorite")
            await self.store.delete(self.collection, favorite_id)
        logger.info("Removed product %s from favorites of %s", product_id, user_id)
        await self._resync()

    async def toggle(self, product: Product) -> bool:
        """Add or remove ``product``; returns True when it is now a favorite."""
        user_id = self._require_user()
        async with self._pair_lock(user_id, product.id):
            exists, favorite_id = await self.is_favorite(user_id, product.id)
            if exists:
                await self.store.delete(self.collection, favorite_id)
                logger.info("Toggled off favorite %s", favorite_id)
            else:
                await self._insert(user_id, product)
        await self._resync()
        return not exists

    # Local queries, possibly stale relative to the store

    @property
    def items(self) -> list[FavoriteItem]:
        return list(self._items)

    @property
    def count(self) -> int:
        return len(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def is_favorite_local(self, product_id: str | None) -> bool:
        return self.get_local(product_id) is not None

    def get_local(self, product_id: str | None) -> FavoriteItem | None:
        if product_id is None:
            return None
        for item in self._items:
            if item.product_id == product_id:
                return item
        return None

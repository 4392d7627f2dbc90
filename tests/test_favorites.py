"""Tests for the favorites service."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from src.models.product import Product
from src.services.errors import (
    AlreadyFavoritedError,
    NotFoundError,
    NotSignedInError,
    UnreachableError,
)
from src.services.favorites.service import FavoritesService
from src.services.session import SessionIdentity


class _RecordingListener:
    def __init__(self) -> None:
        self.updates: list[list] = []
        self.counts: list[int] = []
        self.errors: list[str] = []

    def on_favorites_updated(self, items):
        self.updates.append(items)

    def on_favorite_count_changed(self, count):
        self.counts.append(count)

    def on_favorite_error(self, message):
        self.errors.append(message)


def _product(product_id: str = "iphone-15") -> Product:
    return Product(id=product_id, name="iPhone 15 Pro", price="25,990,000 ₫", category="Phone")


async def _stored_favorites(store, user_id="user-1", product_id="iphone-15"):
    return await store.query(
        "favorites", [("userId", user_id), ("productId", product_id)]
    )


@pytest.fixture()
def favorites(store, session):
    return FavoritesService(store, session)


@pytest.mark.asyncio
async def test_toggle_adds_removes_and_readds(favorites, store):
    product = _product()

    assert await favorites.toggle(product) is True
    assert len(await _stored_favorites(store)) == 1
    assert favorites.is_favorite_local(product.id)

    assert await favorites.toggle(product) is False
    assert await _stored_favorites(store) == []
    assert not favorites.is_favorite_local(product.id)

    assert await favorites.toggle(product) is True
    assert len(await _stored_favorites(store)) == 1


@pytest.mark.asyncio
async def test_concurrent_toggles_never_insert_twice(favorites, store):
    original = store.query

    async def slow_query(*args, **kwargs):
        await asyncio.sleep(0.01)
        return await original(*args, **kwargs)

    store.query = slow_query
    product = _product()

    results = await asyncio.gather(favorites.toggle(product), favorites.toggle(product))

    # Serialized: one add followed by one remove.
    assert sorted(results) == [False, True]
    assert await _stored_favorites(store) == []


@pytest.mark.asyncio
async def test_concurrent_adds_keep_one_favorite(favorites, store):
    original = store.query

    async def slow_query(*args, **kwargs):
        await asyncio.sleep(0.01)
        return await original(*args, **kwargs)

    store.query = slow_query
    product = _product()

    results = await asyncio.gather(
        favorites.add(product), favorites.add(product), return_exceptions=True
    )

    assert sum(isinstance(r, AlreadyFavoritedError) for r in results) == 1
    assert len(await _stored_favorites(store)) == 1


@pytest.mark.asyncio
async def test_add_existing_favorite_conflicts(favorites):
    await favorites.add(_product())

    with pytest.raises(AlreadyFavoritedError):
        await favorites.add(_product())
    assert favorites.count == 1


@pytest.mark.asyncio
async def test_mutations_require_signed_in_user(store):
    favorites = FavoritesService(store, SessionIdentity())

    with pytest.raises(NotSignedInError):
        await favorites.toggle(_product())
    with pytest.raises(NotSignedInError):
        await favorites.add(_product())


@pytest.mark.asyncio
async def test_remove_by_product(favorites, store):
    await favorites.add(_product("galaxy-s24"))

    await favorites.remove_by_product("galaxy-s24")
    assert favorites.is_empty

    with pytest.raises(NotFoundError):
        await favorites.remove_by_product("galaxy-s24")


@pytest.mark.asyncio
async def test_remove_by_id(favorites):
    item = await favorites.add(_product())

    await favorites.remove(item.id)

    assert favorites.get_local(item.product_id) is None


@pytest.mark.asyncio
async def test_remove_rejects_other_users_favorite(favorites, store):
    await store.insert_at("favorites", "theirs", {"userId": "user-2", "productId": "a"})

    with pytest.raises(NotFoundError):
        await favorites.remove("theirs")
    with pytest.raises(NotFoundError):
        await favorites.remove("missing")

    assert await store.get_by_id("favorites", "theirs") == {"userId": "user-2", "productId": "a"}


@pytest.mark.asyncio
async def test_refresh_sorts_timestamps_with_and_without_offset(favorites, store):
    await store.insert_at("favorites", "aware", {"userId": "user-1", "productId": "a", "addedAt": "2024-01-01T00:00:00Z"})
    await store.insert_at("favorites", "naive", {"userId": "user-1", "productId": "b", "addedAt": "2024-02-01T00:00:00"})

    items = await favorites.refresh()

    assert [item.id for item in items] == ["naive", "aware"]
    assert items[0].added_at == datetime(2024, 2, 1, tzinfo=UTC)


@pytest.mark.asyncio
async def test_refresh_sorts_newest_first_with_undated_last(favorites, store):
    await store.insert_at("favorites", "old", {"userId": "user-1", "productId": "a", "addedAt": "2024-01-01T00:00:00Z"})
    await store.insert_at("favorites", "undated", {"userId": "user-1", "productId": "b"})
    await store.insert_at("favorites", "new", {"userId": "user-1", "productId": "c", "addedAt": "2024-03-01T00:00:00Z"})
    await store.insert_at("favorites", "other", {"userId": "user-2", "productId": "d", "addedAt": "2024-04-01T00:00:00Z"})

    items = await favorites.refresh()

    assert [item.id for item in items] == ["new", "old", "undated"]
    assert items[0].added_at == datetime(2024, 3, 1, tzinfo=UTC)


@pytest.mark.asyncio
async def test_listeners_receive_updates_and_counts(favorites):
    listener = _RecordingListener()
    favorites.subscribe(listener)
    favorites.subscribe(listener)

    await favorites.add(_product())

    assert listener.counts == [1]
    assert [item.product_id for item in listener.updates[-1]] == ["iphone-15"]


@pytest.mark.asyncio
async def test_anonymous_refresh_clears_items(favorites, session):
    listener = _RecordingListener()
    await favorites.add(_product())
    favorites.subscribe(listener)

    session.sign_out()
    assert await favorites.refresh() == []

    assert listener.updates == [[]]
    assert listener.counts == [0]
    assert listener.errors == []


@pytest.mark.asyncio
async def test_refresh_failure_notifies_error_and_keeps_items(favorites, store):
    await favorites.add(_product())
    listener = _RecordingListener()
    favorites.subscribe(listener)
    store.query = AsyncMock(side_effect=UnreachableError("timed out"))

    with pytest.raises(UnreachableError):
        await favorites.refresh()

    assert len(listener.errors) == 1
    assert favorites.count == 1


@pytest.mark.asyncio
async def test_unsubscribe_during_broadcast_is_safe(favorites):
    second = _RecordingListener()

    class _Unsubscriber(_RecordingListener):
        def on_favorites_updated(self, items):
            super().on_favorites_updated(items)
            favorites.unsubscribe(self)
            favorites.unsubscribe(second)

    first = _Unsubscriber()
    favorites.subscribe(first)
    favorites.subscribe(second)

    await favorites.refresh()
    await favorites.refresh()

    assert len(first.updates) == 1
    # The broadcast already in progress still reaches the second listener.
    assert len(second.updates) == 1


@pytest.mark.asyncio
async def test_stale_refresh_result_is_dropped(favorites, store):
    await store.insert_at("favorites", "f1", {"userId": "user-1", "productId": "a"})
    original = store.query
    calls = 0

    async def first_call_slow(*args, **kwargs):
        nonlocal calls
        calls += 1
        snapshot = await original(*args, **kwargs)
        if calls == 1:
            await asyncio.sleep(0.05)
        return snapshot

    store.query = first_call_slow

    slow = asyncio.create_task(favorites.refresh())
    await asyncio.sleep(0.01)
    await store.delete("favorites", "f1")
    await favorites.refresh()
    await slow

    assert favorites.items == []

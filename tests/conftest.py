"""Pytest configuration and fixtures for the consistency service."""

import pytest
import pytest_asyncio
from fakeredis import aioredis as fakeredis
from httpx import ASGITransport, AsyncClient

from src.application import create_app
from src.services.container import build_services
from src.services.session import SessionIdentity
from src.services.storage.redis_store import RedisDocumentStore

PRODUCTS = {
    "iphone-15": {
        "name": "iPhone 15 Pro",
        "price": "25,990,000 ₫",
        "category": "Phone",
        "brand": "Apple",
        "stockQuantity": 12,
        "isFeatured": True,
    },
    "galaxy-s24": {
        "name": "Galaxy S24",
        "price": "19,990,000 ₫",
        "category": "Phone",
        "brand": "Samsung",
    },
    "case-basic": {
        "name": "Silicone Case",
        "price": "100,000 ₫",
        "category": "Accessory",
    },
}


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "asyncio: marks tests as async tests")


@pytest_asyncio.fixture()
async def redis_client():
    """Provide a fake Redis client for each test."""
    client = fakeredis.FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushdb()
        await client.aclose()


@pytest.fixture()
def store(redis_client):
    return RedisDocumentStore(redis_client, prefix="test:")


@pytest_asyncio.fixture()
async def seeded_store(store):
    for product_id, fields in PRODUCTS.items():
        await store.insert_at("PhoneDB", product_id, fields)
    return store


@pytest.fixture()
def session():
    return SessionIdentity("user-1")


@pytest_asyncio.fixture()
async def services(seeded_store, session):
    container = build_services(seeded_store, session)
    yield container
    await container.reviews.drain()


@pytest_asyncio.fixture()
async def client(services):
    """Return an HTTPX async client pointing at the FastAPI app."""
    app = create_app(services)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client

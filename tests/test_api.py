"""Tests for the HTTP surface."""

import pytest


@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"service": "phoneshop-consistency", "version": "1.0.0"}


@pytest.mark.asyncio
async def test_health_reports_store(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["store"] == "connected"


@pytest.mark.asyncio
async def test_list_and_get_products(client):
    response = await client.get("/products")
    assert response.status_code == 200
    products = {p["id"]: p for p in response.json()}
    assert products["iphone-15"]["priceValue"] == 25990000.0

    response = await client.get("/products/case-basic")
    assert response.status_code == 200
    assert response.json()["name"] == "Silicone Case"

    response = await client.get("/products/unknown")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_favorite_toggle_flow(client):
    response = await client.post("/favorites/toggle", json={"product_id": "iphone-15"})
    assert response.status_code == 200
    assert response.json() == {"product_id": "iphone-15", "favorited": True, "count": 1}

    response = await client.post("/favorites", json={"product_id": "iphone-15"})
    assert response.status_code == 409

    response = await client.get("/favorites")
    body = response.json()
    assert body["count"] == 1
    assert body["items"][0]["productName"] == "iPhone 15 Pro"

    response = await client.delete("/favorites/by-product/iphone-15")
    assert response.status_code == 204
    response = await client.delete("/favorites/by-product/iphone-15")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_favorites_need_session(client):
    response = await client.delete("/session")
    assert response.status_code == 204

    response = await client.post("/favorites/toggle", json={"product_id": "iphone-15"})
    assert response.status_code == 401

    response = await client.post("/session", json={"user_id": "user-9"})
    assert response.status_code == 200
    assert response.json() == {"user_id": "user-9", "count": 0, "items": []}


@pytest.mark.asyncio
async def test_review_submission_and_listing(client, services):
    await services.store.insert_at("orders", "o1", {"status": "DELIVERED"})
    payload = {
        "order_id": "o1",
        "product_id": "galaxy-s24",
        "rating": 4,
        "comment": "Bright screen, decent camera.",
    }

    response = await client.post("/reviews", json=payload)
    assert response.status_code == 201
    assert response.json()["isVerifiedPurchase"] is True

    response = await client.post("/reviews", json=payload)
    assert response.status_code == 409

    await services.reviews.drain()
    product = await services.store.get_by_id("PhoneDB", "galaxy-s24")
    assert product["totalReviews"] == 1

    response = await client.get("/orders/o1/review-status")
    assert response.json() == {"order_id": "o1", "has_review": True, "can_review": False}

    response = await client.get("/products/galaxy-s24/reviews", params={"rating": 4})
    assert [r["orderId"] for r in response.json()] == ["o1"]

    response = await client.get("/products/galaxy-s24/reviews/summary")
    assert response.json()["total_reviews"] == 1

    response = await client.get("/users/user-1/reviews")
    assert len(response.json()) == 1


@pytest.mark.asyncio
async def test_invalid_review_rejected(client):
    response = await client.post(
        "/reviews",
        json={"order_id": "o1", "product_id": "p1", "rating": 9, "comment": "x"},
    )
    assert response.status_code == 422

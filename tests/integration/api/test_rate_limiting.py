"""
Integration tests for the route rate limit gate
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from src.app.services.counter_store import CounterStoreError
from src.app.services.rate_limiter import RateLimiter, build_policies

LOGIN = {"email": "nobody@example.com", "password": "Wr0ng!Pass"}


@pytest.mark.asyncio
async def test_login_gate_blocks_fourth_attempt(client: AsyncClient):
    for _ in range(3):
        response = await client.post("/auth/login", json=LOGIN)
        assert response.status_code == 401

    before = datetime.now(UTC)
    response = await client.post("/auth/login", json=LOGIN)

    assert response.status_code == 429
    error = response.json()["error"]
    assert error["code"] == "RATE_LIMIT_EXCEEDED"
    assert "Too many login attempts" in error["message"]

    details = error["rate_limit"]
    assert details["policy_type"] == "login"
    assert details["current_count"] == 4
    assert details["limit"] == 3
    assert 0 < details["remaining_seconds"] <= 900
    reset_at = datetime.fromisoformat(details["reset_at"])
    assert reset_at >= before + timedelta(seconds=details["remaining_seconds"] - 1)

    assert response.headers["X-RateLimit-Limit"] == "3"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["X-RateLimit-Window"] == "900"
    assert response.headers["Retry-After"] == str(details["remaining_seconds"])


@pytest.mark.asyncio
async def test_allowed_response_carries_headers(client: AsyncClient):
    response = await client.post("/auth/login", json=LOGIN)

    assert response.status_code == 401
    assert response.headers["X-RateLimit-Limit"] == "3"
    assert response.headers["X-RateLimit-Remaining"] == "2"
    assert "X-RateLimit-Reset" in response.headers
    assert "X-RateLimit-Reset-Time" in response.headers


@pytest.mark.asyncio
async def test_clients_counted_separately(client: AsyncClient):
    for _ in range(3):
        await client.post("/auth/login", json=LOGIN, headers={"X-Forwarded-For": "198.51.100.1"})

    blocked = await client.post("/auth/login", json=LOGIN, headers={"X-Forwarded-For": "198.51.100.1"})
    other = await client.post(
        "/auth/login", json=LOGIN, headers={"X-Forwarded-For": "198.51.100.2, 10.0.0.1"}
    )

    assert blocked.status_code == 429
    assert other.status_code == 401
    assert other.headers["X-RateLimit-Remaining"] == "2"


@pytest.mark.asyncio
async def test_unlimited_route_has_no_headers(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert "X-RateLimit-Limit" not in response.headers


@pytest.mark.asyncio
async def test_limiter_failure_returns_503(app, client: AsyncClient):
    limiter = MagicMock()
    limiter.check = AsyncMock(side_effect=RuntimeError("boom"))
    app.state.rate_limiter = limiter

    response = await client.post("/auth/login", json=LOGIN)

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "RATE_LIMITER_UNAVAILABLE"


@pytest.mark.asyncio
async def test_counter_store_outage_fails_open(app, client: AsyncClient):
    store = MagicMock()
    store.increment_with_expiry = AsyncMock(side_effect=CounterStoreError("connection refused"))
    app.state.rate_limiter = RateLimiter(store, build_policies("production"))

    for _ in range(5):
        response = await client.post("/auth/login", json=LOGIN)
        assert response.status_code == 401

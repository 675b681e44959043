"""Error responses share the RFC 7807 Problem Details shape."""

import pytest
from httpx import AsyncClient


pytestmark = pytest.mark.integration


async def test_unknown_route(client: AsyncClient):
    response = await client.get("/api/v1/does-not-exist")

    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "not_found"
    assert data["status"] == 404
    assert data["instance"] == "/api/v1/does-not-exist"


async def test_wrong_method(client: AsyncClient):
    response = await client.get("/api/v1/admin/auth/login")

    assert response.status_code == 405
    assert response.json()["code"] == "method_not_allowed"


async def test_unauthorized_carries_challenge(client: AsyncClient):
    response = await client.get("/api/v1/admin/auth/profile")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert response.headers["content-type"] == "application/json"


async def test_trace_id_matches_request_id(client: AsyncClient):
    response = await client.get(
        "/api/v1/admin/auth/profile", headers={"X-Request-ID": "req-123"}
    )

    assert response.json()["trace_id"] == "req-123"
    assert response.headers["X-Request-ID"] == "req-123"


async def test_tenant_errors_use_the_same_shape(client: AsyncClient):
    response = await client.get(
        "/api/v1/admin/auth/profile", headers={"X-Tenant-Slug": "missing"}
    )

    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "tenant_not_found"
    assert data["title"] == "Tenant Not Found"
    assert data["resource"] == "tenant"


async def test_oversized_request_id_is_replaced(client: AsyncClient):
    response = await client.get("/health/live", headers={"X-Request-ID": "x" * 200})

    request_id = response.headers["X-Request-ID"]
    assert request_id != "x" * 200
    assert len(request_id) == 36

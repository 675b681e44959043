"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from sqlalchemy.exc import SQLAlchemyError

from clinic_core import __version__
from clinic_core.core.database import get_db


def _override_db(app: FastAPI, session: MagicMock) -> None:
    async def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def healthy_db(app: FastAPI) -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock()
    _override_db(app, session)
    return session


@pytest.fixture
def redis_pool() -> MagicMock:
    pool = MagicMock()
    pool.ping = AsyncMock(return_value=True)
    with patch("clinic_core.core.jobs.registry.get_arq_pool", AsyncMock(return_value=pool)):
        yield pool


async def test_liveness_endpoint(client: AsyncClient):
    """Test that liveness endpoint returns 200."""
    response = await client.get("/health/live")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "alive"


async def test_liveness_needs_no_tenant(client: AsyncClient):
    """Health checks are exempt from tenant resolution."""
    response = await client.get("/health/live", headers={"X-Tenant-Slug": "nobody"})

    assert response.status_code == 200


async def test_readiness_endpoint(client: AsyncClient, healthy_db, redis_pool):
    """Test that readiness endpoint returns 200 with healthy checks."""
    response = await client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok", "redis": "ok"}
    healthy_db.execute.assert_awaited_once()


async def test_readiness_without_arq_pool(client: AsyncClient, healthy_db):
    """The pool is only created by the lifespan; without it the app is degraded."""
    not_initialized = AsyncMock(side_effect=RuntimeError("ARQ pool not initialized"))
    with patch("clinic_core.core.jobs.registry.get_arq_pool", not_initialized):
        response = await client.get("/health/ready")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["database"] == "ok"
    assert data["checks"]["redis"] == "RuntimeError"


async def test_readiness_database_down(app: FastAPI, client: AsyncClient, redis_pool):
    session = MagicMock()
    session.execute = AsyncMock(side_effect=SQLAlchemyError("connection refused"))
    _override_db(app, session)

    response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["checks"]["database"] == "SQLAlchemyError"


async def test_info_endpoint(client: AsyncClient):
    """Test that info endpoint returns app metadata."""
    response = await client.get("/info")

    assert response.status_code == 200
    data = response.json()
    assert data["version"] == __version__
    assert "app" in data
    assert "environment" in data
    assert data["tenant_header"] == "X-Tenant-Slug"
    assert data["tenant_query_param"] == "tenant"

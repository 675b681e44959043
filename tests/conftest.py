"""Pytest configuration and shared fixtures.

Tests run without a database: services receive in-memory repositories
from ``tests.fakes`` and HTTP tests override the session dependency.
"""

from collections.abc import AsyncIterator, Iterator
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from clinic_core.config import Settings
from clinic_core.core.auth import dependencies as auth_dependencies
from clinic_core.core.auth.service import StaffAuthService, get_auth_service
from clinic_core.core.database import get_db
from clinic_core.core.permissions import decorators as permission_decorators
from clinic_core.core.tenancy import middleware as tenancy_middleware
from clinic_core.core.tenancy.context import TenantContext
from clinic_core.main import create_app
from clinic_core.modules.staff.services import StaffService, get_staff_service
from clinic_core.modules.tenants.models import Tenant
from tests.factories import TenantFactory
from tests.fakes import (
    FakeClock,
    FakePasswordHasher,
    FakeTokenIssuer,
    FakeTotpVerifier,
    InMemoryInvitationTokenRepository,
    InMemoryPermissionStore,
    InMemoryRefreshTokenRepository,
    InMemoryStaffRepository,
    InMemoryTenantLookup,
    make_db_session,
)


@pytest.fixture(autouse=True)
def _clear_log_context() -> Iterator[None]:
    """Keep structlog context bindings from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with predictable auth values."""
    return Settings(
        min_password_length=8,
        refresh_token_expire_days=7,
        invitation_token_expire_days=7,
        purge_expired_tokens_on_auth=True,
        default_tenant_slug="default",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tenant() -> TenantContext:
    return TenantContext(tenant_id=uuid4(), slug="smile")


@pytest.fixture
def db_session():
    return make_db_session()


@pytest.fixture
def staff_repo() -> InMemoryStaffRepository:
    return InMemoryStaffRepository()


@pytest.fixture
def token_repo() -> InMemoryRefreshTokenRepository:
    return InMemoryRefreshTokenRepository()


@pytest.fixture
def invitation_repo() -> InMemoryInvitationTokenRepository:
    return InMemoryInvitationTokenRepository()


@pytest.fixture
def permission_store() -> InMemoryPermissionStore:
    return InMemoryPermissionStore()


@pytest.fixture
def hasher() -> FakePasswordHasher:
    return FakePasswordHasher()


@pytest.fixture
def issuer() -> FakeTokenIssuer:
    return FakeTokenIssuer()


@pytest.fixture
def totp() -> FakeTotpVerifier:
    return FakeTotpVerifier()


@pytest.fixture
def auth_service(
    db_session,
    staff_repo,
    token_repo,
    hasher,
    issuer,
    totp,
    test_settings,
    clock,
) -> StaffAuthService:
    """StaffAuthService wired to in-memory collaborators."""
    return StaffAuthService(
        db_session,
        staff_repo=staff_repo,
        token_repo=token_repo,
        hasher=hasher,
        issuer=issuer,
        totp=totp,
        config=test_settings,
        clock=clock,
    )


@pytest.fixture
def staff_service(
    db_session,
    staff_repo,
    invitation_repo,
    permission_store,
    hasher,
    test_settings,
    clock,
) -> StaffService:
    """StaffService wired to in-memory collaborators."""
    return StaffService(
        db_session,
        staff_repo=staff_repo,
        invitation_repo=invitation_repo,
        permission_store=permission_store,
        hasher=hasher,
        config=test_settings,
        clock=clock,
    )


# ============================================================
# HTTP fixtures
# ============================================================


class _ResolutionSession:
    """Stands in for the session the tenant middleware opens."""

    async def __aenter__(self) -> "_ResolutionSession":
        return self

    async def __aexit__(self, *exc_info: object) -> bool:
        return False


@pytest.fixture
def clinic_tenant() -> Tenant:
    """The ACTIVE tenant HTTP requests resolve to by default."""
    return TenantFactory.build(slug="smile")


@pytest.fixture
def tenant_lookup(clinic_tenant: Tenant) -> InMemoryTenantLookup:
    return InMemoryTenantLookup([clinic_tenant])


@pytest.fixture
def app(
    monkeypatch: pytest.MonkeyPatch,
    tenant_lookup,
    staff_repo,
    token_repo,
    invitation_repo,
    permission_store,
    hasher,
    test_settings,
) -> FastAPI:
    """The real application wired to in-memory repositories.

    Access tokens are real JWTs so the bearer dependency runs unchanged.
    """
    monkeypatch.setattr(tenancy_middleware, "TenantRepository", lambda session: tenant_lookup)
    monkeypatch.setattr(auth_dependencies, "StaffRepository", lambda db: staff_repo)
    monkeypatch.setattr(permission_decorators, "SqlPermissionStore", lambda db: permission_store)

    application = create_app(session_factory=_ResolutionSession)

    async def override_get_db() -> AsyncIterator[MagicMock]:
        yield make_db_session()

    def override_auth_service() -> StaffAuthService:
        return StaffAuthService(
            make_db_session(),
            staff_repo=staff_repo,
            token_repo=token_repo,
            hasher=hasher,
            config=test_settings,
        )

    def override_staff_service() -> StaffService:
        return StaffService(
            make_db_session(),
            staff_repo=staff_repo,
            invitation_repo=invitation_repo,
            permission_store=permission_store,
            hasher=hasher,
            config=test_settings,
        )

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_auth_service] = override_auth_service
    application.dependency_overrides[get_staff_service] = override_staff_service
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Async HTTP client bound to the ``smile`` tenant."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Tenant-Slug": "smile"},
    ) as ac:
        yield ac

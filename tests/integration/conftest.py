"""PostgreSQL fixtures for repository tests.

Tests that take these fixtures run against a real database, derived
from ``DATABASE_URL`` with a ``_test`` suffix or set directly with
``TEST_DATABASE_URL``. They are skipped when it cannot be reached.
"""

import os
from collections.abc import AsyncIterator

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from clinic_core.config import settings
from clinic_core.core.audit.models import AuditLog  # noqa: F401
from clinic_core.core.database import Base
from clinic_core.core.permissions.models import StaffPermissions  # noqa: F401

# Import all models to ensure they're registered with Base.metadata
from clinic_core.modules.billing.models import Subscription  # noqa: F401
from clinic_core.modules.staff.models import InvitationToken, RefreshToken, StaffUser  # noqa: F401
from clinic_core.modules.tenants.models import Tenant  # noqa: F401


TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    settings.async_database_url.replace("/clinic_core", "/clinic_core_test"),
)


@pytest.fixture
async def pg_engine() -> AsyncIterator[AsyncEngine]:
    """Create the schema on the test database and drop it afterwards."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool, echo=False)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except (OSError, SQLAlchemyError) as e:
        await engine.dispose()
        pytest.skip(f"test database unavailable: {type(e).__name__}")

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def pg_sessions(pg_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose sessions commit for real, one connection each."""
    return async_sessionmaker(pg_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def pg_session(pg_engine) -> AsyncIterator[AsyncSession]:
    """Provide a transactional session rolled back after the test."""
    async with pg_engine.connect() as conn:
        await conn.begin()

        async with AsyncSession(bind=conn, expire_on_commit=False, autoflush=False) as session:
            yield session

        await conn.rollback()

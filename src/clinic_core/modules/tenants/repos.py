"""Tenant repository for database operations."""

from uuid import UUID

from sqlalchemy import func, select

from clinic_core.api.dependencies import DBSession
from clinic_core.modules.tenants.models import Tenant, TenantStatus


class TenantRepository:
    """Repository for Tenant lookups.

    Resolution queries only ever return ACTIVE, non-deleted tenants.
    """

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def get_by_slug(self, slug: str) -> Tenant | None:
        """Get a tenant by slug regardless of status or deletion."""
        stmt = select(Tenant).where(func.lower(Tenant.slug) == slug.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, tenant: Tenant) -> Tenant:
        """Add a new tenant and flush to obtain server defaults."""
        self.session.add(tenant)
        await self.session.flush()
        await self.session.refresh(tenant)
        return tenant

    async def get_active_by_slug(self, slug: str) -> Tenant | None:
        """Get an active tenant by its slug (case-insensitive).

        Args:
            slug: Normalized tenant slug

        Returns:
            Tenant if an active one matches, None otherwise
        """
        stmt = select(Tenant).where(
            func.lower(Tenant.slug) == slug.lower(),
            Tenant.status == TenantStatus.ACTIVE,
            Tenant.deleted_at.is_(None),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_by_domain(self, domain: str) -> Tenant | None:
        """Get an active tenant by its custom domain.

        Args:
            domain: Normalized host name (no scheme, port or www.)

        Returns:
            Tenant if an active one matches, None otherwise
        """
        stmt = select(Tenant).where(
            func.lower(Tenant.custom_domain) == domain.lower(),
            Tenant.status == TenantStatus.ACTIVE,
            Tenant.deleted_at.is_(None),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_update(self, tenant_id: UUID) -> Tenant | None:
        """Get a tenant row locked for the current transaction."""
        stmt = select(Tenant).where(Tenant.id == tenant_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


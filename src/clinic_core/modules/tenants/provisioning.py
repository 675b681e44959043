"""Tenant provisioning: a new clinic with its subscription and first admin."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core.core.errors import ConflictError, ValidationError
from clinic_core.core.tenancy.resolver import normalize_host, normalize_slug
from clinic_core.modules.billing.models import PlanTier, Subscription, SubscriptionStatus
from clinic_core.modules.staff.models import StaffRole, StaffStatus, StaffUser
from clinic_core.modules.staff.repos import StaffRepository
from clinic_core.modules.staff.services import StaffService
from clinic_core.modules.tenants.models import BillingStatus, Tenant, TenantStatus
from clinic_core.modules.tenants.repos import TenantRepository


logger = structlog.get_logger()


@dataclass(frozen=True)
class ProvisionedTenant:
    """Identifiers and the one-time admin invitation of a new tenant."""

    tenant_id: UUID
    slug: str
    admin_staff_id: UUID
    invitation_token: str
    invitation_expires_at: datetime


async def provision_tenant(
    session: AsyncSession,
    *,
    slug: str,
    name: str,
    admin_email: str,
    admin_name: str,
    plan_tier: PlanTier = PlanTier.BASIC,
    custom_domain: str | None = None,
) -> ProvisionedTenant:
    """Create an ACTIVE tenant, its subscription and an invited ADMIN.

    The caller owns the transaction.

    Raises:
        ConflictError: If the slug is already taken
    """
    tenant_repo = TenantRepository(session)
    normalized_slug = normalize_slug(slug)
    if not normalized_slug:
        raise ValidationError("Tenant slug must not be empty")
    if await tenant_repo.get_by_slug(normalized_slug) is not None:
        raise ConflictError(
            f"Tenant slug '{normalized_slug}' is already taken",
            error_code="slug_taken",
        )

    tenant = await tenant_repo.create(
        Tenant(
            name=name.strip(),
            slug=normalized_slug,
            custom_domain=normalize_host(custom_domain) if custom_domain else None,
            status=TenantStatus.ACTIVE,
            billing_status=BillingStatus.ACTIVE,
        )
    )
    session.add(
        Subscription(
            tenant_id=tenant.id,
            plan_tier=plan_tier,
            status=SubscriptionStatus.ACTIVE,
        )
    )

    admin = await StaffRepository(session).create(
        StaffUser(
            tenant_id=tenant.id,
            email=admin_email.strip().lower(),
            full_name=admin_name.strip(),
            role=StaffRole.ADMIN,
            status=StaffStatus.INVITED,
        )
    )
    invitation = await StaffService(session).issue_invitation(tenant.id, admin.id)

    logger.info("tenant_provisioned", tenant_id=str(tenant.id), slug=tenant.slug)
    return ProvisionedTenant(
        tenant_id=tenant.id,
        slug=tenant.slug,
        admin_staff_id=admin.id,
        invitation_token=invitation.invitation_token,
        invitation_expires_at=invitation.expires_at,
    )

"""Factories for Tenant and Subscription models."""

from datetime import UTC, datetime
from uuid import uuid4

from polyfactory import Use
from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory

from clinic_core.modules.billing.models import PlanTier, Subscription, SubscriptionStatus
from clinic_core.modules.tenants.models import BillingStatus, Tenant, TenantStatus


class TenantFactory(SQLAlchemyFactory[Tenant]):
    """Factory for generating active Tenant instances."""

    __model__ = Tenant

    id = Use(uuid4)
    status = TenantStatus.ACTIVE
    billing_status = BillingStatus.ACTIVE
    custom_domain = None
    deleted_at = None
    created_at = Use(lambda: datetime.now(UTC))
    updated_at = Use(lambda: datetime.now(UTC))

    @classmethod
    def name(cls) -> str:
        """Generate a clinic name."""
        return f"{cls.__faker__.last_name()} Dental Clinic"

    @classmethod
    def slug(cls) -> str:
        """Generate a URL-safe slug."""
        return f"{cls.__faker__.slug()}-{uuid4().hex[:6]}"


class SubscriptionFactory(SQLAlchemyFactory[Subscription]):
    """Factory for an ACTIVE subscription with nothing pending."""

    __model__ = Subscription

    id = Use(uuid4)
    tenant_id = Use(uuid4)
    plan_tier = PlanTier.BASIC
    status = SubscriptionStatus.ACTIVE
    pending_plan_tier = None
    pending_plan_effective_date = None
    cancellation_effective_date = None
    created_at = Use(lambda: datetime.now(UTC))
    updated_at = Use(lambda: datetime.now(UTC))

"""Subscription and tenant repository tests against PostgreSQL."""

from datetime import UTC, datetime, timedelta

import pytest

from clinic_core.modules.billing.models import PlanTier, SubscriptionStatus
from clinic_core.modules.billing.repos import SubscriptionRepository, SweepCandidate
from clinic_core.modules.tenants.models import TenantStatus
from clinic_core.modules.tenants.repos import TenantRepository
from tests.factories import SubscriptionFactory, TenantFactory


pytestmark = pytest.mark.integration

NOW = datetime(2026, 3, 1, 2, 0, tzinfo=UTC)


@pytest.fixture
def tenants(pg_session) -> TenantRepository:
    return TenantRepository(pg_session)


async def _subscription(pg_session, tenants, **kwargs):
    tenant = await tenants.create(TenantFactory.build())
    subscription = SubscriptionFactory.build(tenant_id=tenant.id, **kwargs)
    pg_session.add(subscription)
    await pg_session.flush()
    return subscription


class TestDueSubscriptions:
    """Tests for the sweep candidate queries."""

    async def test_due_plan_changes_in_effective_order(self, pg_session, tenants):
        later = await _subscription(
            pg_session,
            tenants,
            pending_plan_tier=PlanTier.ENTERPRISE,
            pending_plan_effective_date=NOW - timedelta(hours=1),
        )
        earlier = await _subscription(
            pg_session,
            tenants,
            pending_plan_tier=PlanTier.PROFESSIONAL,
            pending_plan_effective_date=NOW - timedelta(days=1),
        )
        await _subscription(
            pg_session,
            tenants,
            pending_plan_tier=PlanTier.PROFESSIONAL,
            pending_plan_effective_date=NOW + timedelta(minutes=1),
        )
        await _subscription(pg_session, tenants)

        due = await SubscriptionRepository(pg_session).list_due_plan_changes(NOW)

        assert due == [
            SweepCandidate(earlier.id, earlier.tenant_id),
            SweepCandidate(later.id, later.tenant_id),
        ]

    async def test_change_due_exactly_now_is_listed(self, pg_session, tenants):
        subscription = await _subscription(
            pg_session,
            tenants,
            pending_plan_tier=PlanTier.PROFESSIONAL,
            pending_plan_effective_date=NOW,
        )

        due = await SubscriptionRepository(pg_session).list_due_plan_changes(NOW)

        assert [c.subscription_id for c in due] == [subscription.id]

    async def test_applied_cancellations_are_not_listed_again(self, pg_session, tenants):
        due = await _subscription(
            pg_session, tenants, cancellation_effective_date=NOW - timedelta(hours=2)
        )
        await _subscription(
            pg_session,
            tenants,
            cancellation_effective_date=NOW - timedelta(hours=2),
            status=SubscriptionStatus.CANCELLED,
        )
        await _subscription(
            pg_session, tenants, cancellation_effective_date=NOW + timedelta(days=1)
        )

        candidates = await SubscriptionRepository(pg_session).list_due_cancellations(NOW)

        assert candidates == [SweepCandidate(due.id, due.tenant_id)]

    async def test_get_for_update(self, pg_session, tenants):
        subscription = await _subscription(pg_session, tenants)
        repo = SubscriptionRepository(pg_session)

        assert await repo.get_for_update(subscription.id) == subscription
        assert await repo.get_for_update(TenantFactory.build().id) is None


class TestTenantResolution:
    """Only ACTIVE, non-deleted tenants resolve."""

    async def test_active_tenant_resolves_by_slug_and_domain(self, tenants):
        clinic = await tenants.create(
            TenantFactory.build(slug="smile", custom_domain="smile-clinic.com")
        )

        assert await tenants.get_active_by_slug("SMILE") == clinic
        assert await tenants.get_active_by_domain("Smile-Clinic.com") == clinic

    async def test_inactive_tenant_does_not_resolve(self, tenants):
        await tenants.create(
            TenantFactory.build(
                slug="closed", custom_domain="closed.example", status=TenantStatus.INACTIVE
            )
        )

        assert await tenants.get_active_by_slug("closed") is None
        assert await tenants.get_active_by_domain("closed.example") is None
        assert await tenants.get_by_slug("closed") is not None

    async def test_deleted_tenant_does_not_resolve(self, tenants):
        # Deleted but still flagged ACTIVE
        await tenants.create(
            TenantFactory.build(slug="gone", custom_domain="gone.example", deleted_at=NOW)
        )

        assert await tenants.get_active_by_slug("gone") is None
        assert await tenants.get_active_by_domain("gone.example") is None

"""Subscription repository for database operations."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core.modules.billing.models import Subscription, SubscriptionStatus


@dataclass(frozen=True, slots=True)
class SweepCandidate:
    """Identifiers of a subscription captured at sweep start."""

    subscription_id: UUID
    tenant_id: UUID


class SubscriptionRepository:
    """Repository for Subscription database operations.

    Listing queries return identifier snapshots rather than live rows so
    that each candidate can be reloaded in its own transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_due_plan_changes(self, now: datetime) -> list[SweepCandidate]:
        """List subscriptions whose pending plan change is due.

        Args:
            now: Reference time

        Returns:
            Candidates ordered by effective date
        """
        stmt = (
            select(Subscription.id, Subscription.tenant_id)
            .where(
                Subscription.pending_plan_tier.is_not(None),
                Subscription.pending_plan_effective_date.is_not(None),
                Subscription.pending_plan_effective_date <= now,
            )
            .order_by(Subscription.pending_plan_effective_date)
        )
        result = await self.session.execute(stmt)
        return [SweepCandidate(row.id, row.tenant_id) for row in result]

    async def list_due_cancellations(self, now: datetime) -> list[SweepCandidate]:
        """List subscriptions whose cancellation is due and not yet applied.

        Args:
            now: Reference time

        Returns:
            Candidates ordered by effective date
        """
        stmt = (
            select(Subscription.id, Subscription.tenant_id)
            .where(
                Subscription.cancellation_effective_date.is_not(None),
                Subscription.cancellation_effective_date <= now,
                Subscription.status != SubscriptionStatus.CANCELLED,
            )
            .order_by(Subscription.cancellation_effective_date)
        )
        result = await self.session.execute(stmt)
        return [SweepCandidate(row.id, row.tenant_id) for row in result]

    async def get_for_update(self, subscription_id: UUID) -> Subscription | None:
        """Get a subscription locked for the current transaction."""
        stmt = select(Subscription).where(Subscription.id == subscription_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

"""Scheduled subscription state transitions.

Two independent sweeps run on every invocation:

1. Plan changes: a due ``pending_plan_tier`` becomes the ``plan_tier``.
2. Cancellations: a due cancellation marks the subscription CANCELLED and
   the tenant's billing status CANCELED.

Candidates are snapshotted when a sweep starts, then each one is reloaded
under a row lock and applied in its own transaction. A failing candidate
is logged and counted; it never stops the rest of the sweep. Running the
sweep twice is harmless because applied candidates no longer match.
"""

from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core.core.audit import AuditAction, AuditService, AuditSink
from clinic_core.modules.billing.models import SubscriptionStatus
from clinic_core.modules.billing.repos import SubscriptionRepository, SweepCandidate
from clinic_core.modules.tenants.models import BillingStatus
from clinic_core.modules.tenants.repos import TenantRepository


logger = structlog.get_logger()

PLAN_CHANGE_SWEEP = "plan_change"
CANCELLATION_SWEEP = "cancellation"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class SweepStats:
    """Counters for one sweep.

    Attributes:
        candidates: Subscriptions matched when the sweep started
        processed: Candidates whose transition was applied
        skipped: Candidates no longer due when reloaded
        failed: Candidates that raised while being applied
    """

    candidates: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class SweepReport:
    """Outcome of one transitioner run."""

    started_at: datetime
    plan_changes: SweepStats = field(default_factory=SweepStats)
    cancellations: SweepStats = field(default_factory=SweepStats)

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        return data


class SubscriptionTransitioner:
    """Applies due plan changes and cancellations.

    Args:
        session_factory: Creates a fresh session per transaction
        subscription_repository: Builds a subscription repository for a session
        tenant_repository: Builds a tenant repository for a session
        audit_factory: Builds an audit sink for a session
        clock: Returns the current time
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        *,
        subscription_repository: Callable[[AsyncSession], SubscriptionRepository] = SubscriptionRepository,
        tenant_repository: Callable[[AsyncSession], TenantRepository] = TenantRepository,
        audit_factory: Callable[[AsyncSession], AuditSink] = AuditService,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.session_factory = session_factory
        self.subscription_repository = subscription_repository
        self.tenant_repository = tenant_repository
        self.audit_factory = audit_factory
        self.clock = clock

    async def run(self) -> SweepReport:
        """Run both sweeps.

        Returns:
            Per-sweep counters

        Raises:
            SQLAlchemyError: Only if candidates cannot be listed at all
        """
        now = self.clock()
        report = SweepReport(started_at=now)
        logger.info("subscription_sweep_started", now=now.isoformat())

        report.plan_changes = await self.apply_plan_changes(now)
        report.cancellations = await self.apply_cancellations(now)

        logger.info("subscription_sweep_completed", **report.as_dict())
        return report

    async def apply_plan_changes(self, now: datetime) -> SweepStats:
        """Apply every pending plan change due at ``now``."""
        async with self.session_factory() as session:
            candidates = await self.subscription_repository(session).list_due_plan_changes(now)
        return await self._sweep(PLAN_CHANGE_SWEEP, candidates, now, self._apply_plan_change)

    async def apply_cancellations(self, now: datetime) -> SweepStats:
        """Apply every cancellation due at ``now``."""
        async with self.session_factory() as session:
            candidates = await self.subscription_repository(session).list_due_cancellations(now)
        return await self._sweep(CANCELLATION_SWEEP, candidates, now, self._apply_cancellation)

    async def _sweep(
        self,
        sweep: str,
        candidates: list[SweepCandidate],
        now: datetime,
        apply: Callable[[SweepCandidate, datetime], Any],
    ) -> SweepStats:
        stats = SweepStats(candidates=len(candidates))
        for candidate in candidates:
            try:
                applied = await apply(candidate, now)
            except Exception as exc:
                stats.failed += 1
                logger.exception(
                    "sweep_candidate_failed",
                    sweep=sweep,
                    subscription_id=str(candidate.subscription_id),
                    tenant_id=str(candidate.tenant_id),
                )
                await self._record_failure(sweep, candidate, exc)
                continue
            if applied:
                stats.processed += 1
            else:
                stats.skipped += 1

        logger.info("sweep_finished", sweep=sweep, **asdict(stats))
        return stats

    async def _apply_plan_change(self, candidate: SweepCandidate, now: datetime) -> bool:
        async with self.session_factory() as session, session.begin():
            subscription = await self.subscription_repository(session).get_for_update(
                candidate.subscription_id
            )
            if subscription is None or not subscription.plan_change_due(now):
                return False

            old_tier = subscription.plan_tier
            new_tier = subscription.pending_plan_tier
            subscription.plan_tier = new_tier
            subscription.pending_plan_tier = None
            subscription.pending_plan_effective_date = None

            await self.audit_factory(session).log(
                tenant_id=subscription.tenant_id,
                action=AuditAction.PLAN_CHANGE_APPLIED,
                resource_type="subscription",
                resource_id=str(subscription.id),
                changes={"old_tier": old_tier, "new_tier": new_tier},
            )

        logger.info(
            "plan_change_applied",
            subscription_id=str(candidate.subscription_id),
            tenant_id=str(candidate.tenant_id),
            old_tier=old_tier,
            new_tier=new_tier,
        )
        return True

    async def _apply_cancellation(self, candidate: SweepCandidate, now: datetime) -> bool:
        async with self.session_factory() as session, session.begin():
            subscription = await self.subscription_repository(session).get_for_update(
                candidate.subscription_id
            )
            if subscription is None or not subscription.cancellation_due(now):
                return False

            tenant = await self.tenant_repository(session).get_for_update(subscription.tenant_id)
            if tenant is None:
                raise LookupError(f"Tenant {subscription.tenant_id} not found")

            old_status = subscription.status
            old_billing_status = tenant.billing_status
            subscription.status = SubscriptionStatus.CANCELLED
            tenant.billing_status = BillingStatus.CANCELED

            await self.audit_factory(session).log(
                tenant_id=tenant.id,
                action=AuditAction.CANCELLATION_APPLIED,
                resource_type="subscription",
                resource_id=str(subscription.id),
                changes={
                    "old_billing_status": old_billing_status,
                    "new_billing_status": BillingStatus.CANCELED.value,
                },
                metadata={
                    "old_subscription_status": old_status,
                    "cancellation_effective_date": subscription.cancellation_effective_date.isoformat()
                    if subscription.cancellation_effective_date
                    else None,
                },
            )

        logger.info(
            "cancellation_applied",
            subscription_id=str(candidate.subscription_id),
            tenant_id=str(candidate.tenant_id),
            old_billing_status=old_billing_status,
        )
        return True

    async def _record_failure(
        self, sweep: str, candidate: SweepCandidate, exc: Exception
    ) -> None:
        """Write a failure audit entry in a fresh transaction, if possible."""
        try:
            async with self.session_factory() as session, session.begin():
                await self.audit_factory(session).log(
                    tenant_id=candidate.tenant_id,
                    action=AuditAction.SWEEP_CANDIDATE_FAILED,
                    resource_type="subscription",
                    resource_id=str(candidate.subscription_id),
                    metadata={"sweep": sweep, "error": type(exc).__name__, "message": str(exc)},
                )
        except Exception:
            logger.warning(
                "sweep_failure_audit_failed",
                sweep=sweep,
                subscription_id=str(candidate.subscription_id),
                exc_info=True,
            )

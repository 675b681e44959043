"""Subscription database model."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from clinic_core.core.constants import MAX_ENUM_LENGTH
from clinic_core.core.database.base import Base, TenantMixin, TimestampMixin, UUIDMixin


class PlanTier(StrEnum):
    """Commercial plan of a clinic."""

    BASIC = "BASIC"
    PROFESSIONAL = "PROFESSIONAL"
    ENTERPRISE = "ENTERPRISE"
    CUSTOM = "CUSTOM"


class SubscriptionStatus(StrEnum):
    """Status of a subscription as tracked by the billing provider."""

    ACTIVE = "ACTIVE"
    APPROVAL_PENDING = "APPROVAL_PENDING"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class Subscription(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """A clinic's subscription.

    The pending fields are written by billing endpoints and cleared only
    by the transition sweep. ``pending_plan_tier`` and
    ``pending_plan_effective_date`` are meaningful only together; a
    pending cancellation is tracked independently.

    Attributes:
        plan_tier: Current plan
        status: Provider status (CANCELLED once a cancellation applies)
        pending_plan_tier: Plan to switch to
        pending_plan_effective_date: When the switch takes effect
        cancellation_effective_date: When a requested cancellation takes effect
    """

    __tablename__ = "subscriptions"

    plan_tier: Mapped[str] = mapped_column(
        String(MAX_ENUM_LENGTH),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(MAX_ENUM_LENGTH),
        default=SubscriptionStatus.ACTIVE,
        nullable=False,
    )
    pending_plan_tier: Mapped[str | None] = mapped_column(
        String(MAX_ENUM_LENGTH),
        nullable=True,
    )
    pending_plan_effective_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    cancellation_effective_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    def plan_change_due(self, now: datetime) -> bool:
        return (
            self.pending_plan_tier is not None
            and self.pending_plan_effective_date is not None
            and self.pending_plan_effective_date <= now
        )

    def cancellation_due(self, now: datetime) -> bool:
        return (
            self.cancellation_effective_date is not None
            and self.cancellation_effective_date <= now
            and self.status != SubscriptionStatus.CANCELLED
        )

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, tenant_id={self.tenant_id}, plan_tier={self.plan_tier})>"

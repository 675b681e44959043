"""Tenant database models."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from clinic_core.core.constants import MAX_DOMAIN_LENGTH, MAX_ENUM_LENGTH, MAX_SLUG_LENGTH
from clinic_core.core.database.base import Base, SoftDeleteMixin, TimestampMixin, UUIDMixin


class TenantStatus(StrEnum):
    """Lifecycle status of a clinic account."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class BillingStatus(StrEnum):
    """Billing standing of a clinic account."""

    PENDING_PAYMENT = "PENDING_PAYMENT"
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    SUSPENDED = "SUSPENDED"
    CANCELED = "CANCELED"


class Tenant(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """Tenant model representing a clinic.

    All tenant-scoped data references this table via tenant_id.
    Only ACTIVE, non-deleted tenants resolve for inbound requests.

    Attributes:
        name: Display name of the clinic
        slug: Unique URL-safe identifier, resolved from header or query
        custom_domain: Optional host name owned by the clinic
        status: ACTIVE or INACTIVE
        billing_status: Billing standing, maintained by the subscription sweep
        deleted_at: Soft-delete timestamp
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    slug: Mapped[str] = mapped_column(
        String(MAX_SLUG_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    custom_domain: Mapped[str | None] = mapped_column(
        String(MAX_DOMAIN_LENGTH),
        nullable=True,
        unique=True,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(MAX_ENUM_LENGTH),
        default=TenantStatus.ACTIVE,
        nullable=False,
    )
    billing_status: Mapped[str] = mapped_column(
        String(MAX_ENUM_LENGTH),
        default=BillingStatus.PENDING_PAYMENT,
        nullable=False,
    )

    @property
    def is_active(self) -> bool:
        """Whether the tenant may serve requests."""
        return self.status == TenantStatus.ACTIVE and not self.is_deleted

    def soft_delete(self, when: datetime) -> None:
        """Mark the tenant deleted; deleted tenants never resolve."""
        self.deleted_at = when
        self.status = TenantStatus.INACTIVE

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug={self.slug}, status={self.status})>"

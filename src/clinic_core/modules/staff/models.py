"""Staff identity and credential models."""

from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clinic_core.core.constants import (
    MAX_EMAIL_LENGTH,
    MAX_ENUM_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TOTP_SECRET_LENGTH,
    SHA256_HEX_LENGTH,
)
from clinic_core.core.database.base import Base, TenantMixin, TimestampMixin, UUIDMixin


class StaffRole(StrEnum):
    """Role of a staff member within a clinic."""

    ADMIN = "ADMIN"
    RECEPTIONIST = "RECEPTIONIST"
    DOCTOR = "DOCTOR"


class StaffStatus(StrEnum):
    """Account status of a staff member."""

    ACTIVE = "ACTIVE"
    INVITED = "INVITED"
    INACTIVE = "INACTIVE"


class StaffUser(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """Staff member of a clinic.

    Email is unique per tenant and compared case-insensitively; it is
    stored lower-cased. A non-null ``two_factor_secret`` makes a TOTP
    code mandatory at login.

    Attributes:
        email: Lower-cased login email, unique within the tenant
        full_name: Display name
        role: ADMIN, RECEPTIONIST or DOCTOR
        password_hash: Bcrypt hash (null until an invitation is accepted)
        two_factor_secret: Base32 TOTP secret, if 2FA is enabled
        status: ACTIVE, INVITED or INACTIVE
        doctor_id: Linked doctor profile, if any
    """

    __tablename__ = "staff_users"
    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_staff_users_tenant_email"),
    )

    email: Mapped[str] = mapped_column(
        String(MAX_EMAIL_LENGTH),
        nullable=False,
        index=True,
    )
    full_name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(MAX_ENUM_LENGTH),
        nullable=False,
    )
    password_hash: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    two_factor_secret: Mapped[str | None] = mapped_column(
        String(MAX_TOTP_SECRET_LENGTH),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(MAX_ENUM_LENGTH),
        default=StaffStatus.INVITED,
        nullable=False,
    )
    doctor_id: Mapped[UUID | None] = mapped_column(
        nullable=True,
    )

    @property
    def is_active(self) -> bool:
        return self.status == StaffStatus.ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role == StaffRole.ADMIN

    @property
    def two_factor_enabled(self) -> bool:
        return bool(self.two_factor_secret)

    def __repr__(self) -> str:
        return f"<StaffUser(id={self.id}, email={self.email}, tenant_id={self.tenant_id})>"


class StaffTokenMixin:
    """Columns shared by the opaque tokens handed to staff members.

    Only the SHA-256 hash of the token value is stored; the value itself
    is returned to the client once.
    """

    staff_id: Mapped[UUID] = mapped_column(
        ForeignKey("staff_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(SHA256_HEX_LENGTH),
        nullable=False,
        unique=True,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or datetime.now(UTC))


class RefreshToken(Base, UUIDMixin, TimestampMixin, StaffTokenMixin):
    """Refresh token issued to a staff member.

    A token is usable iff it is neither revoked nor expired; every
    successful refresh revokes it and issues a replacement.

    Attributes:
        staff_id: The staff member this token belongs to
        token_hash: SHA-256 hash of the refresh token
        expires_at: When the token expires
        revoked: Whether the token has been revoked
        user_agent: The client user agent that created the token
        ip_address: The IP address that created the token
    """

    __tablename__ = "staff_refresh_tokens"

    revoked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    user_agent: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(45),  # IPv6 max length
        nullable=True,
    )

    def is_usable(self, now: datetime | None = None) -> bool:
        return not self.revoked and not self.is_expired(now)

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, staff_id={self.staff_id}, revoked={self.revoked})>"


class InvitationToken(Base, UUIDMixin, TimestampMixin, StaffTokenMixin):
    """One-time token letting an invited staff member set a password.

    Attributes:
        staff_id: The invited staff member
        token_hash: SHA-256 hash of the invitation token
        expires_at: When the invitation lapses
        used_at: When the invitation was consumed, if ever
    """

    __tablename__ = "staff_invitation_tokens"

    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def is_valid(self, now: datetime | None = None) -> bool:
        """An invitation is valid iff it is neither expired nor used."""
        return not self.is_expired(now) and not self.is_used

    def mark_used(self, now: datetime | None = None) -> None:
        self.used_at = now or datetime.now(UTC)

    def __repr__(self) -> str:
        return f"<InvitationToken(id={self.id}, staff_id={self.staff_id}, used={self.is_used})>"

"""SQLAlchemy declarative base and the column mixins shared by the models.

Every row other than ``tenants`` itself belongs to exactly one clinic,
either directly through ``TenantMixin`` or through the staff member it
hangs off.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all clinic-core models."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={getattr(self, 'id', None)})>"


class UUIDMixin:
    """UUID primary key assigned on the client at flush time."""

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=uuid4,
        index=True,
    )


class TimestampMixin:
    """Database-maintained ``created_at`` / ``updated_at`` columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class TenantMixin:
    """Scopes a row to one clinic.

    Rows are deleted with their tenant. Repositories filter on
    ``tenant_id`` explicitly; nothing reads the ambient tenant context
    at query time.
    """

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )


class SoftDeleteMixin:
    """Adds a nullable ``deleted_at``; a set value retires the row."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

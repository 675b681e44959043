"""Audit log model.

Rows are append-only. Billing transitions applied by the daily sweep
are the main writers; a row with no actor was written by a job.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from clinic_core.core.database.base import Base, TenantMixin, UUIDMixin


class AuditAction(StrEnum):
    PLAN_CHANGE_APPLIED = "plan_change_applied"
    CANCELLATION_APPLIED = "cancellation_applied"
    SWEEP_CANDIDATE_FAILED = "sweep_candidate_failed"


class AuditLog(Base, UUIDMixin, TenantMixin):
    """One recorded state transition.

    ``changes`` holds the old and new values of the fields that moved,
    e.g. ``{"old_tier": "BASIC", "new_tier": "PROFESSIONAL"}``;
    ``metadata`` holds context that did not change.
    """

    __tablename__ = "audit_logs"

    actor_staff_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("staff_users.id", ondelete="SET NULL"),
        index=True,
    )
    action: Mapped[str] = mapped_column(String(64), index=True)
    resource_type: Mapped[str] = mapped_column(String(100), index=True)
    resource_id: Mapped[str | None] = mapped_column(String(255), index=True)
    # Same bound as the X-Request-ID values the API accepts
    request_id: Mapped[str | None] = mapped_column(String(128))

    changes: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )

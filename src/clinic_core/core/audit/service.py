"""Audit sink and its SQL implementation."""

from typing import Any, Protocol
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core.core.audit.models import AuditAction, AuditLog


log = structlog.get_logger()


class AuditSink(Protocol):
    """Durable destination for audit records."""

    async def log(
        self,
        tenant_id: UUID,
        action: AuditAction | str,
        resource_type: str,
        resource_id: str | None = None,
        changes: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None: ...


class AuditService:
    """AuditSink writing ``audit_logs`` rows on the caller's session.

    The entry commits or rolls back together with the change it
    describes. Without an explicit ``request_id`` the one bound to the
    structlog context by the request middleware is recorded, so entries
    written inside a request can be matched with its log lines.
    """

    def __init__(
        self,
        session: AsyncSession,
        actor_staff_id: UUID | None = None,
        request_id: str | None = None,
    ) -> None:
        self.session = session
        self.actor_staff_id = actor_staff_id
        self.request_id = request_id

    async def log(
        self,
        tenant_id: UUID,
        action: AuditAction | str,
        resource_type: str,
        resource_id: str | None = None,
        changes: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Add an audit entry and flush it.

        Example:
            await audit.log(
                tenant_id=subscription.tenant_id,
                action=AuditAction.PLAN_CHANGE_APPLIED,
                resource_type="subscription",
                resource_id=str(subscription.id),
                changes={"old_tier": "BASIC", "new_tier": "PROFESSIONAL"},
            )
        """
        request_id = self.request_id or structlog.contextvars.get_contextvars().get("request_id")
        entry = AuditLog(
            tenant_id=tenant_id,
            actor_staff_id=self.actor_staff_id,
            action=str(action),
            resource_type=resource_type,
            resource_id=resource_id,
            request_id=request_id,
            changes=changes,
            metadata_=metadata,
        )

        self.session.add(entry)
        await self.session.flush()

        log.info(
            "audit_log_created",
            action=str(action),
            resource_type=resource_type,
            resource_id=resource_id,
            tenant_id=str(tenant_id),
        )

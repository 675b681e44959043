"""Tests for audit logging service."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import structlog

from clinic_core.core.audit.models import AuditAction, AuditLog
from clinic_core.core.audit.service import AuditService


pytestmark = pytest.mark.unit


class TestAuditService:
    """Tests for AuditService."""

    @pytest.fixture
    def mock_session(self):
        """Create a mock database session."""
        session = AsyncMock()
        session.add = MagicMock()
        session.flush = AsyncMock()
        return session

    async def test_log_basic(self, mock_session):
        """Test creating a basic audit log entry."""
        tenant_id = uuid4()
        service = AuditService(session=mock_session)

        await service.log(
            tenant_id=tenant_id,
            action="plan_change_applied",
            resource_type="subscription",
            resource_id="sub-123",
        )

        mock_session.add.assert_called_once()
        mock_session.flush.assert_awaited_once()

        added_entry = mock_session.add.call_args[0][0]
        assert isinstance(added_entry, AuditLog)
        assert added_entry.tenant_id == tenant_id
        assert added_entry.action == "plan_change_applied"
        assert added_entry.resource_type == "subscription"
        assert added_entry.resource_id == "sub-123"
        assert added_entry.actor_staff_id is None

    async def test_log_with_actor_and_request(self, mock_session):
        """Entries carry the acting staff member and request correlation ID."""
        staff_id = uuid4()
        service = AuditService(session=mock_session, actor_staff_id=staff_id, request_id="req-1")

        await service.log(tenant_id=uuid4(), action="permissions_updated", resource_type="staff")

        added_entry = mock_session.add.call_args[0][0]
        assert added_entry.actor_staff_id == staff_id
        assert added_entry.request_id == "req-1"

    async def test_log_with_changes_and_metadata(self, mock_session):
        """Test logging with field changes and metadata."""
        service = AuditService(session=mock_session)
        changes = {"old_billing_status": "ACTIVE", "new_billing_status": "CANCELED"}
        metadata = {"old_subscription_status": "ACTIVE"}

        await service.log(
            tenant_id=uuid4(),
            action="cancellation_applied",
            resource_type="subscription",
            changes=changes,
            metadata=metadata,
        )

        added_entry = mock_session.add.call_args[0][0]
        assert added_entry.changes == changes
        assert added_entry.metadata_ == metadata

    async def test_request_id_taken_from_log_context(self, mock_session):
        """Inside a request the bound correlation ID is recorded."""
        service = AuditService(session=mock_session)

        with structlog.contextvars.bound_contextvars(request_id="req-ctx"):
            await service.log(
                tenant_id=uuid4(),
                action=AuditAction.SWEEP_CANDIDATE_FAILED,
                resource_type="subscription",
            )

        added_entry = mock_session.add.call_args[0][0]
        assert added_entry.request_id == "req-ctx"
        assert added_entry.action == "sweep_candidate_failed"

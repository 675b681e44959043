"""Audit logging for state transitions."""

from clinic_core.core.audit.models import AuditAction, AuditLog
from clinic_core.core.audit.service import AuditService, AuditSink


__all__ = ["AuditAction", "AuditLog", "AuditService", "AuditSink"]

"""Per-request tenant resolution and context propagation."""

from clinic_core.core.tenancy.context import TenantContext, get_current_tenant, tenant_scope
from clinic_core.core.tenancy.resolver import TenantResolver, normalize_host, normalize_slug


__all__ = [
    "TenantContext",
    "TenantResolver",
    "get_current_tenant",
    "normalize_host",
    "normalize_slug",
    "tenant_scope",
]

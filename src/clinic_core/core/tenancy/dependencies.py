"""FastAPI dependencies for the resolved tenant."""

from typing import Annotated

from fastapi import Depends, Request

from clinic_core.core.errors import TenantNotFoundError
from clinic_core.core.tenancy.context import TenantContext, get_current_tenant


async def get_tenant_context(request: Request) -> TenantContext:
    """Get the tenant resolved for this request.

    Raises:
        TenantNotFoundError: If the route is not behind tenant resolution
    """
    context = getattr(request.state, "tenant", None) or get_current_tenant()
    if context is None:
        raise TenantNotFoundError(message="Request is not bound to a tenant")
    return context


CurrentTenant = Annotated[TenantContext, Depends(get_tenant_context)]

"""Request-scoped tenant context.

The current tenant lives in a ``ContextVar`` so every asyncio task
(i.e. every request) sees only its own value. ``tenant_scope`` installs
the context and always restores the previous value on exit, including
when the request raises.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class TenantContext:
    """The tenant a request is bound to.

    Attributes:
        tenant_id: The tenant's UUID
        slug: The tenant's slug
        billing_status: The tenant's billing standing when it was resolved
    """

    tenant_id: UUID
    slug: str
    billing_status: str | None = None


_current_tenant: ContextVar[TenantContext | None] = ContextVar(
    "current_tenant", default=None
)


def get_current_tenant() -> TenantContext | None:
    """Return the tenant bound to the running request, if any."""
    return _current_tenant.get()


@contextmanager
def tenant_scope(context: TenantContext) -> Iterator[TenantContext]:
    """Bind ``context`` as the current tenant for the enclosed block.

    Example:
        with tenant_scope(TenantContext(tenant.id, tenant.slug)):
            await handle(request)
    """
    token = _current_tenant.set(context)
    try:
        yield context
    finally:
        _current_tenant.reset(token)

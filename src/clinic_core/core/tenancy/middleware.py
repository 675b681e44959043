"""Tenant resolution middleware.

Binds every non-exempt request to exactly one ACTIVE tenant before any
route runs, and tears the binding down when the request ends.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog
from fastapi import Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from clinic_core.config import Settings, settings
from clinic_core.core.database.session import async_session_factory
from clinic_core.core.errors import BillingInactiveError, TenantNotFoundError, problem_response
from clinic_core.core.observability import tag_tenant
from clinic_core.core.tenancy.context import tenant_scope
from clinic_core.core.tenancy.resolver import TenantResolver
from clinic_core.modules.tenants.models import BillingStatus
from clinic_core.modules.tenants.repos import TenantRepository


if TYPE_CHECKING:
    from starlette.types import ASGIApp


logger = structlog.get_logger()


class TenantResolutionMiddleware(BaseHTTPMiddleware):
    """Middleware that resolves and installs the request's tenant.

    The resolved ``TenantContext`` is stored on ``request.state.tenant``
    and bound to the tenant ContextVar and the structlog context. The
    ContextVar and log bindings are cleared when the request finishes,
    whatever the outcome.

    Attributes:
        exempt_paths: Path prefixes that are not tenant-bound
    """

    def __init__(
        self,
        app: "ASGIApp",
        session_factory: Callable[[], AsyncSession] | None = None,
        config: Settings | None = None,
    ) -> None:
        super().__init__(app)
        self.config = config or settings
        self.session_factory = session_factory or async_session_factory
        self.exempt_paths = list(self.config.tenant_exempt_paths)

    def is_exempt(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.exempt_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Resolve the tenant, then run the rest of the stack inside its scope.

        Args:
            request: The incoming request
            call_next: The next middleware/handler

        Returns:
            The handler's response, or a 404 Problem Details response
        """
        if self.is_exempt(request.url.path):
            return await call_next(request)

        host = request.headers.get(self.config.forwarded_host_header) or request.headers.get(
            "host"
        )
        try:
            async with self.session_factory() as session:
                resolver = TenantResolver(TenantRepository(session), self.config)
                context = await resolver.resolve(
                    header_value=request.headers.get(self.config.tenant_header_name),
                    query_value=request.query_params.get(self.config.tenant_query_param),
                    host=host,
                )
        except TenantNotFoundError as exc:
            logger.warning(
                "tenant_resolution_failed",
                path=str(request.url.path),
                details=exc.details,
            )
            return problem_response(request, exc)

        request.state.tenant = context
        tag_tenant(context)
        structlog.contextvars.bind_contextvars(
            tenant_id=str(context.tenant_id),
            tenant_slug=context.slug,
        )
        try:
            with tenant_scope(context):
                return await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("tenant_id", "tenant_slug")


class BillingStatusMiddleware(BaseHTTPMiddleware):
    """Closes a clinic's admin panel while its billing is not ACTIVE.

    Runs inside ``TenantResolutionMiddleware`` and reads the billing
    status captured at resolution. Sign-in, invitation acceptance and
    billing routes stay open so the clinic can recover. Requests with no
    resolved tenant pass through.
    """

    def __init__(self, app: "ASGIApp", config: Settings | None = None) -> None:
        super().__init__(app)
        self.config = config or settings

    def is_gated(self, path: str) -> bool:
        if not path.startswith(self.config.billing_gated_prefix):
            return False
        return not any(path.startswith(prefix) for prefix in self.config.billing_exempt_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        tenant = getattr(request.state, "tenant", None)
        if tenant is None or not self.is_gated(request.url.path):
            return await call_next(request)

        if tenant.billing_status != BillingStatus.ACTIVE:
            logger.info(
                "billing_access_denied",
                path=str(request.url.path),
                billing_status=tenant.billing_status,
            )
            return problem_response(
                request, BillingInactiveError(str(tenant.billing_status or "UNKNOWN"))
            )

        return await call_next(request)

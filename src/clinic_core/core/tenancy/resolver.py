"""Tenant resolution for inbound requests.

Order of precedence:
1. tenant header (slug)
2. tenant query parameter (slug)
3. forwarded host / request host (custom domain)
4. configured default slug

A header or query slug that matches no ACTIVE tenant fails outright;
an unknown domain falls through to the default slug.
"""

from typing import Protocol

import structlog

from clinic_core.config import Settings, settings
from clinic_core.core.errors import TenantNotFoundError
from clinic_core.core.tenancy.context import TenantContext
from clinic_core.modules.tenants.models import Tenant


logger = structlog.get_logger()


class TenantLookup(Protocol):
    """Read access to ACTIVE tenants."""

    async def get_active_by_slug(self, slug: str) -> Tenant | None: ...

    async def get_active_by_domain(self, domain: str) -> Tenant | None: ...


def normalize_slug(value: str | None) -> str | None:
    """Trim and lower-case a slug; blank values become None."""
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def normalize_host(host: str | None) -> str | None:
    """Reduce a host header value to a bare domain.

    Strips the scheme, any path, the port and a leading ``www.``.
    For a comma-separated forwarded header the first entry wins.

    Example:
        normalize_host("https://WWW.Smile-Clinic.com:8443/booking")
        # -> "smile-clinic.com"
    """
    if not host:
        return None
    host = host.split(",", 1)[0].strip().lower()
    for scheme in ("https://", "http://"):
        if host.startswith(scheme):
            host = host[len(scheme) :]
            break
    host = host.split("/", 1)[0]
    if host.startswith("["):
        # Bracketed IPv6 literal
        host = host.split("]", 1)[0] + "]"
    else:
        host = host.split(":", 1)[0]
    host = host.removeprefix("www.")
    return host or None


class TenantResolver:
    """Resolves exactly one ACTIVE tenant for a request or fails.

    Args:
        lookup: Repository used to query tenants
        config: Settings providing the default slug
    """

    def __init__(self, lookup: TenantLookup, config: Settings | None = None) -> None:
        self.lookup = lookup
        self.config = config or settings

    async def resolve(
        self,
        header_value: str | None = None,
        query_value: str | None = None,
        host: str | None = None,
    ) -> TenantContext:
        """Resolve the tenant for a request.

        Args:
            header_value: Raw tenant header value
            query_value: Raw tenant query parameter value
            host: Forwarded host, or the request's own host

        Returns:
            The resolved tenant context

        Raises:
            TenantNotFoundError: If the chosen slug has no ACTIVE tenant
        """
        slug = normalize_slug(header_value)
        source = "header"
        if slug is None:
            slug = normalize_slug(query_value)
            source = "query"

        if slug is None:
            domain = normalize_host(host)
            if domain:
                tenant = await self.lookup.get_active_by_domain(domain)
                if tenant is not None:
                    return self._context(tenant, source="domain")
                logger.debug("tenant_domain_unmatched", domain=domain)
            slug = normalize_slug(self.config.default_tenant_slug)
            source = "default"

        if slug is None:
            raise TenantNotFoundError(message="No tenant could be determined for the request")

        tenant = await self.lookup.get_active_by_slug(slug)
        if tenant is None:
            logger.info("tenant_not_found", slug=slug, source=source)
            raise TenantNotFoundError(slug=slug)
        return self._context(tenant, source=source)

    @staticmethod
    def _context(tenant: Tenant, source: str) -> TenantContext:
        logger.debug("tenant_resolved", tenant_id=str(tenant.id), slug=tenant.slug, source=source)
        return TenantContext(
            tenant_id=tenant.id, slug=tenant.slug, billing_status=tenant.billing_status
        )

"""FastAPI dependencies for authentication.

This module provides FastAPI dependency injection functions for:
- Extracting and validating JWT access tokens
- Binding the token to the tenant resolved for the request
- Getting the current authenticated staff member
"""

from typing import Annotated

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clinic_core.api.dependencies import DBSession
from clinic_core.core.auth.backend import decode_token
from clinic_core.core.auth.schemas import AuthenticatedIdentity, TokenData
from clinic_core.core.errors import TenantMismatchError, UnauthorizedError
from clinic_core.core.tenancy.dependencies import CurrentTenant
from clinic_core.modules.staff.models import StaffUser
from clinic_core.modules.staff.repos import StaffRepository


logger = structlog.get_logger()

# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_token_data(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenData:
    """Extract and validate token data from the Authorization header.

    Args:
        credentials: Bearer token credentials from the request

    Returns:
        Decoded token data

    Raises:
        UnauthorizedError: If token is missing or invalid
    """
    if not credentials:
        raise UnauthorizedError(
            "Missing authentication token",
            error_code="missing_token",
        )

    token_data = decode_token(credentials.credentials)
    if not token_data or token_data.type != "access":
        raise UnauthorizedError(
            "Invalid or expired token",
            error_code="invalid_token",
        )

    return token_data


async def get_current_staff(
    token_data: Annotated[TokenData, Depends(get_token_data)],
    tenant: CurrentTenant,
    db: DBSession,
) -> StaffUser:
    """Get the authenticated staff member of the request's tenant.

    Args:
        token_data: Validated token data
        tenant: Tenant resolved for the request
        db: Database session

    Returns:
        The authenticated staff member

    Raises:
        UnauthorizedError: If the token belongs to another tenant, or the
            staff member is gone or inactive
    """
    if token_data.tenant_id != tenant.tenant_id:
        logger.warning(
            "token_tenant_mismatch",
            staff_id=str(token_data.staff_id),
            token_tenant_id=str(token_data.tenant_id),
        )
        raise TenantMismatchError()

    staff = await StaffRepository(db).get_by_id(token_data.staff_id, tenant.tenant_id)
    if staff is None or not staff.is_active:
        raise UnauthorizedError(
            "Invalid or expired token",
            error_code="invalid_token",
        )

    structlog.contextvars.bind_contextvars(staff_id=str(staff.id))
    return staff


async def get_current_identity(
    staff: Annotated[StaffUser, Depends(get_current_staff)],
) -> AuthenticatedIdentity:
    """Get the identity value consumed by permission checks and services."""
    return AuthenticatedIdentity(
        staff_id=staff.id,
        tenant_id=staff.tenant_id,
        role=staff.role,
        email=staff.email,
    )


# Type aliases for cleaner dependency injection
CurrentStaff = Annotated[StaffUser, Depends(get_current_staff)]
CurrentIdentity = Annotated[AuthenticatedIdentity, Depends(get_current_identity)]

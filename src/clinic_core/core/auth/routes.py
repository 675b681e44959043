"""Staff authentication API routes.

Provides endpoints for:
- Login/logout
- Token refresh
- Profile and password management
"""

from fastapi import APIRouter, Request, status

from clinic_core.core.auth.dependencies import CurrentIdentity
from clinic_core.core.auth.service import AuthSvc
from clinic_core.core.logging import get_client_ip
from clinic_core.core.tenancy.dependencies import CurrentTenant
from clinic_core.modules.staff.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    RefreshTokenRequest,
    TokenResponse,
)
from clinic_core.modules.staff.services import StaffSvc


router = APIRouter(prefix="/admin/auth", tags=["auth"])


def _get_client_info(request: Request) -> tuple[str | None, str | None]:
    """Extract client info from request."""
    return request.headers.get("User-Agent"), get_client_ip(request)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Staff login",
    description="Authenticate a staff member of the current clinic. "
    "A TOTP code is required when two-factor authentication is enabled.",
)
async def login(
    data: LoginRequest,
    tenant: CurrentTenant,
    service: AuthSvc,
    request: Request,
) -> TokenResponse:
    """Login with email, password and optional 2FA code."""
    user_agent, ip_address = _get_client_info(request)
    tokens = await service.login(
        tenant=tenant,
        email=data.email,
        password=data.password,
        two_factor_code=data.two_factor_code,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    return TokenResponse(**tokens.model_dump())


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh tokens",
    description="Exchange a refresh token for a new token pair. "
    "The presented refresh token is revoked and cannot be reused.",
)
async def refresh(
    data: RefreshTokenRequest,
    tenant: CurrentTenant,
    service: AuthSvc,
    request: Request,
) -> TokenResponse:
    """Rotate the refresh token."""
    user_agent, ip_address = _get_client_info(request)
    tokens = await service.refresh(
        data.refresh_token,
        tenant=tenant,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    return TokenResponse(**tokens.model_dump())


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout",
    description="Revoke the refresh token. Unknown tokens are ignored.",
)
async def logout(
    data: RefreshTokenRequest,
    service: AuthSvc,
) -> None:
    """Logout by revoking the refresh token."""
    await service.logout(data.refresh_token)


@router.post(
    "/logout-all",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout from all devices",
    description="Revoke every refresh token of the current staff member.",
)
async def logout_all(
    identity: CurrentIdentity,
    service: AuthSvc,
) -> None:
    """Logout from all devices."""
    await service.logout_all(identity.staff_id)


@router.get(
    "/profile",
    response_model=ProfileResponse,
    response_model_exclude_none=True,
    summary="Get own profile",
)
async def get_profile(
    identity: CurrentIdentity,
    service: StaffSvc,
) -> ProfileResponse:
    """Get the current staff member's profile."""
    return await service.get_profile(identity)


@router.put(
    "/profile",
    response_model=ProfileResponse,
    response_model_exclude_none=True,
    summary="Update own profile",
    description="Update email and name. Fails with 409 if the email is taken.",
)
async def update_profile(
    data: ProfileUpdateRequest,
    identity: CurrentIdentity,
    service: StaffSvc,
) -> ProfileResponse:
    """Update the current staff member's profile."""
    return await service.update_profile(identity, email=data.email, full_name=data.full_name)


@router.put(
    "/profile/password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change password",
    description="Change the password and revoke every existing session.",
)
async def change_password(
    data: ChangePasswordRequest,
    identity: CurrentIdentity,
    service: AuthSvc,
) -> None:
    """Change the current staff member's password."""
    await service.change_password(
        tenant_id=identity.tenant_id,
        staff_id=identity.staff_id,
        current_password=data.current_password,
        new_password=data.new_password,
    )

"""Pydantic schemas for staff authentication and profile operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from clinic_core.core.auth.schemas import AuthTokens
from clinic_core.core.constants import MAX_NAME_LENGTH, MAX_PASSWORD_LENGTH


# ============================================================
# Authentication Schemas
# ============================================================


class LoginRequest(BaseModel):
    """Schema for staff email/password login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)
    two_factor_code: str | None = Field(None, max_length=16)


class RefreshTokenRequest(BaseModel):
    """Schema for rotating or revoking a refresh token."""

    refresh_token: str = Field(..., min_length=1)


class TokenResponse(AuthTokens):
    """Schema for authentication token response."""


# ============================================================
# Profile Schemas
# ============================================================


class ProfileResponse(BaseModel):
    """The authenticated staff member's profile.

    ``permissions`` is omitted for ADMIN staff, who bypass the module
    table.
    """

    id: UUID
    email: str
    full_name: str
    role: str
    permissions: dict[str, list[str]] | None = None


class ProfileUpdateRequest(BaseModel):
    """Schema for updating the caller's own profile."""

    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)


class ChangePasswordRequest(BaseModel):
    """Schema for changing the caller's password.

    Length and reuse rules are enforced by the service so they surface
    as 400 responses.
    """

    current_password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)
    new_password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)


# ============================================================
# Invitation & Permission Schemas
# ============================================================


class InvitationResponse(BaseModel):
    """A freshly issued invitation; the token is shown once."""

    staff_id: UUID
    invitation_token: str
    expires_at: datetime


class SetPasswordRequest(BaseModel):
    """Schema for accepting an invitation by setting a password."""

    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)


class PermissionsPayload(BaseModel):
    """Module name -> allowed actions, e.g. {"PATIENTS": ["VIEW", "EDIT"]}."""

    permissions: dict[str, list[str]]

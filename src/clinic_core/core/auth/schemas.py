"""Authentication schemas for token handling."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from clinic_core.core.constants import TOKEN_TYPE_BEARER


class TokenData(BaseModel):
    """Data extracted from a JWT access token.

    Attributes:
        staff_id: The staff member's UUID (``sub`` claim)
        tenant_id: The tenant the token was minted for
        role: Staff role at the time of issue
        exp: Token expiration time
        type: Token type (always "access" for bearer tokens)
        jti: Unique token ID
    """

    staff_id: UUID
    tenant_id: UUID
    role: str
    exp: datetime
    type: str = "access"
    jti: str | None = None


class AccessToken(BaseModel):
    """A signed access token and its expiry."""

    token: str
    expires_at: datetime


class AuthTokens(BaseModel):
    """Credential pair returned by login and refresh.

    Attributes:
        token_type: Always "Bearer"
        access_token: Short-lived signed JWT
        access_token_expires_at: Access token expiry
        refresh_token: Opaque single-use refresh token
        refresh_token_expires_at: Refresh token expiry
    """

    token_type: str = TOKEN_TYPE_BEARER
    access_token: str
    access_token_expires_at: datetime
    refresh_token: str
    refresh_token_expires_at: datetime


class AuthenticatedIdentity(BaseModel):
    """The staff identity behind a request.

    Resolved from a verified access token and the staff record; consumed
    by permission checks and by any tenant-scoped service.
    """

    model_config = ConfigDict(frozen=True)

    staff_id: UUID
    tenant_id: UUID
    role: str
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"

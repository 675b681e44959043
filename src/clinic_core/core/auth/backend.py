"""Authentication backend for JWT, password and TOTP handling.

This module provides core authentication utilities including:
- Password hashing with bcrypt
- JWT access token creation and verification
- Opaque token generation and hashing for storage
- TOTP second-factor verification
"""

import hashlib
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import pyotp
from jose import JWTError, jwt
from passlib.context import CryptContext

from clinic_core.config import settings
from clinic_core.core.auth.schemas import AccessToken, TokenData
from clinic_core.core.constants import (
    ACCESS_TOKEN_JTI_LENGTH,
    BCRYPT_ROUNDS,
    REFRESH_TOKEN_BYTES,
)


pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)


# ============================================================
# Password Utilities
# ============================================================


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hash of the password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Bcrypt hash to verify against (None never matches)

    Returns:
        True if password matches, False otherwise
    """
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed or unknown hash format
        return False


# ============================================================
# JWT Token Utilities
# ============================================================


def create_access_token(
    staff_id: UUID,
    tenant_id: UUID,
    role: str,
    expires_delta: timedelta | None = None,
    additional_claims: dict[str, Any] | None = None,
) -> AccessToken:
    """Create a short-lived JWT access token.

    Args:
        staff_id: The staff member's UUID
        tenant_id: The tenant's UUID
        role: The staff member's role
        expires_delta: Optional custom expiration time
        additional_claims: Optional extra claims to include

    Returns:
        The encoded token with its expiry
    """
    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )

    to_encode: dict[str, Any] = {
        "sub": str(staff_id),
        "tenant_id": str(tenant_id),
        "role": role,
        "exp": expire,
        "type": "access",
        "iat": now,
        "jti": secrets.token_urlsafe(ACCESS_TOKEN_JTI_LENGTH),
    }

    if additional_claims:
        to_encode.update(additional_claims)

    token = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return AccessToken(token=token, expires_at=expire)


def decode_token(token: str) -> TokenData | None:
    """Decode and validate a JWT token.

    Args:
        token: The JWT token to decode

    Returns:
        TokenData if valid, None if invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )

        staff_id = payload.get("sub")
        tenant_id = payload.get("tenant_id")
        role = payload.get("role")
        exp = payload.get("exp")

        if not staff_id or not tenant_id or not role or exp is None:
            return None

        return TokenData(
            staff_id=UUID(staff_id),
            tenant_id=UUID(tenant_id),
            role=role,
            exp=datetime.fromtimestamp(exp, tz=UTC),
            type=payload.get("type", "access"),
            jti=payload.get("jti"),
        )

    except (JWTError, ValueError):
        return None


# ============================================================
# Opaque Token Utilities
# ============================================================


def generate_opaque_token(nbytes: int = REFRESH_TOKEN_BYTES) -> str:
    """Generate a random URL-safe token (refresh or invitation).

    The value is returned to the client once and stored only as a hash.
    """
    return secrets.token_urlsafe(nbytes)


def hash_token(token: str) -> str:
    """Hash a token for secure storage.

    Uses SHA-256 to hash tokens before storing in the database.

    Args:
        token: The token to hash

    Returns:
        SHA-256 hex digest of the token
    """
    return hashlib.sha256(token.encode()).hexdigest()


# ============================================================
# Two-Factor Utilities
# ============================================================


def verify_totp(secret: str, code: str | None, valid_window: int | None = None) -> bool:
    """Verify a TOTP code against a base32 secret.

    Args:
        secret: The staff member's base32 TOTP secret
        code: The submitted 6-digit code
        valid_window: Number of 30s steps of clock drift to accept

    Returns:
        True if the code is valid for the current time window
    """
    if not code:
        return False
    code = code.strip().replace(" ", "")
    if not code.isdigit():
        return False
    if valid_window is None:
        valid_window = settings.totp_valid_window
    try:
        return pyotp.TOTP(secret).verify(code, valid_window=valid_window)
    except ValueError:
        # Secret is not valid base32
        return False

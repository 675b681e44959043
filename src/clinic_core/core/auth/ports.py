"""Collaborator interfaces consumed by the staff authenticator.

The authenticator depends on these protocols rather than on the
backend functions directly, so hashing, signing and TOTP can be
swapped (or faked in tests) without touching the service.
"""

from typing import Protocol
from uuid import UUID

from clinic_core.core.auth import backend
from clinic_core.core.auth.schemas import AccessToken


class PasswordHasher(Protocol):
    """One-way password hashing."""

    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str | None) -> bool: ...


class TokenIssuer(Protocol):
    """Mints signed access tokens carrying identity claims."""

    def issue(self, staff_id: UUID, tenant_id: UUID, role: str) -> AccessToken: ...


class TotpVerifier(Protocol):
    """Checks a time-based one-time code against a shared secret."""

    def verify(self, secret: str, code: str | None) -> bool: ...


class BcryptPasswordHasher:
    """PasswordHasher backed by passlib bcrypt."""

    def hash(self, password: str) -> str:
        return backend.hash_password(password)

    def verify(self, password: str, password_hash: str | None) -> bool:
        return backend.verify_password(password, password_hash)


class JwtTokenIssuer:
    """TokenIssuer producing HS256 JWTs via python-jose."""

    def issue(self, staff_id: UUID, tenant_id: UUID, role: str) -> AccessToken:
        return backend.create_access_token(staff_id, tenant_id, role)


class PyOtpVerifier:
    """TotpVerifier backed by pyotp."""

    def verify(self, secret: str, code: str | None) -> bool:
        return backend.verify_totp(secret, code)

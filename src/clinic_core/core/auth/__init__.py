"""Authentication module for JWT, password and TOTP handling.

Routes, dependencies and the service are imported from their own
submodules; this package only re-exports the dependency-free pieces.
"""

from clinic_core.core.auth.backend import (
    create_access_token,
    decode_token,
    generate_opaque_token,
    hash_password,
    hash_token,
    verify_password,
    verify_totp,
)
from clinic_core.core.auth.schemas import (
    AccessToken,
    AuthenticatedIdentity,
    AuthTokens,
    TokenData,
)


__all__ = [
    # Schemas
    "AccessToken",
    "AuthTokens",
    "AuthenticatedIdentity",
    "TokenData",
    # Token utilities
    "create_access_token",
    "decode_token",
    "generate_opaque_token",
    # Password utilities
    "hash_password",
    "hash_token",
    "verify_password",
    "verify_totp",
]

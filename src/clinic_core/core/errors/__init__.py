"""Error handling module with RFC 7807 Problem Details."""

from clinic_core.core.errors.exceptions import (
    AccountInactiveError,
    AppException,
    BadRequestError,
    BillingInactiveError,
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    NotFoundError,
    PermissionDeniedError,
    RefreshTokenRevokedError,
    TenantMismatchError,
    TenantNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from clinic_core.core.errors.handlers import (
    FieldError,
    ProblemDetail,
    problem_response,
    register_exception_handlers,
)


__all__ = [
    "AccountInactiveError",
    "AppException",
    "BadRequestError",
    "BillingInactiveError",
    "ConflictError",
    "FieldError",
    "ForbiddenError",
    "InvalidCredentialsError",
    "InvalidRefreshTokenError",
    "NotFoundError",
    "PermissionDeniedError",
    "ProblemDetail",
    "RefreshTokenRevokedError",
    "TenantMismatchError",
    "TenantNotFoundError",
    "UnauthorizedError",
    "ValidationError",
    "problem_response",
    "register_exception_handlers",
]

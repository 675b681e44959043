"""Application exceptions.

Each class fixes an HTTP status and a default machine-readable code;
the handlers in ``clinic_core.core.errors.handlers`` render them as
Problem Details. Subclasses exist for the failures raised in more than
one place, so the code a client sees cannot drift between call sites.
"""

from typing import Any, ClassVar


class AppException(Exception):
    """Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Extra members merged into the response body
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class BadRequestError(AppException):
    """The request is well-formed but cannot be honoured."""

    message = "Bad request"
    error_code = "bad_request"
    status_code = 400


class ValidationError(AppException):
    """Input rejected by a service after schema validation passed.

    Example:
        raise ValidationError("Unknown module", errors=[{"field": "RADIOLOGY", "message": "..."}])
    """

    message = "Validation error"
    error_code = "validation_error"
    status_code = 422

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if errors:
            details["errors"] = errors
        super().__init__(message=message, details=details, **kwargs)


class ConflictError(AppException):
    message = "Resource conflict"
    error_code = "conflict"
    status_code = 409


class NotFoundError(AppException):
    """A resource does not exist, or is not visible to the caller's tenant."""

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class TenantNotFoundError(NotFoundError):
    """No ACTIVE tenant matches the resolved slug or domain.

    Example:
        raise TenantNotFoundError(slug="acme-dental")
    """

    message = "Tenant not found"
    error_code = "tenant_not_found"

    def __init__(
        self,
        slug: str | None = None,
        domain: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if slug:
            details["slug"] = slug
        if domain:
            details["domain"] = domain
        message = kwargs.pop("message", None)
        if message is None:
            target = f"slug '{slug}'" if slug else f"domain '{domain}'"
            message = f"No active tenant found for {target}"
        super().__init__(message=message, resource="tenant", details=details, **kwargs)


class UnauthorizedError(AppException):
    """Authentication is missing or was rejected.

    Rendered with ``WWW-Authenticate: Bearer``.
    """

    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class InvalidCredentialsError(UnauthorizedError):
    """Unknown email or wrong password; the two are indistinguishable."""

    message = "Invalid credentials"
    error_code = "invalid_credentials"


class AccountInactiveError(UnauthorizedError):
    message = "Account is not active"
    error_code = "account_inactive"


class InvalidRefreshTokenError(UnauthorizedError):
    """The refresh token is unknown or belongs to another tenant."""

    message = "Invalid refresh token"
    error_code = "invalid_refresh_token"


class RefreshTokenRevokedError(UnauthorizedError):
    """The refresh token exists but was already rotated, revoked or expired."""

    message = "Refresh token expired or revoked"
    error_code = "refresh_token_expired_or_revoked"


class TenantMismatchError(UnauthorizedError):
    """An access token presented to a tenant other than its issuer."""

    message = "Token was not issued for this tenant"
    error_code = "tenant_mismatch"


class ForbiddenError(AppException):
    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class PermissionDeniedError(ForbiddenError):
    """The caller holds none of the module permissions a route requires.

    Example:
        raise PermissionDeniedError(["PATIENTS:DELETE"])
    """

    message = "You do not have permission to perform this action"
    error_code = "permission_denied"

    def __init__(self, required: list[str], **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        details["required_permissions"] = required
        super().__init__(details=details, **kwargs)


class BillingInactiveError(ForbiddenError):
    """The clinic's billing standing blocks its admin panel.

    Example:
        raise BillingInactiveError("PAST_DUE")
    """

    error_code = "billing_inactive"

    _MESSAGES: ClassVar[dict[str, str]] = {
        "PENDING_PAYMENT": "Complete payment to activate the account and access the admin panel.",
        "PAST_DUE": "Payment is past due. Update the payment method to restore access.",
        "CANCELED": "The subscription has been canceled. Reactivate it to continue using the platform.",
    }

    def __init__(self, billing_status: str, **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        details["billing_status"] = billing_status
        message = kwargs.pop("message", None) or self._MESSAGES.get(
            billing_status,
            "Access to the admin panel is restricted by the account's billing status.",
        )
        super().__init__(message=message, details=details, **kwargs)

"""Staff authentication service.

Owns the refresh-token lifecycle: issue on login, rotate on refresh,
revoke on logout, and revoke everything on password change.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core.api.dependencies import DBSession
from clinic_core.config import Settings, settings
from clinic_core.core.auth.backend import generate_opaque_token, hash_token
from clinic_core.core.auth.ports import (
    BcryptPasswordHasher,
    JwtTokenIssuer,
    PasswordHasher,
    PyOtpVerifier,
    TokenIssuer,
    TotpVerifier,
)
from clinic_core.core.auth.schemas import AuthTokens
from clinic_core.core.errors import (
    AccountInactiveError,
    BadRequestError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    NotFoundError,
    RefreshTokenRevokedError,
    UnauthorizedError,
)
from clinic_core.core.tenancy.context import TenantContext
from clinic_core.modules.staff.models import RefreshToken, StaffUser
from clinic_core.modules.staff.repos import RefreshTokenRepository, StaffRepository


logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StaffAuthService:
    """Service for staff authentication operations.

    Handles login, refresh-token rotation, logout and password change.
    All writes happen on the request's session and commit together.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        staff_repo: StaffRepository | None = None,
        token_repo: RefreshTokenRepository | None = None,
        hasher: PasswordHasher | None = None,
        issuer: TokenIssuer | None = None,
        totp: TotpVerifier | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db = db
        self.staff_repo = staff_repo or StaffRepository(db)
        self.token_repo = token_repo or RefreshTokenRepository(db)
        self.hasher = hasher or BcryptPasswordHasher()
        self.issuer = issuer or JwtTokenIssuer()
        self.totp = totp or PyOtpVerifier()
        self.config = config or settings
        self.clock = clock

    async def login(
        self,
        tenant: TenantContext,
        email: str,
        password: str,
        two_factor_code: str | None = None,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> AuthTokens:
        """Authenticate a staff member of the current tenant.

        Args:
            tenant: The tenant the request resolved to
            email: Login email (matched case-insensitively)
            password: Plain text password
            two_factor_code: TOTP code, required when 2FA is enabled
            user_agent: Client user agent
            ip_address: Client IP address

        Returns:
            A fresh access token and refresh token

        Raises:
            UnauthorizedError: If credentials, account status or 2FA fail
        """
        normalized_email = email.strip().lower()
        staff = await self.staff_repo.get_by_email(normalized_email, tenant.tenant_id)
        if staff is None:
            logger.info("login_failed", reason="unknown_email", tenant_id=str(tenant.tenant_id))
            raise InvalidCredentialsError()

        if not staff.is_active:
            logger.info("login_failed", reason="account_inactive", staff_id=str(staff.id))
            raise AccountInactiveError()

        if not self.hasher.verify(password, staff.password_hash):
            logger.info("login_failed", reason="wrong_password", staff_id=str(staff.id))
            raise InvalidCredentialsError()

        if staff.two_factor_secret and not self.totp.verify(
            staff.two_factor_secret, two_factor_code
        ):
            logger.info("login_failed", reason="invalid_two_factor_code", staff_id=str(staff.id))
            raise UnauthorizedError(
                "Invalid two-factor code",
                error_code="invalid_two_factor_code",
            )

        await self._purge_expired()

        tokens = await self._issue_tokens(staff, user_agent, ip_address)
        logger.info("login_succeeded", staff_id=str(staff.id), tenant_id=str(staff.tenant_id))
        return tokens

    async def refresh(
        self,
        refresh_token: str,
        tenant: TenantContext | None = None,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> AuthTokens:
        """Rotate a refresh token.

        The presented token is revoked and exactly one replacement is
        issued. The row is locked for the duration of the transaction
        and revoked conditionally, so of two concurrent refreshes with the
        same token only one succeeds.

        Args:
            refresh_token: The opaque refresh token
            tenant: The tenant the request resolved to, if any
            user_agent: Client user agent
            ip_address: Client IP address

        Returns:
            New token pair

        Raises:
            UnauthorizedError: If the token is unknown, revoked or expired
        """
        await self._purge_expired()

        stored = await self.token_repo.get_by_hash_for_update(hash_token(refresh_token))
        if stored is None:
            raise InvalidRefreshTokenError()

        if not stored.is_usable(self.clock()):
            if stored.revoked:
                logger.warning(
                    "refresh_token_reuse_detected",
                    staff_id=str(stored.staff_id),
                    token_id=str(stored.id),
                )
            await self.token_repo.delete(stored)
            # Persist the deletion; the request transaction rolls back on error
            await self.db.commit()
            raise RefreshTokenRevokedError()

        staff = await self.staff_repo.get_by_id(stored.staff_id)
        if staff is None or (tenant is not None and staff.tenant_id != tenant.tenant_id):
            raise InvalidRefreshTokenError()

        if not await self.token_repo.revoke_if_active(stored):
            logger.warning(
                "refresh_token_reuse_detected",
                staff_id=str(stored.staff_id),
                token_id=str(stored.id),
            )
            raise RefreshTokenRevokedError()

        if not staff.is_active:
            await self.db.commit()
            raise AccountInactiveError()

        tokens = await self._issue_tokens(staff, user_agent, ip_address)
        logger.info("refresh_token_rotated", staff_id=str(staff.id), token_id=str(stored.id))
        return tokens

    async def logout(self, refresh_token: str) -> None:
        """Revoke a refresh token. Unknown tokens are ignored.

        Args:
            refresh_token: The refresh token to revoke
        """
        stored = await self.token_repo.get_by_hash(hash_token(refresh_token))
        if stored is not None and not stored.revoked:
            await self.token_repo.revoke_if_active(stored)
            logger.info("logout", staff_id=str(stored.staff_id))

    async def logout_all(self, staff_id: UUID) -> int:
        """Revoke every active refresh token of a staff member.

        Args:
            staff_id: The staff member's UUID

        Returns:
            Number of tokens revoked
        """
        count = await self.token_repo.revoke_all_for_staff(staff_id)
        logger.info("sessions_revoked", staff_id=str(staff_id), count=count, reason="logout_all")
        return count

    async def change_password(
        self,
        tenant_id: UUID,
        staff_id: UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        """Change a staff member's password and end all their sessions.

        The hash update and the bulk revocation share one transaction.

        Args:
            tenant_id: The caller's tenant
            staff_id: The caller's staff ID
            current_password: Current password, for verification
            new_password: Replacement password

        Raises:
            BadRequestError: If the new password is too short or reused,
                or the current password is wrong
            NotFoundError: If the staff member no longer exists
        """
        current = current_password.strip()
        new = new_password.strip()

        if len(new) < self.config.min_password_length:
            raise BadRequestError(
                f"New password must be at least {self.config.min_password_length} characters long.",
                error_code="password_too_short",
            )
        if current == new:
            raise BadRequestError(
                "New password must be different from the current password.",
                error_code="password_reused",
            )

        staff = await self.staff_repo.get_by_id(staff_id, tenant_id)
        if staff is None:
            raise NotFoundError(
                "Staff user not found",
                resource="staff",
                resource_id=str(staff_id),
                error_code="staff_not_found",
            )

        if not self.hasher.verify(current, staff.password_hash):
            raise BadRequestError(
                "Current password is incorrect.",
                error_code="current_password_incorrect",
            )
        if self.hasher.verify(new, staff.password_hash):
            raise BadRequestError(
                "New password must be different from the current password.",
                error_code="password_reused",
            )

        staff.password_hash = self.hasher.hash(new)
        await self.staff_repo.update(staff)

        count = await self.token_repo.revoke_all_for_staff(staff.id)
        logger.info(
            "sessions_revoked",
            staff_id=str(staff.id),
            count=count,
            reason="password_changed",
        )

    async def _issue_tokens(
        self,
        staff: StaffUser,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> AuthTokens:
        """Issue an access token and persist a new refresh token."""
        access = self.issuer.issue(staff.id, staff.tenant_id, staff.role)

        raw_refresh = generate_opaque_token()
        expires_at = self.clock() + timedelta(days=self.config.refresh_token_expire_days)
        await self.token_repo.create(
            RefreshToken(
                staff_id=staff.id,
                token_hash=hash_token(raw_refresh),
                expires_at=expires_at,
                revoked=False,
                user_agent=user_agent,
                ip_address=ip_address,
            )
        )

        return AuthTokens(
            access_token=access.token,
            access_token_expires_at=access.expires_at,
            refresh_token=raw_refresh,
            refresh_token_expires_at=expires_at,
        )

    async def _purge_expired(self) -> None:
        """Delete globally expired refresh tokens, best-effort."""
        if not self.config.purge_expired_tokens_on_auth:
            return
        try:
            purged = await self.token_repo.purge_expired(self.clock())
        except SQLAlchemyError:
            logger.warning("expired_token_purge_failed", exc_info=True)
            return
        if purged:
            logger.debug("expired_tokens_purged", count=purged)


def get_auth_service(db: DBSession) -> StaffAuthService:
    """Build the auth service with the default collaborators."""
    return StaffAuthService(db)


# Type alias for dependency injection
AuthSvc = Annotated[StaffAuthService, Depends(get_auth_service)]

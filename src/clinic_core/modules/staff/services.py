"""Staff service for profile, invitation and permission management."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core.api.dependencies import DBSession
from clinic_core.config import Settings, settings
from clinic_core.core.auth.backend import generate_opaque_token, hash_token
from clinic_core.core.auth.ports import BcryptPasswordHasher, PasswordHasher
from clinic_core.core.auth.schemas import AuthenticatedIdentity
from clinic_core.core.constants import INVITATION_TOKEN_BYTES
from clinic_core.core.errors import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from clinic_core.core.permissions import (
    ModuleName,
    ModulePermissions,
    PermissionAction,
    PermissionResolver,
    SqlPermissionStore,
    parse_action,
    parse_module,
)
from clinic_core.modules.staff.models import InvitationToken, StaffStatus, StaffUser
from clinic_core.modules.staff.repos import InvitationTokenRepository, StaffRepository
from clinic_core.modules.staff.schemas import InvitationResponse, ProfileResponse


logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


def parse_permissions_strict(raw: dict[str, list[str]]) -> ModulePermissions:
    """Parse a submitted permission mapping, rejecting unknown names.

    Raises:
        ValidationError: If any module or action name is unknown
    """
    errors: list[dict[str, str]] = []
    grants: dict[ModuleName, frozenset[PermissionAction]] = {}
    for module_name, action_names in raw.items():
        module = parse_module(module_name)
        if module is None:
            errors.append({"field": module_name, "message": "Unknown module"})
            continue
        actions: set[PermissionAction] = set()
        for action_name in action_names:
            action = parse_action(action_name)
            if action is None:
                errors.append({"field": f"{module_name}.{action_name}", "message": "Unknown action"})
            else:
                actions.add(action)
        grants[module] = frozenset(actions)
    if errors:
        raise ValidationError("Invalid permissions", errors=errors)
    return ModulePermissions(grants=grants)


class StaffService:
    """Service for staff profile and onboarding operations.

    Contains business logic for self-service profile changes, invitation
    acceptance and per-module permission records.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        staff_repo: StaffRepository | None = None,
        invitation_repo: InvitationTokenRepository | None = None,
        permission_store: SqlPermissionStore | None = None,
        hasher: PasswordHasher | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db = db
        self.staff_repo = staff_repo or StaffRepository(db)
        self.invitation_repo = invitation_repo or InvitationTokenRepository(db)
        self.permission_store = permission_store or SqlPermissionStore(db)
        self.permissions = PermissionResolver(self.permission_store)
        self.hasher = hasher or BcryptPasswordHasher()
        self.config = config or settings
        self.clock = clock

    async def _require_staff(self, staff_id: UUID, tenant_id: UUID) -> StaffUser:
        staff = await self.staff_repo.get_by_id(staff_id, tenant_id)
        if staff is None:
            raise NotFoundError(
                "Staff user not found",
                resource="staff",
                resource_id=str(staff_id),
                error_code="staff_not_found",
            )
        return staff

    async def get_profile(self, identity: AuthenticatedIdentity) -> ProfileResponse:
        """Get the caller's profile with their module permissions.

        Raises:
            NotFoundError: If the staff member no longer exists
        """
        staff = await self._require_staff(identity.staff_id, identity.tenant_id)
        return await self._profile(staff, identity)

    async def update_profile(
        self,
        identity: AuthenticatedIdentity,
        email: str,
        full_name: str,
    ) -> ProfileResponse:
        """Update the caller's email and name.

        Args:
            identity: The caller
            email: New email (trimmed and lower-cased)
            full_name: New display name (trimmed)

        Raises:
            ConflictError: If another staff member of the tenant uses the email
            NotFoundError: If the staff member no longer exists
        """
        staff = await self._require_staff(identity.staff_id, identity.tenant_id)

        normalized_email = email.strip().lower()
        normalized_name = full_name.strip()

        if staff.email.lower() != normalized_email and await self.staff_repo.email_taken(
            normalized_email, identity.tenant_id, exclude_staff_id=staff.id
        ):
            raise ConflictError(
                "Email address is already in use.",
                error_code="email_in_use",
            )

        staff.email = normalized_email
        staff.full_name = normalized_name
        staff = await self.staff_repo.update(staff)
        logger.info("staff_profile_updated", staff_id=str(staff.id))
        return await self._profile(staff, identity)

    async def issue_invitation(self, tenant_id: UUID, staff_id: UUID) -> InvitationResponse:
        """Create a one-time password-setup token for a staff member.

        Only accounts still waiting for their first password can be
        invited. Earlier unused invitations stay valid until they expire.

        Raises:
            NotFoundError: If the staff member does not exist in the tenant
            ConflictError: If the staff member is not in INVITED status
        """
        staff = await self._require_staff(staff_id, tenant_id)
        if staff.status != StaffStatus.INVITED:
            logger.warning(
                "invitation_refused", staff_id=str(staff.id), status=str(staff.status)
            )
            raise ConflictError(
                "Cannot send an invitation to a staff member who is not pending activation",
                error_code="staff_not_invited",
            )

        raw_token = generate_opaque_token(INVITATION_TOKEN_BYTES)
        expires_at = self.clock() + timedelta(days=self.config.invitation_token_expire_days)
        await self.invitation_repo.create(
            InvitationToken(
                staff_id=staff.id,
                token_hash=hash_token(raw_token),
                expires_at=expires_at,
            )
        )
        logger.info("invitation_issued", staff_id=str(staff.id), expires_at=expires_at.isoformat())
        return InvitationResponse(
            staff_id=staff.id,
            invitation_token=raw_token,
            expires_at=expires_at,
        )

    async def set_password_with_invitation(
        self,
        token: str,
        password: str,
        tenant_id: UUID | None = None,
    ) -> None:
        """Accept an invitation: set the password and activate the account.

        Password, status and token consumption change in one transaction.

        Args:
            token: The opaque invitation token
            password: The new password
            tenant_id: The tenant the request resolved to, if any

        Raises:
            BadRequestError: If the token is unknown, expired or used, the
                account is no longer awaiting activation, or the password is
                too short
        """
        invitation = await self.invitation_repo.get_by_hash_for_update(hash_token(token))
        if invitation is None:
            raise BadRequestError("Invalid invitation token", error_code="invalid_invitation_token")

        now = self.clock()
        if not invitation.is_valid(now):
            raise BadRequestError(
                "Invitation token is expired or already used",
                error_code="invitation_expired_or_used",
            )

        staff = await self.staff_repo.get_by_id(invitation.staff_id, tenant_id)
        if staff is None or staff.status != StaffStatus.INVITED:
            raise BadRequestError("Invalid invitation token", error_code="invalid_invitation_token")

        password = password.strip()
        if len(password) < self.config.min_password_length:
            raise BadRequestError(
                f"Password must be at least {self.config.min_password_length} characters long.",
                error_code="password_too_short",
            )

        staff.password_hash = self.hasher.hash(password)
        staff.status = StaffStatus.ACTIVE
        invitation.mark_used(now)
        await self.staff_repo.update(staff)
        logger.info("invitation_accepted", staff_id=str(staff.id))

    async def get_permissions(self, tenant_id: UUID, staff_id: UUID) -> dict[str, list[str]]:
        """Get the stored module permissions of a staff member."""
        staff = await self._require_staff(staff_id, tenant_id)
        stored = await self.permission_store.get_for_staff(staff.id)
        return (stored or ModulePermissions.empty()).to_raw()

    async def set_permissions(
        self, tenant_id: UUID, staff_id: UUID, raw: dict[str, list[str]]
    ) -> dict[str, list[str]]:
        """Replace the module permissions of a staff member.

        Raises:
            ValidationError: If a module or action name is unknown
            NotFoundError: If the staff member does not exist in the tenant
        """
        staff = await self._require_staff(staff_id, tenant_id)
        permissions = parse_permissions_strict(raw)
        await self.permission_store.save(tenant_id, staff.id, permissions)
        logger.info("staff_permissions_updated", staff_id=str(staff.id))
        return permissions.to_raw()

    async def _profile(
        self, staff: StaffUser, identity: AuthenticatedIdentity
    ) -> ProfileResponse:
        permissions = None
        if not identity.is_admin:
            permissions = (await self.permissions.permissions_for(identity)).to_raw()
        return ProfileResponse(
            id=staff.id,
            email=staff.email,
            full_name=staff.full_name,
            role=staff.role,
            permissions=permissions,
        )


def get_staff_service(db: DBSession) -> StaffService:
    """Build the staff service with the default collaborators."""
    return StaffService(db)


# Type alias for dependency injection
StaffSvc = Annotated[StaffService, Depends(get_staff_service)]

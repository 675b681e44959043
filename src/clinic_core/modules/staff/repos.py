"""Staff repositories for database operations."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update

from clinic_core.api.dependencies import DBSession
from clinic_core.modules.staff.models import InvitationToken, RefreshToken, StaffUser


class StaffRepository:
    """Repository for StaffUser database operations.

    Every lookup is scoped to a tenant; staff never resolve across
    clinics.
    """

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def get_by_id(self, staff_id: UUID, tenant_id: UUID | None = None) -> StaffUser | None:
        """Get a staff member by ID.

        Args:
            staff_id: The staff member's UUID
            tenant_id: Tenant to scope the lookup to (None for system use)

        Returns:
            StaffUser if found, None otherwise
        """
        stmt = select(StaffUser).where(StaffUser.id == staff_id)
        if tenant_id:
            stmt = stmt.where(StaffUser.tenant_id == tenant_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str, tenant_id: UUID) -> StaffUser | None:
        """Get a staff member by email, case-insensitively.

        Args:
            email: The login email
            tenant_id: The tenant's UUID

        Returns:
            StaffUser if found, None otherwise
        """
        stmt = select(StaffUser).where(
            func.lower(StaffUser.email) == email.strip().lower(),
            StaffUser.tenant_id == tenant_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def email_taken(
        self, email: str, tenant_id: UUID, exclude_staff_id: UUID | None = None
    ) -> bool:
        """Check whether another staff member in the tenant uses this email."""
        stmt = select(func.count()).select_from(StaffUser).where(
            func.lower(StaffUser.email) == email.strip().lower(),
            StaffUser.tenant_id == tenant_id,
        )
        if exclude_staff_id:
            stmt = stmt.where(StaffUser.id != exclude_staff_id)
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def create(self, staff: StaffUser) -> StaffUser:
        """Add a new staff member and flush to obtain server defaults."""
        self.session.add(staff)
        await self.session.flush()
        await self.session.refresh(staff)
        return staff

    async def update(self, staff: StaffUser) -> StaffUser:
        """Flush pending changes to a staff member."""
        await self.session.flush()
        await self.session.refresh(staff)
        return staff


class RefreshTokenRepository:
    """Repository for RefreshToken database operations.

    Revocations use conditional updates so that concurrent callers
    racing on the same token can tell who won.
    """

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, token: RefreshToken) -> RefreshToken:
        """Persist a new refresh token.

        Args:
            token: RefreshToken instance to create

        Returns:
            The created token
        """
        self.session.add(token)
        await self.session.flush()
        return token

    async def get_by_hash(self, token_hash: str) -> RefreshToken | None:
        """Get a refresh token by hash, whatever its state."""
        stmt = select(RefreshToken).where(RefreshToken.token_hash == token_hash)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_hash_for_update(self, token_hash: str) -> RefreshToken | None:
        """Get a refresh token by hash with a row lock held until commit."""
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.token_hash == token_hash)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def revoke_if_active(self, token: RefreshToken) -> bool:
        """Revoke a token unless something else already did.

        Args:
            token: The token to revoke

        Returns:
            True if this call flipped the token to revoked
        """
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.id == token.id,
                RefreshToken.revoked.is_(False),
            )
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        token.revoked = True
        return result.rowcount == 1

    async def revoke_all_for_staff(self, staff_id: UUID) -> int:
        """Revoke every active refresh token of a staff member.

        Args:
            staff_id: The staff member's UUID

        Returns:
            Number of tokens revoked
        """
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.staff_id == staff_id,
                RefreshToken.revoked.is_(False),
            )
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def delete(self, token: RefreshToken) -> None:
        await self.session.delete(token)
        await self.session.flush()

    async def purge_expired(self, now: datetime) -> int:
        """Delete every expired refresh token, across all tenants.

        Runs in a savepoint so a failure leaves the caller's transaction
        usable.

        Args:
            now: Delete tokens that expired at or before this time

        Returns:
            Number of tokens deleted
        """
        stmt = delete(RefreshToken).where(RefreshToken.expires_at <= now)
        async with self.session.begin_nested():
            result = await self.session.execute(stmt)
        return result.rowcount


class InvitationTokenRepository:
    """Repository for InvitationToken database operations."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, token: InvitationToken) -> InvitationToken:
        self.session.add(token)
        await self.session.flush()
        return token

    async def get_by_hash_for_update(self, token_hash: str) -> InvitationToken | None:
        """Get an invitation by hash, locked so it can only be consumed once."""
        stmt = (
            select(InvitationToken)
            .where(InvitationToken.token_hash == token_hash)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def purge_expired(self, now: datetime) -> int:
        """Delete invitations that expired at or before ``now``."""
        stmt = delete(InvitationToken).where(InvitationToken.expires_at <= now)
        result = await self.session.execute(stmt)
        return result.rowcount


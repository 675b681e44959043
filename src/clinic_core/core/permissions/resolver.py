"""Permission evaluation.

ADMIN staff bypass the module table. Everyone else gets exactly what
their stored record grants, and nothing when there is no record.
"""

from typing import Protocol
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core.core.auth.schemas import AuthenticatedIdentity
from clinic_core.core.permissions.models import (
    ModuleName,
    ModulePermissions,
    PermissionAction,
    StaffPermissions,
    parse_action,
    parse_module,
)


logger = structlog.get_logger()


class PermissionStore(Protocol):
    """Loads the stored module permissions of a staff member."""

    async def get_for_staff(self, staff_id: UUID) -> ModulePermissions | None: ...


class SqlPermissionStore:
    """PermissionStore reading the ``staff_permissions`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_for_staff(self, staff_id: UUID) -> ModulePermissions | None:
        stmt = select(StaffPermissions).where(StaffPermissions.staff_id == staff_id)
        result = await self.session.execute(stmt)
        record = result.scalar_one_or_none()
        return record.to_module_permissions() if record is not None else None

    async def save(
        self, tenant_id: UUID, staff_id: UUID, permissions: ModulePermissions
    ) -> None:
        """Create or replace the permission record of a staff member."""
        stmt = select(StaffPermissions).where(StaffPermissions.staff_id == staff_id)
        result = await self.session.execute(stmt)
        record = result.scalar_one_or_none()
        if record is None:
            record = StaffPermissions(tenant_id=tenant_id, staff_id=staff_id)
            self.session.add(record)
        record.grants = permissions.to_raw()
        await self.session.flush()


class PermissionResolver:
    """Decides whether a staff identity may act on a module.

    Evaluates whether a staff member may perform an action on a module
    based on their role and stored permission record.
    """

    def __init__(self, store: PermissionStore) -> None:
        self.store = store

    async def permissions_for(self, identity: AuthenticatedIdentity) -> ModulePermissions:
        """Get the effective module permissions of a non-admin identity.

        Returns:
            The stored grants, or an empty set when there is no record
        """
        return await self.store.get_for_staff(identity.staff_id) or ModulePermissions.empty()

    async def allows(
        self,
        identity: AuthenticatedIdentity,
        module: ModuleName | str,
        action: PermissionAction | str,
    ) -> bool:
        """Check a single module/action pair.

        Args:
            identity: The acting staff identity
            module: Module enum member or name (SNAKE or camelCase)
            action: Action enum member or name

        Returns:
            True if the action is allowed; False for unknown names
        """
        if identity.is_admin:
            logger.info(
                "admin_permission_bypass",
                staff_id=str(identity.staff_id),
                module=str(module),
                action=str(action),
            )
            return True

        parsed_module = parse_module(module)
        parsed_action = parse_action(action)
        if parsed_module is None or parsed_action is None:
            logger.warning(
                "unknown_permission_requested",
                module=str(module),
                action=str(action),
            )
            return False

        permissions = await self.permissions_for(identity)
        return permissions.allows(parsed_module, parsed_action)

    async def allows_any(
        self,
        identity: AuthenticatedIdentity,
        checks: list[tuple[ModuleName | str, PermissionAction | str]],
    ) -> bool:
        """Check whether any one of several module/action pairs is allowed."""
        for module, action in checks:
            if await self.allows(identity, module, action):
                return True
        return False

    async def permission_matrix(self, identity: AuthenticatedIdentity) -> dict[str, dict[str, bool]]:
        """Full module x action grid for an identity (all True for ADMIN)."""
        if identity.is_admin:
            return {
                module.value: {action.value: True for action in PermissionAction}
                for module in ModuleName
            }
        permissions = await self.permissions_for(identity)
        return permissions.matrix()


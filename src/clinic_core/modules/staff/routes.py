"""Staff management API routes."""

from uuid import UUID

from fastapi import APIRouter, status

from clinic_core.api.dependencies import DBSession
from clinic_core.core.auth.dependencies import CurrentIdentity
from clinic_core.core.permissions import ModuleName, PermissionAction
from clinic_core.core.permissions.decorators import require_permission
from clinic_core.core.tenancy.dependencies import CurrentTenant
from clinic_core.modules.staff.schemas import (
    InvitationResponse,
    PermissionsPayload,
    SetPasswordRequest,
)
from clinic_core.modules.staff.services import StaffSvc


router = APIRouter(prefix="/admin/staff", tags=["staff"])


@router.post(
    "/set-password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Accept invitation",
    description="Set the initial password using a one-time invitation token. "
    "Activates the account.",
)
async def set_password(
    data: SetPasswordRequest,
    tenant: CurrentTenant,
    service: StaffSvc,
) -> None:
    """Accept an invitation by setting a password."""
    await service.set_password_with_invitation(
        data.token,
        data.password,
        tenant_id=tenant.tenant_id,
    )


@router.post(
    "/{staff_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue invitation",
)
@require_permission(ModuleName.STAFF, PermissionAction.CREATE)
async def issue_invitation(
    staff_id: UUID,
    identity: CurrentIdentity,
    db: DBSession,  # noqa: ARG001
    service: StaffSvc,
) -> InvitationResponse:
    """Issue a password-setup invitation for a staff member."""
    return await service.issue_invitation(identity.tenant_id, staff_id)


@router.get(
    "/{staff_id}/permissions",
    response_model=PermissionsPayload,
    summary="Get staff permissions",
)
@require_permission(ModuleName.STAFF, PermissionAction.VIEW)
async def get_permissions(
    staff_id: UUID,
    identity: CurrentIdentity,
    db: DBSession,  # noqa: ARG001
    service: StaffSvc,
) -> PermissionsPayload:
    """Get the module permissions of a staff member."""
    permissions = await service.get_permissions(identity.tenant_id, staff_id)
    return PermissionsPayload(permissions=permissions)


@router.put(
    "/{staff_id}/permissions",
    response_model=PermissionsPayload,
    summary="Replace staff permissions",
)
@require_permission(ModuleName.STAFF, PermissionAction.EDIT)
async def set_permissions(
    staff_id: UUID,
    data: PermissionsPayload,
    identity: CurrentIdentity,
    db: DBSession,  # noqa: ARG001
    service: StaffSvc,
) -> PermissionsPayload:
    """Replace the module permissions of a staff member."""
    permissions = await service.set_permissions(identity.tenant_id, staff_id, data.permissions)
    return PermissionsPayload(permissions=permissions)

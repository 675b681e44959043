"""Module/action permission model and checks."""

from clinic_core.core.permissions.models import (
    ModuleName,
    ModulePermissions,
    PermissionAction,
    StaffPermissions,
    parse_action,
    parse_module,
)
from clinic_core.core.permissions.resolver import (
    PermissionResolver,
    PermissionStore,
    SqlPermissionStore,
)


__all__ = [
    "ModuleName",
    "ModulePermissions",
    "PermissionAction",
    "PermissionResolver",
    "PermissionStore",
    "SqlPermissionStore",
    "StaffPermissions",
    "parse_action",
    "parse_module",
]

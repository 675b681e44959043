"""Module permission model.

Each non-admin staff member may own one permission record: a mapping
from functional module to the set of actions allowed on it. A missing
record, a missing module key and an unknown name all mean "no access".
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from clinic_core.core.database.base import Base, TenantMixin, TimestampMixin, UUIDMixin


class ModuleName(StrEnum):
    """Functional areas of the clinic back office."""

    APPOINTMENTS = "APPOINTMENTS"
    CALENDAR = "CALENDAR"
    PATIENTS = "PATIENTS"
    DOCTORS = "DOCTORS"
    MATERIALS = "MATERIALS"
    SERVICES = "SERVICES"
    INSURANCE_COMPANIES = "INSURANCE_COMPANIES"
    TREATMENT_PLANS = "TREATMENT_PLANS"
    REPORTS = "REPORTS"
    BILLING = "BILLING"
    TRANSLATIONS = "TRANSLATIONS"
    SETTINGS = "SETTINGS"
    CLINIC_SETTINGS = "CLINIC_SETTINGS"
    STAFF = "STAFF"
    BLOGS = "BLOGS"


class PermissionAction(StrEnum):
    """Actions that can be granted on a module."""

    VIEW = "VIEW"
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _to_screaming_snake(name: str) -> str:
    name = name.strip().replace("-", "_").replace(" ", "_")
    return _CAMEL_BOUNDARY.sub("_", name).upper()


def parse_module(value: "ModuleName | str") -> ModuleName | None:
    """Parse a module identifier.

    Accepts enum members, ``SCREAMING_SNAKE`` and camelCase names, so
    ``"treatmentPlans"`` and ``"TREATMENT_PLANS"`` both resolve to
    ``ModuleName.TREATMENT_PLANS``.

    Returns:
        The module, or None if the name is unknown
    """
    if isinstance(value, ModuleName):
        return value
    try:
        return ModuleName(_to_screaming_snake(value))
    except ValueError:
        return None


def parse_action(value: "PermissionAction | str") -> PermissionAction | None:
    """Parse an action name case-insensitively; None if unknown."""
    if isinstance(value, PermissionAction):
        return value
    try:
        return PermissionAction(value.strip().upper())
    except ValueError:
        return None


@dataclass(frozen=True)
class ModulePermissions:
    """Immutable module -> allowed actions mapping.

    Any module not present maps to the empty set.
    """

    grants: Mapping[ModuleName, frozenset[PermissionAction]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "ModulePermissions":
        return cls()

    @classmethod
    def from_raw(cls, raw: Mapping[str, Iterable[str]] | None) -> "ModulePermissions":
        """Build from a stored JSON mapping, dropping unknown names."""
        grants: dict[ModuleName, frozenset[PermissionAction]] = {}
        for module_name, action_names in (raw or {}).items():
            module = parse_module(module_name)
            if module is None:
                continue
            actions = (parse_action(a) for a in action_names)
            grants[module] = frozenset(a for a in actions if a is not None)
        return cls(grants=grants)

    def actions_for(self, module: ModuleName) -> frozenset[PermissionAction]:
        return self.grants.get(module, frozenset())

    def allows(self, module: ModuleName, action: PermissionAction) -> bool:
        return action in self.actions_for(module)

    def to_raw(self) -> dict[str, list[str]]:
        """Serialize for storage or API output, in declaration order."""
        return {
            module.value: sorted(a.value for a in actions)
            for module, actions in self.grants.items()
        }

    def matrix(self) -> dict[str, dict[str, bool]]:
        """Full module x action boolean grid, every module included."""
        return {
            module.value: {
                action.value: self.allows(module, action) for action in PermissionAction
            }
            for module in ModuleName
        }


class StaffPermissions(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """Stored permission record for one staff member.

    Attributes:
        staff_id: The staff member the grants apply to (unique)
        grants: JSON object of module name -> list of action names
    """

    __tablename__ = "staff_permissions"

    staff_id: Mapped[UUID] = mapped_column(
        ForeignKey("staff_users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    grants: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
    )

    def to_module_permissions(self) -> ModulePermissions:
        return ModulePermissions.from_raw(self.grants)

    def __repr__(self) -> str:
        return f"<StaffPermissions(staff_id={self.staff_id}, modules={len(self.grants)})>"

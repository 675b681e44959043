"""Unit tests for module permission parsing and evaluation.

These tests verify the PermissionResolver logic including:
- Fail-closed evaluation for missing records, modules and names
- ADMIN bypass
- camelCase module names
"""

from uuid import uuid4

import pytest

from clinic_core.core.auth.schemas import AuthenticatedIdentity
from clinic_core.core.permissions import (
    ModuleName,
    ModulePermissions,
    PermissionAction,
    PermissionResolver,
    StaffPermissions,
    parse_action,
    parse_module,
)
from clinic_core.modules.staff.models import StaffRole
from tests.fakes import InMemoryPermissionStore


pytestmark = pytest.mark.unit


def _identity(role: StaffRole = StaffRole.RECEPTIONIST) -> AuthenticatedIdentity:
    return AuthenticatedIdentity(
        staff_id=uuid4(), tenant_id=uuid4(), role=role, email="staff@example.com"
    )


class TestParsing:
    """Tests for module and action name parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("PATIENTS", ModuleName.PATIENTS),
            ("patients", ModuleName.PATIENTS),
            ("treatmentPlans", ModuleName.TREATMENT_PLANS),
            ("TREATMENT_PLANS", ModuleName.TREATMENT_PLANS),
            ("insuranceCompanies", ModuleName.INSURANCE_COMPANIES),
            ("clinicSettings", ModuleName.CLINIC_SETTINGS),
            (ModuleName.BLOGS, ModuleName.BLOGS),
        ],
    )
    def test_parse_module(self, raw, expected):
        assert parse_module(raw) is expected

    @pytest.mark.parametrize("raw", ["", "unknownModule", "PATIENT", "users"])
    def test_parse_unknown_module(self, raw):
        assert parse_module(raw) is None

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("VIEW", PermissionAction.VIEW), ("edit", PermissionAction.EDIT), (" delete ", PermissionAction.DELETE)],
    )
    def test_parse_action(self, raw, expected):
        assert parse_action(raw) is expected

    def test_parse_unknown_action(self):
        assert parse_action("APPROVE") is None


class TestModulePermissions:
    """Tests for the ModulePermissions value."""

    def test_from_raw_drops_unknown_names(self):
        permissions = ModulePermissions.from_raw(
            {"patients": ["VIEW", "FLY"], "spaceships": ["VIEW"], "treatmentPlans": ["EDIT"]}
        )

        assert permissions.to_raw() == {"PATIENTS": ["VIEW"], "TREATMENT_PLANS": ["EDIT"]}

    def test_missing_module_means_no_actions(self):
        permissions = ModulePermissions.from_raw({"PATIENTS": ["VIEW"]})

        assert permissions.actions_for(ModuleName.BILLING) == frozenset()
        assert permissions.allows(ModuleName.BILLING, PermissionAction.VIEW) is False

    def test_matrix_covers_every_module(self):
        matrix = ModulePermissions.from_raw({"PATIENTS": ["VIEW"]}).matrix()

        assert set(matrix) == {m.value for m in ModuleName}
        assert matrix["PATIENTS"] == {"VIEW": True, "CREATE": False, "EDIT": False, "DELETE": False}
        assert not any(matrix["BILLING"].values())

    def test_stored_record_round_trip(self):
        record = StaffPermissions(
            tenant_id=uuid4(), staff_id=uuid4(), grants={"reports": ["VIEW"]}
        )

        assert record.to_module_permissions().allows(ModuleName.REPORTS, PermissionAction.VIEW)


class TestPermissionResolver:
    """Tests for PermissionResolver."""

    async def test_admin_bypasses_everything(self):
        resolver = PermissionResolver(InMemoryPermissionStore())

        assert await resolver.allows(_identity(StaffRole.ADMIN), ModuleName.BILLING, PermissionAction.DELETE)

    async def test_admin_allows_unknown_names(self):
        resolver = PermissionResolver(InMemoryPermissionStore())

        assert await resolver.allows(_identity(StaffRole.ADMIN), "whatever", "ANY")

    async def test_no_record_denies(self):
        resolver = PermissionResolver(InMemoryPermissionStore())

        for module in ModuleName:
            for action in PermissionAction:
                assert await resolver.allows(_identity(), module, action) is False

    async def test_granted_action_allowed(self):
        identity = _identity()
        store = InMemoryPermissionStore(
            {identity.staff_id: ModulePermissions.from_raw({"PATIENTS": ["VIEW", "EDIT"]})}
        )
        resolver = PermissionResolver(store)

        assert await resolver.allows(identity, ModuleName.PATIENTS, PermissionAction.VIEW)
        assert await resolver.allows(identity, "patients", "edit")
        assert not await resolver.allows(identity, ModuleName.PATIENTS, PermissionAction.DELETE)
        assert not await resolver.allows(identity, ModuleName.BILLING, PermissionAction.VIEW)

    async def test_camel_case_module_name(self):
        identity = _identity(StaffRole.DOCTOR)
        store = InMemoryPermissionStore(
            {identity.staff_id: ModulePermissions.from_raw({"TREATMENT_PLANS": ["CREATE"]})}
        )
        resolver = PermissionResolver(store)

        assert await resolver.allows(identity, "treatmentPlans", "CREATE")

    async def test_unknown_names_deny(self):
        identity = _identity()
        store = InMemoryPermissionStore(
            {identity.staff_id: ModulePermissions.from_raw({"PATIENTS": ["VIEW"]})}
        )
        resolver = PermissionResolver(store)

        assert await resolver.allows(identity, "spaceships", "VIEW") is False
        assert await resolver.allows(identity, "PATIENTS", "FLY") is False

    async def test_permissions_are_per_staff(self):
        granted, other = _identity(), _identity()
        store = InMemoryPermissionStore(
            {granted.staff_id: ModulePermissions.from_raw({"CALENDAR": ["VIEW"]})}
        )
        resolver = PermissionResolver(store)

        assert await resolver.allows(granted, ModuleName.CALENDAR, PermissionAction.VIEW)
        assert not await resolver.allows(other, ModuleName.CALENDAR, PermissionAction.VIEW)

    async def test_allows_any(self):
        identity = _identity()
        store = InMemoryPermissionStore(
            {identity.staff_id: ModulePermissions.from_raw({"BILLING": ["VIEW"]})}
        )
        resolver = PermissionResolver(store)

        assert await resolver.allows_any(identity, [("REPORTS", "VIEW"), ("BILLING", "VIEW")])
        assert not await resolver.allows_any(identity, [("REPORTS", "VIEW"), ("BILLING", "EDIT")])

    async def test_admin_matrix_is_all_true(self):
        resolver = PermissionResolver(InMemoryPermissionStore())

        matrix = await resolver.permission_matrix(_identity(StaffRole.ADMIN))

        assert all(all(actions.values()) for actions in matrix.values())
        assert len(matrix) == len(ModuleName)

    async def test_matrix_without_record_is_all_false(self):
        resolver = PermissionResolver(InMemoryPermissionStore())

        matrix = await resolver.permission_matrix(_identity())

        assert not any(any(actions.values()) for actions in matrix.values())

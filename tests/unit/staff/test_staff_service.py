"""Unit tests for StaffService: profile, invitations and permissions."""

from datetime import timedelta
from uuid import uuid4

import pytest

from clinic_core.core.auth.backend import hash_token
from clinic_core.core.auth.schemas import AuthenticatedIdentity
from clinic_core.core.errors import BadRequestError, ConflictError, NotFoundError, ValidationError
from clinic_core.core.permissions import ModulePermissions
from clinic_core.modules.staff.models import StaffRole, StaffStatus
from clinic_core.modules.staff.services import parse_permissions_strict
from tests.factories import StaffUserFactory


pytestmark = pytest.mark.unit


def _identity_for(staff) -> AuthenticatedIdentity:
    return AuthenticatedIdentity(
        staff_id=staff.id, tenant_id=staff.tenant_id, role=staff.role, email=staff.email
    )


@pytest.fixture
def staff(staff_repo, tenant):
    return staff_repo.add(
        StaffUserFactory.build(tenant_id=tenant.tenant_id, email="anna@smile.test", full_name="Anna")
    )


@pytest.fixture
def invited(staff_repo, tenant):
    return staff_repo.add(
        StaffUserFactory.build(
            tenant_id=tenant.tenant_id,
            status=StaffStatus.INVITED,
            password_hash=None,
        )
    )


class TestProfile:
    """Tests for profile read and update."""

    async def test_profile_includes_permissions_for_non_admin(
        self, staff_service, staff, permission_store
    ):
        permission_store.records[staff.id] = ModulePermissions.from_raw({"CALENDAR": ["VIEW"]})

        profile = await staff_service.get_profile(_identity_for(staff))

        assert profile.email == "anna@smile.test"
        assert profile.permissions == {"CALENDAR": ["VIEW"]}

    async def test_profile_without_record_has_empty_permissions(self, staff_service, staff):
        profile = await staff_service.get_profile(_identity_for(staff))

        assert profile.permissions == {}

    async def test_admin_profile_omits_permissions(self, staff_service, staff):
        staff.role = StaffRole.ADMIN

        profile = await staff_service.get_profile(_identity_for(staff))

        assert profile.permissions is None

    async def test_update_profile_normalizes(self, staff_service, staff):
        profile = await staff_service.update_profile(
            _identity_for(staff), email="  Anna.New@Smile.TEST ", full_name="  Anna Nowak "
        )

        assert profile.email == "anna.new@smile.test"
        assert profile.full_name == "Anna Nowak"
        assert staff.email == "anna.new@smile.test"

    async def test_update_profile_keeps_own_email(self, staff_service, staff):
        profile = await staff_service.update_profile(
            _identity_for(staff), email="ANNA@smile.test", full_name="Anna B"
        )

        assert profile.full_name == "Anna B"

    async def test_update_profile_email_conflict(self, staff_service, staff_repo, staff, tenant):
        staff_repo.add(StaffUserFactory.build(tenant_id=tenant.tenant_id, email="taken@smile.test"))

        with pytest.raises(ConflictError) as exc_info:
            await staff_service.update_profile(
                _identity_for(staff), email="taken@smile.test", full_name="Anna"
            )

        assert exc_info.value.status_code == 409
        assert exc_info.value.error_code == "email_in_use"
        assert staff.email == "anna@smile.test"

    async def test_same_email_in_other_tenant_is_fine(self, staff_service, staff_repo, staff):
        staff_repo.add(StaffUserFactory.build(email="taken@smile.test"))

        profile = await staff_service.update_profile(
            _identity_for(staff), email="taken@smile.test", full_name="Anna"
        )

        assert profile.email == "taken@smile.test"

    async def test_missing_staff(self, staff_service, tenant):
        identity = AuthenticatedIdentity(
            staff_id=uuid4(), tenant_id=tenant.tenant_id, role="RECEPTIONIST"
        )

        with pytest.raises(NotFoundError) as exc_info:
            await staff_service.get_profile(identity)

        assert exc_info.value.error_code == "staff_not_found"


class TestInvitations:
    """Tests for invitation issue and acceptance."""

    async def test_issue_invitation_stores_hash_only(
        self, staff_service, invited, tenant, invitation_repo, clock
    ):
        invitation = await staff_service.issue_invitation(tenant.tenant_id, invited.id)

        assert invitation.staff_id == invited.id
        assert invitation.expires_at == clock.now + timedelta(days=7)
        assert list(invitation_repo.tokens) == [hash_token(invitation.invitation_token)]

    async def test_issue_invitation_other_tenant(self, staff_service, invited):
        with pytest.raises(NotFoundError):
            await staff_service.issue_invitation(uuid4(), invited.id)

    async def test_accept_invitation_activates(
        self, staff_service, invited, tenant, hasher, invitation_repo
    ):
        invitation = await staff_service.issue_invitation(tenant.tenant_id, invited.id)

        await staff_service.set_password_with_invitation(
            invitation.invitation_token, "  a-strong-password ", tenant_id=tenant.tenant_id
        )

        assert invited.status == StaffStatus.ACTIVE
        assert hasher.verify("a-strong-password", invited.password_hash)
        assert invitation_repo.tokens[hash_token(invitation.invitation_token)].is_used

    async def test_invitation_is_single_use(self, staff_service, invited, tenant):
        invitation = await staff_service.issue_invitation(tenant.tenant_id, invited.id)
        await staff_service.set_password_with_invitation(
            invitation.invitation_token, "a-strong-password"
        )

        with pytest.raises(BadRequestError) as exc_info:
            await staff_service.set_password_with_invitation(
                invitation.invitation_token, "another-password"
            )

        assert exc_info.value.error_code == "invitation_expired_or_used"

    async def test_expired_invitation(self, staff_service, invited, tenant, clock):
        invitation = await staff_service.issue_invitation(tenant.tenant_id, invited.id)
        clock.advance(days=7, seconds=1)

        with pytest.raises(BadRequestError) as exc_info:
            await staff_service.set_password_with_invitation(
                invitation.invitation_token, "a-strong-password"
            )

        assert exc_info.value.error_code == "invitation_expired_or_used"
        assert invited.status == StaffStatus.INVITED

    async def test_unknown_invitation(self, staff_service):
        with pytest.raises(BadRequestError) as exc_info:
            await staff_service.set_password_with_invitation("bogus", "a-strong-password")

        assert exc_info.value.error_code == "invalid_invitation_token"

    async def test_invitation_from_other_tenant(self, staff_service, invited, tenant):
        invitation = await staff_service.issue_invitation(tenant.tenant_id, invited.id)

        with pytest.raises(BadRequestError) as exc_info:
            await staff_service.set_password_with_invitation(
                invitation.invitation_token, "a-strong-password", tenant_id=uuid4()
            )

        assert exc_info.value.error_code == "invalid_invitation_token"

    async def test_short_password_leaves_invitation_unused(
        self, staff_service, invited, tenant, invitation_repo
    ):
        invitation = await staff_service.issue_invitation(tenant.tenant_id, invited.id)

        with pytest.raises(BadRequestError) as exc_info:
            await staff_service.set_password_with_invitation(invitation.invitation_token, "short")

        assert exc_info.value.error_code == "password_too_short"
        assert not invitation_repo.tokens[hash_token(invitation.invitation_token)].is_used

    @pytest.mark.parametrize("status", [StaffStatus.ACTIVE, StaffStatus.INACTIVE])
    async def test_cannot_invite_account_past_activation(
        self, staff_service, staff_repo, tenant, invitation_repo, status
    ):
        admin = staff_repo.add(
            StaffUserFactory.build(tenant_id=tenant.tenant_id, role=StaffRole.ADMIN, status=status)
        )

        with pytest.raises(ConflictError) as exc_info:
            await staff_service.issue_invitation(tenant.tenant_id, admin.id)

        assert exc_info.value.error_code == "staff_not_invited"
        assert invitation_repo.tokens == {}

    async def test_invitation_cannot_reset_activated_account(
        self, staff_service, invited, tenant, hasher, invitation_repo
    ):
        invitation = await staff_service.issue_invitation(tenant.tenant_id, invited.id)
        invited.status = StaffStatus.ACTIVE
        invited.password_hash = hasher.hash("owner-password")

        with pytest.raises(BadRequestError) as exc_info:
            await staff_service.set_password_with_invitation(
                invitation.invitation_token, "taken-over-password"
            )

        assert exc_info.value.error_code == "invalid_invitation_token"
        assert hasher.verify("owner-password", invited.password_hash)
        assert not invitation_repo.tokens[hash_token(invitation.invitation_token)].is_used


class TestPermissionRecords:
    """Tests for reading and replacing permission records."""

    async def test_set_and_get(self, staff_service, staff, tenant):
        saved = await staff_service.set_permissions(
            tenant.tenant_id, staff.id, {"treatmentPlans": ["view", "EDIT"], "PATIENTS": []}
        )

        assert saved == {"TREATMENT_PLANS": ["EDIT", "VIEW"], "PATIENTS": []}
        assert await staff_service.get_permissions(tenant.tenant_id, staff.id) == saved

    async def test_get_without_record(self, staff_service, staff, tenant):
        assert await staff_service.get_permissions(tenant.tenant_id, staff.id) == {}

    async def test_unknown_names_rejected(self, staff_service, staff, tenant, permission_store):
        with pytest.raises(ValidationError) as exc_info:
            await staff_service.set_permissions(
                tenant.tenant_id, staff.id, {"spaceships": ["VIEW"], "PATIENTS": ["FLY"]}
            )

        fields = [e["field"] for e in exc_info.value.details["errors"]]
        assert fields == ["spaceships", "PATIENTS.FLY"]
        assert permission_store.records == {}

    def test_parse_permissions_strict(self):
        permissions = parse_permissions_strict({"clinicSettings": ["VIEW"]})

        assert permissions.to_raw() == {"CLINIC_SETTINGS": ["VIEW"]}

"""
Tests for role -> scope resolution and transfer-party mapping.
"""

from uuid import uuid4

import pytest

from inventory_kernel.domain.scope import (
    ActorContext,
    CompanyScope,
    RoleDirectory,
    ServiceCenterScope,
    TransferParty,
    UnscopedAdmin,
)
from inventory_kernel.exceptions import ForbiddenError
from inventory_kernel.models.warehouse import Warehouse

COMPANY = uuid4()
SC = uuid4()


@pytest.fixture
def roles():
    return RoleDirectory()


class TestResolveScope:

    def test_service_center_roles_get_their_center(self, roles):
        actor = ActorContext(uuid4(), "service_center_staff", service_center_id=SC)

        assert roles.resolve_scope(actor) == ServiceCenterScope(SC)

    def test_company_roles_get_their_company(self, roles):
        actor = ActorContext(uuid4(), "parts_coordinator_company", company_id=COMPANY)

        assert roles.resolve_scope(actor) == CompanyScope(COMPANY)

    def test_company_roles_can_narrow_to_a_service_center(self, roles):
        actor = ActorContext(uuid4(), "emv_staff", company_id=COMPANY)

        assert roles.resolve_scope(actor, service_center_id=SC) == CompanyScope(COMPANY, SC)

    def test_admin_is_unscoped(self, roles):
        assert isinstance(roles.resolve_scope(ActorContext(uuid4(), "emv_admin")), UnscopedAdmin)

    def test_service_center_role_without_center_is_forbidden(self, roles):
        with pytest.raises(ForbiddenError):
            roles.resolve_scope(ActorContext(uuid4(), "service_center_manager"))

    def test_unknown_role_is_forbidden(self, roles):
        with pytest.raises(ForbiddenError) as exc_info:
            roles.resolve_scope(ActorContext(uuid4(), "janitor", company_id=COMPANY))

        assert exc_info.value.role_name == "janitor"

    def test_custom_role_names(self):
        roles = RoleDirectory(company_roles=frozenset({"oem_planner"}))
        actor = ActorContext(uuid4(), "oem_planner", company_id=COMPANY)

        assert roles.resolve_scope(actor) == CompanyScope(COMPANY)


class TestAllows:

    def test_service_center_scope(self):
        scope = ServiceCenterScope(SC)

        assert scope.allows(Warehouse(name="a", service_center_id=SC, vehicle_company_id=COMPANY))
        assert not scope.allows(Warehouse(name="b", service_center_id=uuid4()))

    def test_company_scope_covers_company_and_its_centers(self):
        scope = CompanyScope(COMPANY)

        assert scope.allows(Warehouse(name="depot", vehicle_company_id=COMPANY))
        assert scope.allows(Warehouse(name="sc", service_center_id=SC, vehicle_company_id=COMPANY))
        assert not scope.allows(Warehouse(name="other", vehicle_company_id=uuid4()))

    def test_narrowed_company_scope(self):
        scope = CompanyScope(COMPANY, SC)

        assert not scope.allows(Warehouse(name="depot", vehicle_company_id=COMPANY))


class TestResolveParty:

    @pytest.mark.parametrize(
        "role, party",
        [
            ("service_center_manager", TransferParty.REQUESTER),
            ("parts_coordinator_service_center", TransferParty.REQUESTER),
            ("emv_staff", TransferParty.FULFILLER),
            ("parts_coordinator_company", TransferParty.FULFILLER),
        ],
    )
    def test_parties(self, roles, role, party):
        assert roles.resolve_party(ActorContext(uuid4(), role)) is party

    def test_technician_is_not_a_party(self, roles):
        with pytest.raises(ForbiddenError):
            roles.resolve_party(ActorContext(uuid4(), "service_center_technician"))

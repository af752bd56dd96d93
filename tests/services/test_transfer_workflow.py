"""
StockTransferWorkflow tests, driven through InventoryEngine.

Tests cover:
- Approval allocates company warehouses first, never the requester
- A shortfall on any item reserves nothing for any item
- Ship / receive move units between warehouses without losing any
- Cancel by the fulfiller releases reservations; case lines untouched
- Reject needs a reason; case lines become REJECTED_BY_OEM
- Room routing of every transition
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select

from inventory_kernel.db.engine import session_scope
from inventory_kernel.domain.notifications import (
    NEW_STOCK_TRANSFER_REQUEST,
    STOCK_TRANSFER_REQUEST_APPROVED,
    STOCK_TRANSFER_REQUEST_CANCELLED,
    STOCK_TRANSFER_REQUEST_RECEIVED,
    STOCK_TRANSFER_REQUEST_REJECTED,
    STOCK_TRANSFER_REQUEST_SHIPPED,
)
from inventory_kernel.domain.statuses import (
    CaseLineStatus,
    ComponentStatus,
    RequestType,
    ReservationStatus,
    TransferStatus,
)
from inventory_kernel.exceptions import (
    BadRequestError,
    ComponentShortageError,
    ForbiddenError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    RequestTypeMismatchError,
    TransferRequestNotFoundError,
    TypeComponentNotFoundError,
    WarehouseNotFoundError,
)
from inventory_kernel.models.component import Component
from inventory_kernel.services import TransferLine

from tests.conftest import COMPANY_ID, OTHER_COMPANY_ID, SERVICE_CENTER_1


def _sc1_rooms(*kinds):
    names = {
        "staff": f"service_center_staff_{SERVICE_CENTER_1}",
        "manager": f"service_center_manager_{SERVICE_CENTER_1}",
        "coordinator": f"parts_coordinator_service_center_{SERVICE_CENTER_1}",
    }
    return [names[kind] for kind in kinds]


@pytest.fixture
def supply(builder, layout):
    """Scenario stock: depot 3 batteries, SC-2 4 batteries, depot 1 inverter."""
    return {
        "depot": builder.stock(layout.company_warehouse, layout.battery, ["D-1", "D-2", "D-3"]),
        "sc2": builder.stock(layout.sc2_warehouse, layout.battery, ["S-1", "S-2", "S-3", "S-4"]),
        "depot_inverter": builder.stock(layout.company_warehouse, layout.inverter, ["I-1"]),
    }


@pytest.fixture
def restock(inventory, layout, sc_manager):
    def _create(*lines):
        return inventory.create_transfer(
            sc_manager,
            requesting_warehouse_id=layout.sc1_warehouse,
            items=[TransferLine(quantity_requested=qty, sku=sku) for sku, qty in lines],
            request_type=RequestType.WAREHOUSE_RESTOCK,
        )

    return _create


@pytest.fixture
def case_line_ids():
    return [uuid4(), uuid4()]


@pytest.fixture
def caseline_request(inventory, layout, sc_manager, supply, case_line_ids):
    return inventory.create_transfer(
        sc_manager,
        requesting_warehouse_id=layout.sc1_warehouse,
        items=[
            TransferLine(1, type_component_id=layout.battery, case_line_id=case_line_ids[0]),
            TransferLine(1, type_component_id=layout.battery, case_line_id=case_line_ids[1]),
        ],
        request_type=RequestType.CASELINE,
    )


class TestCreate:

    def test_restock_resolves_skus(self, restock, layout, dispatcher, supply):
        request = restock(("BAT-100", 2), ("INV-200", 1))

        assert request.status == TransferStatus.PENDING_APPROVAL.value
        assert [(i.type_component_id, i.quantity_requested) for i in request.items] == [
            (layout.battery, 2),
            (layout.inverter, 1),
        ]
        assert dispatcher.rooms_for(NEW_STOCK_TRANSFER_REQUEST) == [f"emv_staff_{COMPANY_ID}"]

    def test_unknown_skus_listed_without_a_row(self, restock, inventory, admin):
        with pytest.raises(TypeComponentNotFoundError) as exc_info:
            restock(("NOPE", 1), ("BAT-100", 1), ("ALSO-NOPE", 2))

        assert exc_info.value.identifiers == ["NOPE", "ALSO-NOPE"]
        assert inventory.list_transfers(admin).total == 0

    def test_caseline_request_waits_for_parts(self, caseline_request, case_lines, case_line_ids):
        assert caseline_request.request_type == RequestType.CASELINE.value
        assert case_lines.updates == [
            (tuple(case_line_ids), CaseLineStatus.WAITING_FOR_PARTS.value)
        ]

    def test_no_items(self, inventory, layout, sc_manager):
        with pytest.raises(BadRequestError):
            inventory.create_transfer(
                sc_manager,
                requesting_warehouse_id=layout.sc1_warehouse,
                items=[],
                request_type=RequestType.WAREHOUSE_RESTOCK,
            )

    def test_caseline_item_without_case_line(self, inventory, layout, sc_manager):
        with pytest.raises(BadRequestError):
            inventory.create_transfer(
                sc_manager,
                requesting_warehouse_id=layout.sc1_warehouse,
                items=[TransferLine(1, type_component_id=layout.battery)],
                request_type=RequestType.CASELINE,
            )

    def test_unknown_warehouse(self, inventory, layout, sc_manager):
        with pytest.raises(WarehouseNotFoundError):
            inventory.create_transfer(
                sc_manager,
                requesting_warehouse_id=uuid4(),
                items=[TransferLine(1, sku="BAT-100")],
                request_type=RequestType.WAREHOUSE_RESTOCK,
            )

    def test_caseline_unknown_type_ids_listed_without_a_row(
        self, inventory, layout, sc_manager, admin, case_lines
    ):
        missing = [uuid4(), uuid4()]

        with pytest.raises(TypeComponentNotFoundError) as exc_info:
            inventory.create_transfer(
                sc_manager,
                requesting_warehouse_id=layout.sc1_warehouse,
                items=[
                    TransferLine(1, type_component_id=missing[0], case_line_id=uuid4()),
                    TransferLine(1, type_component_id=layout.battery, case_line_id=uuid4()),
                    TransferLine(1, type_component_id=missing[1], case_line_id=uuid4()),
                ],
                request_type=RequestType.CASELINE,
            )

        assert exc_info.value.identifiers == [str(m) for m in missing]
        assert inventory.list_transfers(admin).total == 0
        assert case_lines.updates == []


class TestApprove:

    def test_company_warehouse_first_then_service_centers(
        self, inventory, builder, restock, supply, emv_staff, dispatcher
    ):
        request = restock(("BAT-100", 5))

        outcome = inventory.approve_transfer(emv_staff, request.id)

        assert outcome.request.status == TransferStatus.APPROVED.value
        assert outcome.request.approved_by_user_id == emv_staff.user_id
        assert [(r.stock_id, r.quantity_reserved) for r in outcome.reservations] == [
            (supply["depot"], 3),
            (supply["sc2"], 2),
        ]
        assert set(outcome.touched_stock_ids) == {supply["depot"], supply["sc2"]}
        assert builder.stock_view(supply["depot"]).quantity_reserved == 3
        assert builder.stock_view(supply["sc2"]).quantity_reserved == 2
        assert dispatcher.rooms_for(STOCK_TRANSFER_REQUEST_APPROVED) == _sc1_rooms("coordinator")

    def test_requesting_warehouse_never_supplies_itself(
        self, inventory, builder, layout, restock, emv_staff
    ):
        own = builder.stock(layout.sc1_warehouse, layout.battery, ["O-1", "O-2"])
        request = restock(("BAT-100", 1))

        with pytest.raises(InsufficientStockError):
            inventory.approve_transfer(emv_staff, request.id)

        assert builder.stock_view(own).quantity_reserved == 0

    def test_shortfall_on_one_item_reserves_nothing(
        self, inventory, builder, restock, supply, emv_staff, admin
    ):
        request = restock(("BAT-100", 2), ("INV-200", 5))

        with pytest.raises(InsufficientStockError) as exc_info:
            inventory.approve_transfer(emv_staff, request.id)

        assert (exc_info.value.requested, exc_info.value.available) == (5, 1)
        assert {s.quantity_reserved for s in builder.all_stocks()} == {0}
        assert builder.reservations() == []
        assert inventory.get_transfer(admin, request.id).status == TransferStatus.PENDING_APPROVAL.value

    def test_lines_of_the_same_type_are_summed(self, inventory, restock, supply, emv_staff):
        request = restock(("BAT-100", 4), ("BAT-100", 4))

        with pytest.raises(InsufficientStockError) as exc_info:
            inventory.approve_transfer(emv_staff, request.id)

        assert (exc_info.value.requested, exc_info.value.available) == (8, 7)

    def test_type_mismatch(self, inventory, caseline_request, emv_staff):
        with pytest.raises(RequestTypeMismatchError):
            inventory.approve_transfer(
                emv_staff, caseline_request.id, expected_type=RequestType.WAREHOUSE_RESTOCK
            )

    def test_approved_twice(self, inventory, restock, supply, emv_staff):
        request = restock(("BAT-100", 1))
        inventory.approve_transfer(emv_staff, request.id)

        with pytest.raises(InvalidStatusTransitionError):
            inventory.approve_transfer(emv_staff, request.id)

    def test_unknown_request(self, inventory, emv_staff):
        with pytest.raises(TransferRequestNotFoundError):
            inventory.approve_transfer(emv_staff, uuid4())

    def test_companyless_requester_draws_on_the_approver_company(
        self, inventory, builder, layout, sc_manager, emv_staff, dispatcher
    ):
        independent = builder.warehouse("Independent Shop", company_id=None)
        foreign = builder.warehouse("Other OEM Depot", company_id=OTHER_COMPANY_ID)
        foreign_stock = builder.stock(foreign, layout.battery, ["F-1", "F-2"])
        depot = builder.stock(layout.company_warehouse, layout.battery, ["D-1", "D-2"])
        request = inventory.create_transfer(
            sc_manager,
            requesting_warehouse_id=independent,
            items=[TransferLine(2, sku="BAT-100")],
            request_type=RequestType.WAREHOUSE_RESTOCK,
        )

        outcome = inventory.approve_transfer(emv_staff, request.id)

        assert [(r.stock_id, r.quantity_reserved) for r in outcome.reservations] == [(depot, 2)]
        assert builder.stock_view(foreign_stock).quantity_reserved == 0
        assert dispatcher.rooms_for(STOCK_TRANSFER_REQUEST_APPROVED) == [
            f"parts_coordinator_company_{COMPANY_ID}"
        ]

    def test_no_company_on_either_side(self, inventory, builder, layout, sc_manager, admin):
        independent = builder.warehouse("Independent Shop", company_id=None)
        builder.stock(layout.company_warehouse, layout.battery, ["D-1"])
        request = inventory.create_transfer(
            sc_manager,
            requesting_warehouse_id=independent,
            items=[TransferLine(1, sku="BAT-100")],
            request_type=RequestType.WAREHOUSE_RESTOCK,
        )

        with pytest.raises(ForbiddenError):
            inventory.approve_transfer(admin, request.id)

        assert builder.reservations() == []
        assert inventory.get_transfer(admin, request.id).status == TransferStatus.PENDING_APPROVAL.value


class TestShipAndReceive:

    def test_round_trip_keeps_every_unit(
        self, inventory, builder, layout, restock, supply, emv_staff, sc_manager, dispatcher
    ):
        before = sum(s.quantity_in_stock for s in builder.all_stocks())
        request = restock(("BAT-100", 5))
        inventory.approve_transfer(emv_staff, request.id)
        eta = datetime(2026, 11, 1, tzinfo=timezone.utc)

        shipped = inventory.ship_transfer(emv_staff, request.id, estimated_delivery_date=eta)

        assert shipped.status == TransferStatus.SHIPPED.value
        in_transit = builder.components(status=ComponentStatus.IN_TRANSIT.value)
        assert [c.serial_number for c in in_transit] == ["D-1", "D-2", "D-3", "S-1", "S-2"]
        assert {c.request_id for c in in_transit} == {request.id}
        assert {c.warehouse_id for c in in_transit} == {None}
        depot = builder.stock_view(supply["depot"])
        assert (depot.quantity_in_stock, depot.quantity_reserved) == (0, 0)
        sc2 = builder.stock_view(supply["sc2"])
        assert (sc2.quantity_in_stock, sc2.quantity_reserved) == (2, 0)
        assert {r.status for r in builder.reservations()} == {ReservationStatus.SHIPPED.value}
        assert sum(s.quantity_in_stock for s in builder.all_stocks()) == before - 5
        assert dispatcher.rooms_for(STOCK_TRANSFER_REQUEST_SHIPPED) == _sc1_rooms(
            "staff", "manager", "coordinator"
        )
        assert dispatcher.events(STOCK_TRANSFER_REQUEST_SHIPPED)[0].payload["data"][
            "estimated_delivery_date"
        ] == eta.isoformat()

        received = inventory.receive_transfer(sc_manager, request.id)

        assert received.status == TransferStatus.RECEIVED.value
        destination = inventory.find_stock(layout.sc1_warehouse, layout.battery)
        assert destination.quantity_in_stock == 5
        arrived = builder.components(warehouse_id=layout.sc1_warehouse)
        assert {c.status for c in arrived} == {ComponentStatus.IN_STOCK.value}
        assert {c.request_id for c in arrived} == {None}
        assert sum(s.quantity_in_stock for s in builder.all_stocks()) == before
        assert dispatcher.rooms_for(STOCK_TRANSFER_REQUEST_RECEIVED) == _sc1_rooms(
            "staff", "manager"
        )

    def test_receive_into_existing_stock(
        self, inventory, builder, layout, restock, supply, emv_staff, sc_manager
    ):
        shelf = builder.stock(layout.sc1_warehouse, layout.inverter, ["I-OWN"])
        request = restock(("INV-200", 1))
        inventory.approve_transfer(emv_staff, request.id)
        inventory.ship_transfer(emv_staff, request.id)

        inventory.receive_transfer(sc_manager, request.id)

        assert builder.stock_view(shelf).quantity_in_stock == 2

    def test_caseline_receipt_makes_parts_available(
        self, inventory, caseline_request, case_lines, case_line_ids, emv_staff, sc_manager
    ):
        inventory.approve_transfer(emv_staff, caseline_request.id)
        inventory.ship_transfer(emv_staff, caseline_request.id)

        inventory.receive_transfer(sc_manager, caseline_request.id)

        for case_line_id in case_line_ids:
            assert case_lines.statuses[case_line_id] == CaseLineStatus.PARTS_AVAILABLE.value

    def test_ship_with_missing_units(self, inventory, builder, restock, supply, emv_staff):
        request = restock(("INV-200", 1))
        inventory.approve_transfer(emv_staff, request.id)
        with session_scope() as session:
            unit = session.scalars(select(Component).where(Component.serial_number == "I-1")).one()
            unit.status = ComponentStatus.DEFECTIVE.value

        with pytest.raises(ComponentShortageError):
            inventory.ship_transfer(emv_staff, request.id)

        view = builder.stock_view(supply["depot_inverter"])
        assert (view.quantity_in_stock, view.quantity_reserved) == (1, 1)

    def test_receive_before_ship(self, inventory, restock, supply, emv_staff, sc_manager):
        request = restock(("BAT-100", 1))
        inventory.approve_transfer(emv_staff, request.id)

        with pytest.raises(InvalidStatusTransitionError):
            inventory.receive_transfer(sc_manager, request.id)


class TestCancel:

    def test_fulfiller_cancels_approved_caseline_request(
        self,
        inventory,
        builder,
        supply,
        caseline_request,
        case_lines,
        case_line_ids,
        emv_staff,
        dispatcher,
    ):
        inventory.approve_transfer(emv_staff, caseline_request.id)
        assert builder.stock_view(supply["depot"]).quantity_reserved == 2

        cancelled = inventory.cancel_transfer(emv_staff, caseline_request.id, reason="recalled")

        assert cancelled.status == TransferStatus.CANCELLED.value
        assert cancelled.cancellation_reason == "recalled"
        assert cancelled.cancelled_by_user_id == emv_staff.user_id
        assert builder.stock_view(supply["depot"]).quantity_reserved == 0
        assert {r.status for r in builder.reservations()} == {ReservationStatus.CANCELLED.value}
        assert case_lines.updates == [
            (tuple(case_line_ids), CaseLineStatus.WAITING_FOR_PARTS.value)
        ]
        assert dispatcher.rooms_for(STOCK_TRANSFER_REQUEST_CANCELLED) == _sc1_rooms(
            "staff", "manager", "coordinator"
        )

    def test_requester_cannot_cancel_approved(
        self, inventory, builder, supply, restock, emv_staff, sc_manager
    ):
        request = restock(("BAT-100", 1))
        inventory.approve_transfer(emv_staff, request.id)

        with pytest.raises(InvalidStatusTransitionError):
            inventory.cancel_transfer(sc_manager, request.id)

        assert builder.stock_view(supply["depot"]).quantity_reserved == 1

    def test_requester_cancels_pending(self, inventory, restock, supply, sc_manager, dispatcher):
        request = restock(("BAT-100", 1))

        cancelled = inventory.cancel_transfer(sc_manager, request.id)

        assert cancelled.status == TransferStatus.CANCELLED.value
        assert cancelled.cancellation_reason is None
        assert dispatcher.rooms_for(STOCK_TRANSFER_REQUEST_CANCELLED) == [f"emv_staff_{COMPANY_ID}"]

    def test_role_outside_the_workflow(self, inventory, restock, supply, technician):
        request = restock(("BAT-100", 1))

        with pytest.raises(ForbiddenError):
            inventory.cancel_transfer(technician, request.id)

    def test_shipped_cannot_be_cancelled(self, inventory, restock, supply, emv_staff):
        request = restock(("BAT-100", 1))
        inventory.approve_transfer(emv_staff, request.id)
        inventory.ship_transfer(emv_staff, request.id)

        with pytest.raises(InvalidStatusTransitionError):
            inventory.cancel_transfer(emv_staff, request.id)


class TestReject:

    def test_reject_marks_case_lines(
        self, inventory, caseline_request, case_lines, case_line_ids, emv_staff, dispatcher
    ):
        rejected = inventory.reject_transfer(emv_staff, caseline_request.id, "not covered")

        assert rejected.status == TransferStatus.REJECTED.value
        assert rejected.rejection_reason == "not covered"
        for case_line_id in case_line_ids:
            assert case_lines.statuses[case_line_id] == CaseLineStatus.REJECTED_BY_OEM.value
        notes = dispatcher.events(STOCK_TRANSFER_REQUEST_REJECTED)
        assert list(notes[0].rooms) == _sc1_rooms("staff", "manager")
        assert notes[0].payload["priority"] == "high"
        assert notes[0].payload["data"]["reason"] == "not covered"

    def test_reason_required(self, inventory, admin, caseline_request, emv_staff):
        with pytest.raises(BadRequestError):
            inventory.reject_transfer(emv_staff, caseline_request.id, "")

        assert inventory.get_transfer(admin, caseline_request.id).status == (
            TransferStatus.PENDING_APPROVAL.value
        )

    def test_approved_cannot_be_rejected(self, inventory, restock, supply, emv_staff):
        request = restock(("BAT-100", 1))
        inventory.approve_transfer(emv_staff, request.id)

        with pytest.raises(InvalidStatusTransitionError):
            inventory.reject_transfer(emv_staff, request.id, "too late")

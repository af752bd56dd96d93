"""
Tests for the status vocabularies, transition tables and DTO guards.
"""

from uuid import uuid4

import pytest

from inventory_kernel.domain.dtos import Page, StockView
from inventory_kernel.domain.statuses import (
    COMPONENT_TRANSITIONS,
    RESERVATION_TRANSITIONS,
    TRANSFER_TRANSITIONS,
    ComponentStatus,
    ReservationStatus,
    TransferStatus,
    can_transition,
    ensure_status,
    sources_of,
)
from inventory_kernel.exceptions import ConflictError, InvalidStatusTransitionError


class TestTransitionTables:

    def test_every_status_has_an_entry(self):
        assert set(COMPONENT_TRANSITIONS) == set(ComponentStatus)
        assert set(RESERVATION_TRANSITIONS) == set(ReservationStatus)
        assert set(TRANSFER_TRANSITIONS) == set(TransferStatus)

    @pytest.mark.parametrize(
        "status",
        [TransferStatus.RECEIVED, TransferStatus.REJECTED, TransferStatus.CANCELLED],
    )
    def test_terminal_transfer_statuses_go_nowhere(self, status):
        assert TRANSFER_TRANSITIONS[status] == frozenset()

    def test_removed_component_cannot_come_back(self):
        assert not can_transition(
            COMPONENT_TRANSITIONS, ComponentStatus.REMOVED, ComponentStatus.IN_STOCK
        )

    def test_in_transit_lands_only_in_stock(self):
        assert COMPONENT_TRANSITIONS[ComponentStatus.IN_TRANSIT] == frozenset(
            {ComponentStatus.IN_STOCK}
        )

    def test_sources_of_cancelled_transfer(self):
        assert sources_of(TRANSFER_TRANSITIONS, TransferStatus.CANCELLED) == [
            TransferStatus.PENDING_APPROVAL,
            TransferStatus.APPROVED,
        ]

    def test_only_picked_up_reservations_install(self):
        assert sources_of(RESERVATION_TRANSITIONS, ReservationStatus.INSTALLED) == [
            ReservationStatus.PICKED_UP
        ]


class TestEnsureStatus:

    def test_allowed_status_passes(self):
        ensure_status("Reservation", uuid4(), "RESERVED", [ReservationStatus.RESERVED], "pick up")

    def test_wrong_status_is_a_conflict_with_context(self):
        entity_id = uuid4()

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            ensure_status(
                "StockTransferRequest",
                entity_id,
                "SHIPPED",
                [TransferStatus.PENDING_APPROVAL],
                "approve",
            )

        error = exc_info.value
        assert isinstance(error, ConflictError)
        assert error.code == "INVALID_STATUS_TRANSITION"
        assert error.current_status == "SHIPPED"
        assert error.allowed_statuses == ["PENDING_APPROVAL"]
        assert error.entity_id == str(entity_id)


class TestStockView:

    def _view(self, in_stock, reserved, reorder_point=0):
        return StockView(
            id=uuid4(),
            warehouse_id=uuid4(),
            type_component_id=uuid4(),
            quantity_in_stock=in_stock,
            quantity_reserved=reserved,
            quantity_available=in_stock - reserved,
            reorder_point=reorder_point,
        )

    def test_reserved_above_in_stock_is_rejected(self):
        with pytest.raises(ValueError):
            self._view(2, 3)

    def test_negative_counter_is_rejected(self):
        with pytest.raises(ValueError):
            self._view(-1, 0)

    def test_available_must_be_derived(self):
        with pytest.raises(ValueError):
            StockView(
                id=uuid4(),
                warehouse_id=uuid4(),
                type_component_id=uuid4(),
                quantity_in_stock=5,
                quantity_reserved=1,
                quantity_available=5,
                reorder_point=0,
            )

    def test_is_low_at_reorder_point(self):
        assert self._view(10, 5, reorder_point=5).is_low
        assert not self._view(10, 4, reorder_point=5).is_low

    def test_is_frozen(self):
        view = self._view(1, 0)
        with pytest.raises(AttributeError):
            view.quantity_in_stock = 7


class TestPage:

    def test_total_pages_rounds_up(self):
        assert Page(items=(), page=1, limit=10, total=21).total_pages == 3

    def test_empty_page(self):
        page = Page(items=(), page=1, limit=10, total=0)
        assert page.total_pages == 0
        assert not page.has_next

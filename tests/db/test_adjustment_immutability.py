"""
Adjustment records are append-only: ORM updates and deletes are refused.
"""

import pytest
from sqlalchemy import select

from inventory_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from inventory_kernel.db.unit_of_work import unit_of_work
from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.models.adjustment import InventoryAdjustment


@pytest.fixture
def adjustment_id(inventory, builder, layout, company_coordinator):
    stock_id = builder.stock(layout.company_warehouse, layout.battery)
    outcome = inventory.adjust(
        company_coordinator,
        stock_id=stock_id,
        adjustment_type="IN",
        reason="initial count",
        serial_numbers=["B-1"],
    )
    return outcome.adjustment.id


class TestAdjustmentImmutability:

    def test_update_is_refused(self, session_factory, adjustment_id):
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            with unit_of_work(session_factory) as uow:
                adjustment = uow.session.get(InventoryAdjustment, adjustment_id)
                adjustment.reason = "rewritten"
                uow.session.flush()

        assert exc_info.value.entity_type == "InventoryAdjustment"

    def test_delete_is_refused(self, session_factory, adjustment_id):
        with pytest.raises(ImmutabilityViolationError):
            with unit_of_work(session_factory) as uow:
                uow.session.delete(uow.session.get(InventoryAdjustment, adjustment_id))
                uow.session.flush()

    def test_refused_update_leaves_row_unchanged(self, session_factory, adjustment_id):
        with pytest.raises(ImmutabilityViolationError):
            with unit_of_work(session_factory) as uow:
                uow.session.get(InventoryAdjustment, adjustment_id).quantity = 99

        session = session_factory()
        try:
            row = session.scalars(
                select(InventoryAdjustment).where(InventoryAdjustment.id == adjustment_id)
            ).one()
            assert row.quantity == 1
        finally:
            session.close()

    def test_listeners_can_be_lifted_for_maintenance(self, session_factory, adjustment_id):
        unregister_immutability_listeners()
        try:
            with unit_of_work(session_factory) as uow:
                uow.session.get(InventoryAdjustment, adjustment_id).note = "migrated"
        finally:
            register_immutability_listeners()

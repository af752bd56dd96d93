"""
StockLedger tests.

Covers:
- apply_delta enforces 0 <= reserved <= in_stock and logs the defect
- find_or_create creates a destination stock once
- lock_candidates scopes to one company and skips the requesting warehouse
- Property: any sequence of deltas leaves the counters within bounds
"""

from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from inventory_kernel.db.unit_of_work import UnitOfWork, unit_of_work
from inventory_kernel.exceptions import InvariantViolation
from inventory_kernel.models.stock import Stock
from inventory_kernel.services.stock_ledger import StockLedger

from tests.conftest import COMPANY_ID, OTHER_COMPANY_ID


class _FlushOnlySession:
    def flush(self):
        pass


def _loose_stock(in_stock, reserved):
    return Stock(
        id=uuid4(),
        warehouse_id=uuid4(),
        type_component_id=uuid4(),
        quantity_in_stock=in_stock,
        quantity_reserved=reserved,
        reorder_point=0,
    )


class TestApplyDelta:

    def test_moves_both_counters(self):
        stock = _loose_stock(10, 2)

        StockLedger().apply_delta(UnitOfWork(_FlushOnlySession()), stock, -3, -1)

        assert (stock.quantity_in_stock, stock.quantity_reserved) == (7, 1)

    @pytest.mark.parametrize(
        "delta_stock, delta_reserved",
        [(-11, 0), (0, -3), (0, 9), (-9, 0)],
    )
    def test_out_of_bounds_is_an_invariant_violation(self, delta_stock, delta_reserved, captured_logs):
        stock = _loose_stock(10, 2)

        with pytest.raises(InvariantViolation) as exc_info:
            StockLedger().apply_delta(
                UnitOfWork(_FlushOnlySession()), stock, delta_stock, delta_reserved
            )

        assert exc_info.value.code == "INVARIANT_VIOLATION"
        assert (stock.quantity_in_stock, stock.quantity_reserved) == (10, 2)
        critical = [r for r in captured_logs() if r["message"] == "stock_invariant_violation"]
        assert critical and critical[0]["level"] == "CRITICAL"

    @given(
        deltas=st.lists(
            st.tuples(st.integers(-5, 5), st.integers(-5, 5)), min_size=1, max_size=30
        )
    )
    def test_counters_never_leave_bounds(self, deltas):
        stock = _loose_stock(5, 0)
        ledger = StockLedger()
        uow = UnitOfWork(_FlushOnlySession())

        for delta_stock, delta_reserved in deltas:
            try:
                ledger.apply_delta(uow, stock, delta_stock, delta_reserved)
            except InvariantViolation:
                pass
            assert 0 <= stock.quantity_reserved <= stock.quantity_in_stock


class TestFindOrCreate:

    def test_creates_once_then_reuses(self, session_factory, builder, layout):
        ledger = StockLedger()

        with unit_of_work(session_factory) as uow:
            first = ledger.find_or_create(uow, layout.sc1_warehouse, layout.inverter)
            first_id = first.id
        with unit_of_work(session_factory) as uow:
            second = ledger.find_or_create(uow, layout.sc1_warehouse, layout.inverter)
            second_id = second.id

        assert first_id == second_id
        view = builder.stock_view(first_id)
        assert (view.quantity_in_stock, view.quantity_reserved) == (0, 0)


class TestLockCandidates:

    def test_company_scope_and_exclusion(self, session_factory, builder, layout):
        depot = builder.stock(layout.company_warehouse, layout.battery, ["B-1"])
        sc2 = builder.stock(layout.sc2_warehouse, layout.battery, ["B-2"])
        builder.stock(layout.sc1_warehouse, layout.battery, ["B-3"])
        foreign_warehouse = builder.warehouse("Elsewhere", company_id=OTHER_COMPANY_ID)
        builder.stock(foreign_warehouse, layout.battery, ["B-4"])

        with unit_of_work(session_factory) as uow:
            pairs = StockLedger().lock_candidates(
                uow,
                [layout.battery],
                company_id=COMPANY_ID,
                exclude_warehouse_id=layout.sc1_warehouse,
            )
            found = {stock.id for stock, _ in pairs}

        assert found == {depot, sc2}

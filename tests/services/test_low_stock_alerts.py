"""
Low-stock alert tests.

The scan is read-only and runs after commit, so re-emitting is harmless
and a broken dispatcher never undoes the write that triggered it.
"""

from dataclasses import replace
from uuid import uuid4

import pytest

from inventory_config import get_active_config
from inventory_config.schema import AlertConfig
from inventory_kernel.domain.notifications import LOW_STOCK_ALERT
from inventory_kernel.exceptions import InsufficientStockError
from inventory_services.engine import InventoryEngine

from tests.conftest import COMPANY_ID, SERVICE_CENTER_1, SERVICE_CENTER_2


@pytest.fixture
def low_and_healthy(builder, layout):
    return {
        "low_sc": builder.stock(layout.sc2_warehouse, layout.battery, ["L-1"], reorder_point=2),
        "low_depot": builder.stock(
            layout.company_warehouse, layout.battery, ["D-1", "D-2"], reserved=1, reorder_point=1
        ),
        "healthy": builder.stock(
            layout.company_warehouse, layout.inverter, ["I-1", "I-2", "I-3"], reorder_point=1
        ),
    }


class TestEmitLowStockAlerts:

    def test_one_alert_per_room(self, inventory, low_and_healthy):
        sent = inventory.emit_low_stock_alerts(list(low_and_healthy.values()))

        by_room = {n.rooms[0]: n.payload["data"]["stocks"] for n in sent}
        assert set(by_room) == {
            f"parts_coordinator_service_center_{SERVICE_CENTER_2}",
            f"parts_coordinator_company_{COMPANY_ID}",
        }
        company_stock_ids = {entry["stock_id"] for entry in by_room[f"parts_coordinator_company_{COMPANY_ID}"]}
        assert company_stock_ids == {str(low_and_healthy["low_sc"]), str(low_and_healthy["low_depot"])}
        sc_entries = by_room[f"parts_coordinator_service_center_{SERVICE_CENTER_2}"]
        assert [e["warehouse_name"] for e in sc_entries] == ["SC-2 Shelf"]
        assert {n.payload["priority"] for n in sent} == {"high"}

    def test_repeating_changes_nothing(self, inventory, builder, low_and_healthy, dispatcher):
        before = builder.all_stocks()

        first = inventory.emit_low_stock_alerts([low_and_healthy["low_sc"]])
        second = inventory.emit_low_stock_alerts([low_and_healthy["low_sc"]])

        assert [n.payload for n in first] == [n.payload for n in second]
        assert len(dispatcher.events(LOW_STOCK_ALERT)) == 2 * len(first)
        assert sorted(builder.all_stocks(), key=lambda s: str(s.id)) == sorted(
            before, key=lambda s: str(s.id)
        )

    def test_nothing_low(self, inventory, low_and_healthy, dispatcher):
        assert inventory.emit_low_stock_alerts([low_and_healthy["healthy"]]) == []
        assert inventory.emit_low_stock_alerts([uuid4()]) == []
        assert dispatcher.sent == []

    def test_disabled_by_config(
        self, session_factory, case_lines, dispatcher, deterministic_clock, low_and_healthy
    ):
        config = replace(get_active_config(), alerts=AlertConfig(low_stock_enabled=False))
        engine = InventoryEngine(
            session_factory, case_lines, config=config, dispatcher=dispatcher, clock=deterministic_clock
        )

        assert engine.emit_low_stock_alerts([low_and_healthy["low_sc"]]) == []
        assert dispatcher.sent == []


class TestAlertsAfterWrites:

    def test_reservation_dropping_to_reorder_point(self, inventory, builder, layout, sc_manager, dispatcher):
        builder.stock(layout.sc1_warehouse, layout.battery, ["R-1", "R-2"], reorder_point=1)

        inventory.reserve(
            sc_manager,
            case_line_id=uuid4(),
            warehouse_id=layout.sc1_warehouse,
            type_component_id=layout.battery,
        )

        assert sorted(dispatcher.rooms_for(LOW_STOCK_ALERT)) == sorted(
            [
                f"parts_coordinator_service_center_{SERVICE_CENTER_1}",
                f"parts_coordinator_company_{COMPANY_ID}",
            ]
        )

    def test_failed_write_sends_nothing(self, inventory, builder, layout, sc_manager, dispatcher):
        builder.stock(layout.sc1_warehouse, layout.battery, ["R-1"], reorder_point=5)

        with pytest.raises(InsufficientStockError):
            inventory.reserve(
                sc_manager,
                case_line_id=uuid4(),
                warehouse_id=layout.sc1_warehouse,
                type_component_id=layout.battery,
                quantity=2,
            )

        assert dispatcher.sent == []

    def test_broken_dispatcher_does_not_undo_the_write(
        self, session_factory, case_lines, deterministic_clock, builder, layout, sc_manager, captured_logs
    ):
        class ExplodingDispatcher:
            def send_to_room(self, room, event_name, payload):
                raise ConnectionError("socket closed")

            def send_to_rooms(self, rooms, event_name, payload):
                raise ConnectionError("socket closed")

        stock_id = builder.stock(layout.sc1_warehouse, layout.battery, ["R-1", "R-2"], reorder_point=1)
        engine = InventoryEngine(
            session_factory,
            case_lines,
            config=get_active_config(),
            dispatcher=ExplodingDispatcher(),
            clock=deterministic_clock,
        )

        reservations = engine.reserve(
            sc_manager,
            case_line_id=uuid4(),
            warehouse_id=layout.sc1_warehouse,
            type_component_id=layout.battery,
        )

        assert len(reservations) == 1
        assert builder.stock_view(stock_id).quantity_reserved == 1
        failures = [r for r in captured_logs() if r["message"] == "side_effect_failed"]
        assert failures

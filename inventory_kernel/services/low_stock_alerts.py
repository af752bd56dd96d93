"""
LowStockAlertEngine -- post-commit scan for stocks at or below reorder point.

Responsibility:
    Reload the given stocks, keep those with
    ``quantity_available <= reorder_point``, group them by owning room
    (service-center coordinator and company coordinator) and broadcast one
    ``low_stock_alert`` per room.

Invariants enforced:
    - Read-only: no row is written, so repeated calls with the same ids
      change nothing and a skipped call loses nothing durable.
    - Runs only from ``UnitOfWork.after_commit``; dispatcher errors are
      the unit of work's to log and swallow.
"""

from collections import defaultdict
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.collaborators import NotificationDispatcher
from inventory_kernel.domain.notifications import (
    LOW_STOCK_ALERT,
    Notification,
    RoomDirectory,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.stock import Stock
from inventory_kernel.models.warehouse import Warehouse

logger = get_logger("services.low_stock_alerts")


class LowStockAlertEngine:
    """
    Read-only scan that tells coordinators when shelves run low.

    Disabled engines (``enabled=False``) return without touching the
    database.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        rooms: RoomDirectory | None = None,
        enabled: bool = True,
        priority: str = "high",
    ):
        self._dispatcher = dispatcher
        self._rooms = rooms or RoomDirectory()
        self._enabled = enabled
        self._priority = priority

    def emit_low_stock_alerts(
        self, session: Session, stock_ids: Iterable[UUID]
    ) -> list[Notification]:
        """Broadcast alerts for low stocks among ``stock_ids``; returns what was sent."""
        ids = sorted(set(stock_ids), key=str)
        if not ids or not self._enabled:
            return []

        stmt = (
            select(Stock, Warehouse)
            .join(Warehouse, Stock.warehouse_id == Warehouse.id)
            .where(Stock.id.in_(ids))
            .order_by(Stock.id)
        )
        low = [
            (stock, warehouse)
            for stock, warehouse in session.execute(stmt)
            if stock.quantity_available <= stock.reorder_point
        ]
        if not low:
            return []

        grouped: dict[str, list[dict]] = defaultdict(list)
        for stock, warehouse in low:
            entry = {
                "stock_id": str(stock.id),
                "warehouse_id": str(warehouse.id),
                "warehouse_name": warehouse.name,
                "type_component_id": str(stock.type_component_id),
                "quantity_in_stock": stock.quantity_in_stock,
                "quantity_reserved": stock.quantity_reserved,
                "quantity_available": stock.quantity_available,
                "reorder_point": stock.reorder_point,
            }
            if warehouse.service_center_id is not None:
                grouped[self._rooms.service_center_coordinator(warehouse.service_center_id)].append(entry)
            if warehouse.vehicle_company_id is not None:
                grouped[self._rooms.company_coordinator(warehouse.vehicle_company_id)].append(entry)

        sent: list[Notification] = []
        for room, entries in grouped.items():
            payload = {
                "type": "system_alert",
                "priority": self._priority,
                "title": "Low Stock Alert",
                "message": f"{len(entries)} item(s) are running low on stock",
                "data": {"stocks": entries},
            }
            self._dispatcher.send_to_room(room, LOW_STOCK_ALERT, payload)
            sent.append(Notification(rooms=(room,), event_name=LOW_STOCK_ALERT, payload=payload))

        logger.info(
            "low_stock_alerts_emitted",
            extra={"rooms": sorted(grouped), "low_stock_count": len(low)},
        )
        return sent

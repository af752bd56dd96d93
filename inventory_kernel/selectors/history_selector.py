"""
Module: inventory_kernel.selectors.history_selector
Responsibility: HistoryProjector -- one stock's merged, signed ledger.
Architecture position: Kernel > Selectors.  The signing, merging and
    paging rules live in ``inventory_kernel.domain.history``.

Adjustments are dated by ``adjusted_at``.  Reservations are dated by their
last status change (``status_changed_at``), falling back to creation for
rows written before that column was stamped.  The whole event list is
built in memory and then paginated.
"""

from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import StockHistory
from inventory_kernel.domain.history import (
    ADJUSTMENT_EVENT,
    RESERVATION_EVENT,
    HistoryEvent,
    adjustment_delta,
    merge_events,
    paginate,
    reservation_delta,
)
from inventory_kernel.domain.scope import ScopeResolver
from inventory_kernel.exceptions import StockNotFoundError
from inventory_kernel.models.adjustment import InventoryAdjustment
from inventory_kernel.models.reservation import Reservation
from inventory_kernel.models.stock import Stock
from inventory_kernel.selectors.base import BaseSelector


class HistorySelector(BaseSelector):

    def get_stock_history(
        self,
        stock_id: UUID,
        page: int | None = None,
        limit: int | None = None,
        scope: ScopeResolver | None = None,
    ) -> StockHistory:
        page, limit = self.paging.normalize(page, limit)
        stock = self.session.get(Stock, stock_id)
        if stock is None or (scope is not None and not scope.allows(stock.warehouse)):
            raise StockNotFoundError(stock_id=str(stock_id))

        adjustments = [
            HistoryEvent(
                event_type=ADJUSTMENT_EVENT,
                source_id=a.id,
                status=a.adjustment_type,
                quantity=a.quantity,
                quantity_change=adjustment_delta(a.adjustment_type, a.quantity),
                occurred_at=a.adjusted_at,
                actor_id=a.adjusted_by_user_id,
                reason=a.reason,
                note=a.note,
            )
            for a in self.session.scalars(
                select(InventoryAdjustment).where(InventoryAdjustment.stock_id == stock_id)
            )
        ]
        reservations = [
            HistoryEvent(
                event_type=RESERVATION_EVENT,
                source_id=r.id,
                status=r.status,
                quantity=r.quantity_reserved,
                quantity_change=reservation_delta(r.status, r.quantity_reserved),
                occurred_at=r.status_changed_at or r.created_at,
                actor_id=r.picked_up_by_tech_id or r.created_by_id,
                case_line_id=r.case_line_id,
                request_id=r.request_id,
            )
            for r in self.session.scalars(
                select(Reservation).where(Reservation.stock_id == stock_id)
            )
        ]

        events = merge_events(adjustments, reservations)
        return StockHistory(stock=stock.to_dto(), events=paginate(events, page, limit))

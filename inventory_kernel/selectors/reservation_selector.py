"""
Module: inventory_kernel.selectors.reservation_selector
Responsibility: Role-scoped, filterable, sortable reservation listing.
Architecture position: Kernel > Selectors.

Sorting is restricted to an allowlist of columns; anything else is a
BadRequestError rather than a silently ignored parameter.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import Page, ReservationView
from inventory_kernel.domain.scope import ScopeResolver
from inventory_kernel.domain.statuses import ReservationStatus
from inventory_kernel.exceptions import BadRequestError, ReservationNotFoundError
from inventory_kernel.models.reservation import Reservation
from inventory_kernel.models.stock import Stock
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.selectors.base import BaseSelector

SORT_COLUMNS = {
    "created_at": Reservation.created_at,
    "status": Reservation.status,
    "picked_up_at": Reservation.picked_up_at,
    "installed_at": Reservation.installed_at,
}
SORT_ORDERS = ("ASC", "DESC")


@dataclass(frozen=True)
class ReservationFilter:
    case_line_id: UUID | None = None
    request_id: UUID | None = None
    warehouse_id: UUID | None = None
    picked_up_by_tech_id: UUID | None = None
    type_component_id: UUID | None = None
    status: ReservationStatus | str | None = None


class ReservationSelector(BaseSelector):

    def get(self, reservation_id: UUID) -> ReservationView:
        reservation = self.session.get(Reservation, reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(str(reservation_id))
        return reservation.to_dto()

    def get_component_reservations(
        self,
        scope: ScopeResolver,
        filters: ReservationFilter | None = None,
        page: int | None = None,
        limit: int | None = None,
        sort_by: str = "created_at",
        sort_order: str = "DESC",
    ) -> Page:
        """
        Reservations on stocks inside ``scope``.

        Raises:
            BadRequestError: Unknown sort field, sort order or status.
        """
        page, limit = self.paging.normalize(page, limit)
        if sort_by not in SORT_COLUMNS:
            raise BadRequestError("sort_by", f"must be one of {sorted(SORT_COLUMNS)}")
        order = sort_order.upper()
        if order not in SORT_ORDERS:
            raise BadRequestError("sort_order", "must be ASC or DESC")

        filters = filters or ReservationFilter()
        stmt = (
            select(Reservation)
            .join(Stock, Reservation.stock_id == Stock.id)
            .join(Warehouse, Stock.warehouse_id == Warehouse.id)
            .where(scope.predicate())
        )
        if filters.case_line_id is not None:
            stmt = stmt.where(Reservation.case_line_id == filters.case_line_id)
        if filters.request_id is not None:
            stmt = stmt.where(Reservation.request_id == filters.request_id)
        if filters.warehouse_id is not None:
            stmt = stmt.where(Stock.warehouse_id == filters.warehouse_id)
        if filters.picked_up_by_tech_id is not None:
            stmt = stmt.where(Reservation.picked_up_by_tech_id == filters.picked_up_by_tech_id)
        if filters.type_component_id is not None:
            stmt = stmt.where(Reservation.type_component_id == filters.type_component_id)
        if filters.status is not None:
            try:
                status = ReservationStatus(filters.status)
            except ValueError:
                raise BadRequestError("status", f"unknown status {filters.status!r}") from None
            stmt = stmt.where(Reservation.status == status.value)

        total = self._count(stmt)
        column = SORT_COLUMNS[sort_by]
        ordering = column.asc() if order == "ASC" else column.desc()
        rows = self.session.scalars(
            stmt.order_by(ordering, Reservation.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return Page(
            items=tuple(r.to_dto() for r in rows),
            page=page,
            limit=limit,
            total=total,
        )

"""
Module: inventory_kernel.models.reservation
Responsibility: A claim against one stock row's availability.

Two kinds share the table:
    - Case-line reservations: quantity 1, bound to a concrete component,
      advanced RESERVED -> PICKED_UP -> INSTALLED by the technician flow.
    - Transfer reservations: quantity n, bound to a request, advanced
      RESERVED -> SHIPPED by the transfer workflow.

Both kinds can end CANCELLED or RELEASED instead.  status_changed_at
records the last transition and orders the stock history.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.domain.dtos import ReservationView
from inventory_kernel.domain.statuses import ReservationStatus

_RESERVATION_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in ReservationStatus)


class Reservation(TrackedBase):
    __tablename__ = "reservations"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_RESERVATION_STATUS_VALUES})",
            name="ck_reservation_valid_status",
        ),
        CheckConstraint("quantity_reserved > 0", name="ck_reservation_positive_quantity"),
        Index("idx_reservation_stock", "stock_id"),
        Index("idx_reservation_case_line", "case_line_id"),
        Index("idx_reservation_request", "request_id", "status"),
        Index("idx_reservation_tech", "picked_up_by_tech_id"),
    )

    stock_id: Mapped[UUID] = mapped_column(ForeignKey("stocks.id"), nullable=False)
    type_component_id: Mapped[UUID] = mapped_column(
        ForeignKey("type_components.id"), nullable=False
    )
    case_line_id: Mapped[UUID | None] = mapped_column(nullable=True)
    request_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("stock_transfer_requests.id"), nullable=True
    )
    component_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("components.id"), nullable=True
    )
    quantity_reserved: Mapped[int] = mapped_column(nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReservationStatus.RESERVED.value
    )
    picked_up_by_tech_id: Mapped[UUID | None] = mapped_column(nullable=True)
    picked_up_at: Mapped[datetime | None] = mapped_column(nullable=True)
    installed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    old_component_serial: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status_changed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> ReservationView:
        return ReservationView(
            id=self.id,
            stock_id=self.stock_id,
            type_component_id=self.type_component_id,
            status=self.status,
            quantity_reserved=self.quantity_reserved,
            case_line_id=self.case_line_id,
            request_id=self.request_id,
            component_id=self.component_id,
            picked_up_by_tech_id=self.picked_up_by_tech_id,
            picked_up_at=self.picked_up_at,
            installed_at=self.installed_at,
            old_component_serial=self.old_component_serial,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<Reservation {self.id} {self.status} x{self.quantity_reserved}>"

"""
Module: inventory_kernel.models.transfer
Responsibility: Stock transfer requests and their ordered item lines.

A request moves stock into ``requesting_warehouse_id`` from warehouses
chosen at approval time.  CASELINE requests carry a case line on every
item; WAREHOUSE_RESTOCK requests do not.  Items are immutable after
creation.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.domain.dtos import TransferItemView, TransferRequestView
from inventory_kernel.domain.statuses import RequestType, TransferStatus
from inventory_kernel.models.warehouse import Warehouse

_TRANSFER_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in TransferStatus)
_REQUEST_TYPE_VALUES = ", ".join(f"'{t.value}'" for t in RequestType)


class StockTransferRequest(TrackedBase):
    __tablename__ = "stock_transfer_requests"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_TRANSFER_STATUS_VALUES})",
            name="ck_transfer_valid_status",
        ),
        CheckConstraint(
            f"request_type IN ({_REQUEST_TYPE_VALUES})",
            name="ck_transfer_valid_type",
        ),
        Index("idx_transfer_requesting_warehouse", "requesting_warehouse_id"),
        Index("idx_transfer_status", "status"),
    )

    request_type: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransferStatus.PENDING_APPROVAL.value
    )
    requesting_warehouse_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouses.id"), nullable=False
    )
    requested_by_user_id: Mapped[UUID] = mapped_column(nullable=False)
    approved_by_user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    rejected_by_user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    cancelled_by_user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_at: Mapped[datetime] = mapped_column(nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    shipped_at: Mapped[datetime | None] = mapped_column(nullable=True)
    estimated_delivery_date: Mapped[datetime | None] = mapped_column(nullable=True)
    received_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    requesting_warehouse: Mapped[Warehouse] = relationship()
    items: Mapped[list["StockTransferRequestItem"]] = relationship(
        back_populates="request",
        order_by="StockTransferRequestItem.line_number",
    )

    @property
    def case_line_ids(self) -> list[UUID]:
        seen: dict[UUID, None] = {}
        for item in self.items:
            if item.case_line_id is not None:
                seen.setdefault(item.case_line_id, None)
        return list(seen)

    def to_dto(self) -> TransferRequestView:
        return TransferRequestView(
            id=self.id,
            request_type=self.request_type,
            status=self.status,
            requesting_warehouse_id=self.requesting_warehouse_id,
            requested_by_user_id=self.requested_by_user_id,
            items=tuple(item.to_dto() for item in self.items),
            approved_by_user_id=self.approved_by_user_id,
            rejected_by_user_id=self.rejected_by_user_id,
            cancelled_by_user_id=self.cancelled_by_user_id,
            rejection_reason=self.rejection_reason,
            cancellation_reason=self.cancellation_reason,
            requested_at=self.requested_at,
            approved_at=self.approved_at,
            shipped_at=self.shipped_at,
            estimated_delivery_date=self.estimated_delivery_date,
            received_at=self.received_at,
            rejected_at=self.rejected_at,
            cancelled_at=self.cancelled_at,
        )

    def __repr__(self) -> str:
        return f"<StockTransferRequest {self.id} {self.request_type} {self.status}>"


class StockTransferRequestItem(TrackedBase):
    __tablename__ = "stock_transfer_request_items"

    __table_args__ = (
        UniqueConstraint("request_id", "line_number", name="uq_transfer_item_line"),
        CheckConstraint("quantity_requested > 0", name="ck_transfer_item_positive_quantity"),
        Index("idx_transfer_item_case_line", "case_line_id"),
    )

    request_id: Mapped[UUID] = mapped_column(
        ForeignKey("stock_transfer_requests.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    type_component_id: Mapped[UUID] = mapped_column(
        ForeignKey("type_components.id"), nullable=False
    )
    quantity_requested: Mapped[int] = mapped_column(nullable=False)
    case_line_id: Mapped[UUID | None] = mapped_column(nullable=True)

    request: Mapped[StockTransferRequest] = relationship(back_populates="items")

    def to_dto(self) -> TransferItemView:
        return TransferItemView(
            id=self.id,
            type_component_id=self.type_component_id,
            quantity_requested=self.quantity_requested,
            case_line_id=self.case_line_id,
        )

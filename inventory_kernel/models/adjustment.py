"""
Module: inventory_kernel.models.adjustment
Responsibility: Append-only manual stock corrections.

Invariants enforced:
    - Rows are never updated or deleted (ORM listeners in
      inventory_kernel.db.immutability raise ImmutabilityViolationError).
    - Each row is written in the same transaction as the stock delta it
      records.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.domain.dtos import AdjustmentView


class InventoryAdjustment(TrackedBase):
    __tablename__ = "inventory_adjustments"

    __table_args__ = (
        CheckConstraint("adjustment_type IN ('IN', 'OUT')", name="ck_adjustment_valid_type"),
        CheckConstraint("quantity > 0", name="ck_adjustment_positive_quantity"),
        Index("idx_adjustment_stock", "stock_id"),
        Index("idx_adjustment_user", "adjusted_by_user_id"),
        Index("idx_adjustment_date", "adjusted_at"),
    )

    stock_id: Mapped[UUID] = mapped_column(ForeignKey("stocks.id"), nullable=False)
    adjustment_type: Mapped[str] = mapped_column(String(3), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    adjusted_by_user_id: Mapped[UUID] = mapped_column(nullable=False)
    adjusted_at: Mapped[datetime] = mapped_column(nullable=False)
    serial_numbers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def to_dto(self) -> AdjustmentView:
        return AdjustmentView(
            id=self.id,
            stock_id=self.stock_id,
            adjustment_type=self.adjustment_type,
            quantity=self.quantity,
            reason=self.reason,
            note=self.note,
            adjusted_by_user_id=self.adjusted_by_user_id,
            adjusted_at=self.adjusted_at,
            serial_numbers=tuple(self.serial_numbers or ()),
        )

    def __repr__(self) -> str:
        return f"<InventoryAdjustment {self.adjustment_type} x{self.quantity}>"

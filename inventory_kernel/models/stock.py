"""
Module: inventory_kernel.models.stock
Responsibility: The quantity record for one component type in one warehouse.

Invariants enforced (database level, backing StockLedger.apply_delta):
    - quantity_in_stock >= 0
    - quantity_reserved >= 0
    - quantity_reserved <= quantity_in_stock
    - one row per (warehouse_id, type_component_id)

Stocks are never deleted.  They are created lazily the first time a
warehouse receives a component type.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.domain.dtos import StockView
from inventory_kernel.models.warehouse import TypeComponent, Warehouse


class Stock(TrackedBase):
    __tablename__ = "stocks"

    __table_args__ = (
        UniqueConstraint(
            "warehouse_id", "type_component_id", name="uq_stock_warehouse_type"
        ),
        CheckConstraint("quantity_in_stock >= 0", name="ck_stock_in_stock_non_negative"),
        CheckConstraint("quantity_reserved >= 0", name="ck_stock_reserved_non_negative"),
        CheckConstraint(
            "quantity_reserved <= quantity_in_stock",
            name="ck_stock_reserved_within_in_stock",
        ),
        Index("idx_stock_type_component", "type_component_id"),
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouses.id"), nullable=False
    )
    type_component_id: Mapped[UUID] = mapped_column(
        ForeignKey("type_components.id"), nullable=False
    )
    quantity_in_stock: Mapped[int] = mapped_column(nullable=False, default=0)
    quantity_reserved: Mapped[int] = mapped_column(nullable=False, default=0)
    reorder_point: Mapped[int] = mapped_column(nullable=False, default=0)

    warehouse: Mapped[Warehouse] = relationship()
    type_component: Mapped[TypeComponent] = relationship()

    @property
    def quantity_available(self) -> int:
        return self.quantity_in_stock - self.quantity_reserved

    def to_dto(self) -> StockView:
        return StockView(
            id=self.id,
            warehouse_id=self.warehouse_id,
            type_component_id=self.type_component_id,
            quantity_in_stock=self.quantity_in_stock,
            quantity_reserved=self.quantity_reserved,
            quantity_available=self.quantity_available,
            reorder_point=self.reorder_point,
        )

    def __repr__(self) -> str:
        return (
            f"<Stock {self.id} in_stock={self.quantity_in_stock} "
            f"reserved={self.quantity_reserved}>"
        )

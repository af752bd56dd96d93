"""
Module: inventory_kernel.models.component
Responsibility: One physical, serially identified unit.

Invariants enforced:
    - serial_number is unique across the whole system and never changes.
    - status is one of ComponentStatus (check constraint).
    - Components are never hard-deleted; REMOVED and DEFECTIVE keep history.

warehouse_id is null while a unit is in a technician's hands, in transit
or installed in a vehicle.  request_id tags a unit travelling under a
stock transfer request.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.domain.dtos import ComponentView
from inventory_kernel.domain.statuses import ComponentStatus

_COMPONENT_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in ComponentStatus)


class Component(TrackedBase):
    __tablename__ = "components"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_COMPONENT_STATUS_VALUES})",
            name="ck_component_valid_status",
        ),
        Index("idx_component_stock_lookup", "warehouse_id", "type_component_id", "status"),
        Index("idx_component_request", "request_id"),
        Index("idx_component_vehicle", "vehicle_vin", "type_component_id"),
    )

    serial_number: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    type_component_id: Mapped[UUID] = mapped_column(
        ForeignKey("type_components.id"), nullable=False
    )
    warehouse_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("warehouses.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ComponentStatus.IN_STOCK.value
    )
    request_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("stock_transfer_requests.id"), nullable=True
    )
    vehicle_vin: Mapped[str | None] = mapped_column(String(17), nullable=True)
    current_holder_id: Mapped[UUID | None] = mapped_column(nullable=True)
    installed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    removed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> ComponentView:
        return ComponentView(
            id=self.id,
            serial_number=self.serial_number,
            type_component_id=self.type_component_id,
            status=self.status,
            warehouse_id=self.warehouse_id,
            request_id=self.request_id,
            vehicle_vin=self.vehicle_vin,
            current_holder_id=self.current_holder_id,
            installed_at=self.installed_at,
            removed_at=self.removed_at,
        )

    def __repr__(self) -> str:
        return f"<Component {self.serial_number} {self.status}>"

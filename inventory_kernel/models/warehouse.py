"""
Module: inventory_kernel.models.warehouse
Responsibility: Warehouses and component types.

A warehouse belongs either directly to a vehicle company (no service
center; the company warehouse) or to one of that company's service
centers.  Ownership drives notification rooms, read scopes and allocation
priority.  Service centers, companies and users live in other systems and
are referenced by id without foreign keys.
"""

from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class Warehouse(TrackedBase):
    __tablename__ = "warehouses"

    __table_args__ = (
        Index("idx_warehouse_service_center", "service_center_id"),
        Index("idx_warehouse_company", "vehicle_company_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    service_center_id: Mapped[UUID | None] = mapped_column(nullable=True)
    vehicle_company_id: Mapped[UUID | None] = mapped_column(nullable=True)

    @property
    def is_company_warehouse(self) -> bool:
        return self.service_center_id is None

    def __repr__(self) -> str:
        return f"<Warehouse {self.name} sc={self.service_center_id}>"


class TypeComponent(TrackedBase):
    """A component type (SKU), e.g. a battery module or an inverter."""

    __tablename__ = "type_components"

    sku: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<TypeComponent {self.sku}>"

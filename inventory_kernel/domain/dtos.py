"""
Inventory DTOs (``inventory_kernel.domain.dtos``).

Responsibility
--------------
Frozen value objects returned across the kernel boundary: stock levels,
components, reservations, transfer requests, adjustments, history pages.
Services and selectors convert ORM rows into these via ``to_dto()`` so that
callers never hold live ORM instances after the unit of work closes.

Invariants
----------
- ``StockView`` validates ``0 <= quantity_reserved <= quantity_in_stock``
  and ``quantity_available == quantity_in_stock - quantity_reserved``.
- ``Page.total_pages`` is never below 1 when there are items.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from inventory_kernel.logging_config import get_logger

logger = get_logger("domain.dtos")


@dataclass(frozen=True)
class Page:
    """A slice of a larger ordered result set."""

    items: tuple
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


@dataclass(frozen=True)
class StockView:
    """
    Quantity record for one component type in one warehouse.

    Raises:
        ValueError: If the counters violate the stock bounds.
    """
    id: UUID
    warehouse_id: UUID
    type_component_id: UUID
    quantity_in_stock: int
    quantity_reserved: int
    quantity_available: int
    reorder_point: int

    def __post_init__(self):
        if self.quantity_in_stock < 0 or self.quantity_reserved < 0:
            raise ValueError("stock quantities cannot be negative")
        if self.quantity_reserved > self.quantity_in_stock:
            logger.warning(
                "stock_view_reserved_exceeds_in_stock",
                extra={
                    "stock_id": str(self.id),
                    "quantity_in_stock": self.quantity_in_stock,
                    "quantity_reserved": self.quantity_reserved,
                },
            )
            raise ValueError(
                f"quantity_reserved ({self.quantity_reserved}) exceeds "
                f"quantity_in_stock ({self.quantity_in_stock})"
            )
        if self.quantity_available != self.quantity_in_stock - self.quantity_reserved:
            raise ValueError("quantity_available must equal in_stock - reserved")

    @property
    def is_low(self) -> bool:
        return self.quantity_available <= self.reorder_point


@dataclass(frozen=True)
class ComponentView:
    id: UUID
    serial_number: str
    type_component_id: UUID
    status: str
    warehouse_id: UUID | None = None
    request_id: UUID | None = None
    vehicle_vin: str | None = None
    current_holder_id: UUID | None = None
    installed_at: datetime | None = None
    removed_at: datetime | None = None


@dataclass(frozen=True)
class ReservationView:
    id: UUID
    stock_id: UUID
    type_component_id: UUID
    status: str
    quantity_reserved: int
    case_line_id: UUID | None = None
    request_id: UUID | None = None
    component_id: UUID | None = None
    picked_up_by_tech_id: UUID | None = None
    picked_up_at: datetime | None = None
    installed_at: datetime | None = None
    old_component_serial: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class TransferItemView:
    id: UUID
    type_component_id: UUID
    quantity_requested: int
    case_line_id: UUID | None = None


@dataclass(frozen=True)
class TransferRequestView:
    id: UUID
    request_type: str
    status: str
    requesting_warehouse_id: UUID
    requested_by_user_id: UUID
    items: tuple[TransferItemView, ...] = ()
    approved_by_user_id: UUID | None = None
    rejected_by_user_id: UUID | None = None
    cancelled_by_user_id: UUID | None = None
    rejection_reason: str | None = None
    cancellation_reason: str | None = None
    requested_at: datetime | None = None
    approved_at: datetime | None = None
    shipped_at: datetime | None = None
    estimated_delivery_date: datetime | None = None
    received_at: datetime | None = None
    rejected_at: datetime | None = None
    cancelled_at: datetime | None = None


@dataclass(frozen=True)
class AdjustmentView:
    id: UUID
    stock_id: UUID
    adjustment_type: str
    quantity: int
    reason: str
    adjusted_by_user_id: UUID
    adjusted_at: datetime
    note: str | None = None
    serial_numbers: tuple[str, ...] = ()


@dataclass(frozen=True)
class StockHistory:
    """A stock snapshot plus one page of its merged ledger."""

    stock: StockView
    events: Page


@dataclass(frozen=True)
class StockSummaryRow:
    """Totals for one component type across a set of warehouses."""

    type_component_id: UUID
    sku: str
    name: str
    quantity_in_stock: int
    quantity_reserved: int
    quantity_available: int
    warehouse_count: int


@dataclass(frozen=True)
class ApproveOutcome:
    """Result of approving a transfer request."""

    request: TransferRequestView
    reservations: tuple[ReservationView, ...] = ()
    touched_stock_ids: tuple[UUID, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AdjustmentOutcome:
    adjustment: AdjustmentView
    stock: StockView
    components: tuple[ComponentView, ...] = ()

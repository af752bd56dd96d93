"""
Pure domain layer.

Status tables, the allocation algorithm, history projection helpers,
clocks and frozen DTOs.  Nothing here touches the ORM or the database;
``scope`` is the one exception and is imported directly by its users.
"""

from inventory_kernel.domain.allocation import (
    Allocation,
    StockCandidate,
    allocate,
    order_candidates,
    total_available,
)
from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import (
    AdjustmentOutcome,
    AdjustmentView,
    ApproveOutcome,
    ComponentView,
    Page,
    ReservationView,
    StockHistory,
    StockSummaryRow,
    StockView,
    TransferItemView,
    TransferRequestView,
)
from inventory_kernel.domain.history import HistoryEvent, merge_events, paginate
from inventory_kernel.domain.statuses import (
    AdjustmentType,
    CaseLineStatus,
    ComponentStatus,
    RequestType,
    ReservationStatus,
    TransferStatus,
)

__all__ = [
    "AdjustmentOutcome",
    "AdjustmentType",
    "AdjustmentView",
    "Allocation",
    "ApproveOutcome",
    "CaseLineStatus",
    "Clock",
    "ComponentStatus",
    "ComponentView",
    "DeterministicClock",
    "HistoryEvent",
    "Page",
    "RequestType",
    "ReservationStatus",
    "ReservationView",
    "StockCandidate",
    "StockHistory",
    "StockSummaryRow",
    "StockView",
    "SystemClock",
    "TransferItemView",
    "TransferRequestView",
    "TransferStatus",
    "allocate",
    "merge_events",
    "order_candidates",
    "paginate",
    "total_available",
]

"""Read-only selectors for the inventory kernel (query side)."""

from inventory_kernel.selectors.adjustment_selector import AdjustmentFilter, AdjustmentSelector
from inventory_kernel.selectors.base import BaseSelector, PageDefaults
from inventory_kernel.selectors.history_selector import HistorySelector
from inventory_kernel.selectors.reservation_selector import ReservationFilter, ReservationSelector
from inventory_kernel.selectors.stock_selector import StockSelector
from inventory_kernel.selectors.transfer_selector import TransferSelector

__all__ = [
    "AdjustmentFilter",
    "AdjustmentSelector",
    "BaseSelector",
    "HistorySelector",
    "PageDefaults",
    "ReservationFilter",
    "ReservationSelector",
    "StockSelector",
    "TransferSelector",
]

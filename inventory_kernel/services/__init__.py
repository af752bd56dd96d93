"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.adjustment_service import AdjustmentLedger
from inventory_kernel.services.component_registry import ComponentRegistry
from inventory_kernel.services.low_stock_alerts import LowStockAlertEngine
from inventory_kernel.services.reservation_service import ReservationEngine
from inventory_kernel.services.stock_ledger import StockLedger
from inventory_kernel.services.transfer_service import StockTransferWorkflow, TransferLine

__all__ = [
    "AdjustmentLedger",
    "ComponentRegistry",
    "LowStockAlertEngine",
    "ReservationEngine",
    "StockLedger",
    "StockTransferWorkflow",
    "TransferLine",
]

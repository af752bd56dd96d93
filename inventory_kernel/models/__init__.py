"""ORM models.  Importing this package registers every table on Base.metadata."""

from inventory_kernel.models.adjustment import InventoryAdjustment
from inventory_kernel.models.component import Component
from inventory_kernel.models.reservation import Reservation
from inventory_kernel.models.stock import Stock
from inventory_kernel.models.transfer import StockTransferRequest, StockTransferRequestItem
from inventory_kernel.models.warehouse import TypeComponent, Warehouse

__all__ = [
    "Component",
    "InventoryAdjustment",
    "Reservation",
    "Stock",
    "StockTransferRequest",
    "StockTransferRequestItem",
    "TypeComponent",
    "Warehouse",
]

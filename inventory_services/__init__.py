"""Outer orchestration for the inventory engine: facade, dispatchers, observability."""

from inventory_services.engine import InventoryEngine
from inventory_services.notifications import (
    LoggingNotificationDispatcher,
    RecordingNotificationDispatcher,
)

__all__ = [
    "InventoryEngine",
    "LoggingNotificationDispatcher",
    "RecordingNotificationDispatcher",
]

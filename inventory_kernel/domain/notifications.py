"""
Notification vocabulary: room names, event names, payloads.

The engine decides *what* to broadcast and *to whom*; delivery belongs to
the ``NotificationDispatcher`` collaborator.  Room names are built from
templates (``emv_staff_{company_id}``, ...) so deployments can rename them
through configuration without touching the workflow.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping
from uuid import UUID

# Event names
NEW_STOCK_TRANSFER_REQUEST = "new_stock_transfer_request"
STOCK_TRANSFER_REQUEST_APPROVED = "stock_transfer_request_approved"
STOCK_TRANSFER_REQUEST_SHIPPED = "stock_transfer_request_shipped"
STOCK_TRANSFER_REQUEST_RECEIVED = "stock_transfer_request_received"
STOCK_TRANSFER_REQUEST_REJECTED = "stock_transfer_request_rejected"
STOCK_TRANSFER_REQUEST_CANCELLED = "stock_transfer_request_cancelled"
INVENTORY_ADJUSTMENT_CREATED = "inventory_adjustment_created"
LOW_STOCK_ALERT = "low_stock_alert"

EMV_STAFF = "emv_staff"
COMPANY_COORDINATOR = "parts_coordinator_company"
SERVICE_CENTER_COORDINATOR = "parts_coordinator_service_center"
SERVICE_CENTER_STAFF = "service_center_staff"
SERVICE_CENTER_MANAGER = "service_center_manager"

DEFAULT_ROOM_TEMPLATES: dict[str, str] = {
    EMV_STAFF: "emv_staff_{company_id}",
    COMPANY_COORDINATOR: "parts_coordinator_company_{company_id}",
    SERVICE_CENTER_COORDINATOR: "parts_coordinator_service_center_{service_center_id}",
    SERVICE_CENTER_STAFF: "service_center_staff_{service_center_id}",
    SERVICE_CENTER_MANAGER: "service_center_manager_{service_center_id}",
}


@dataclass(frozen=True)
class Notification:
    """One broadcast: an event name and payload sent to a set of rooms."""

    rooms: tuple[str, ...]
    event_name: str
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RoomDirectory:
    templates: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_ROOM_TEMPLATES)
    )

    def room(self, key: str, **ids: UUID | str | None) -> str:
        return self.templates[key].format(**{k: str(v) for k, v in ids.items()})

    def emv_staff(self, company_id: UUID) -> str:
        return self.room(EMV_STAFF, company_id=company_id)

    def company_coordinator(self, company_id: UUID) -> str:
        return self.room(COMPANY_COORDINATOR, company_id=company_id)

    def service_center_coordinator(self, service_center_id: UUID) -> str:
        return self.room(SERVICE_CENTER_COORDINATOR, service_center_id=service_center_id)

    def service_center_staff(self, service_center_id: UUID) -> str:
        return self.room(SERVICE_CENTER_STAFF, service_center_id=service_center_id)

    def service_center_manager(self, service_center_id: UUID) -> str:
        return self.room(SERVICE_CENTER_MANAGER, service_center_id=service_center_id)

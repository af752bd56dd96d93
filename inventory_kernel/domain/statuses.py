"""
Status vocabularies and their transition tables.

Every lifecycle in the engine is a small finite state machine.  The
tables below are the single source of truth for which moves are legal;
services call ``ensure_status`` before mutating a row so that a wrong
current status always surfaces as ``InvalidStatusTransitionError``
(a ConflictError) carrying the current and expected statuses.
"""

from enum import Enum
from typing import Iterable

from inventory_kernel.exceptions import InvalidStatusTransitionError


class ComponentStatus(str, Enum):
    """Physical lifecycle of one serialized unit."""

    IN_STOCK = "IN_STOCK"
    RESERVED = "RESERVED"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    INSTALLED = "INSTALLED"
    REMOVED = "REMOVED"
    DEFECTIVE = "DEFECTIVE"


class ReservationStatus(str, Enum):
    RESERVED = "RESERVED"
    PICKED_UP = "PICKED_UP"
    INSTALLED = "INSTALLED"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"
    RELEASED = "RELEASED"


class TransferStatus(str, Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    SHIPPED = "SHIPPED"
    RECEIVED = "RECEIVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class RequestType(str, Enum):
    CASELINE = "CASELINE"
    WAREHOUSE_RESTOCK = "WAREHOUSE_RESTOCK"


class AdjustmentType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class CaseLineStatus(str, Enum):
    """Case-line statuses the engine pushes through the case-line gateway."""

    WAITING_FOR_PARTS = "WAITING_FOR_PARTS"
    PARTS_AVAILABLE = "PARTS_AVAILABLE"
    REJECTED_BY_OEM = "REJECTED_BY_OEM"
    IN_REPAIR = "IN_REPAIR"


COMPONENT_TRANSITIONS: dict[ComponentStatus, frozenset[ComponentStatus]] = {
    ComponentStatus.IN_STOCK: frozenset({
        ComponentStatus.RESERVED,
        ComponentStatus.PICKED_UP,
        ComponentStatus.IN_TRANSIT,
        ComponentStatus.REMOVED,
        ComponentStatus.DEFECTIVE,
    }),
    ComponentStatus.RESERVED: frozenset({
        ComponentStatus.IN_STOCK,
        ComponentStatus.PICKED_UP,
        ComponentStatus.IN_TRANSIT,
    }),
    ComponentStatus.PICKED_UP: frozenset({ComponentStatus.INSTALLED}),
    ComponentStatus.IN_TRANSIT: frozenset({ComponentStatus.IN_STOCK}),
    ComponentStatus.INSTALLED: frozenset({
        ComponentStatus.REMOVED,
        ComponentStatus.DEFECTIVE,
    }),
    # Terminal
    ComponentStatus.REMOVED: frozenset(),
    ComponentStatus.DEFECTIVE: frozenset(),
}

RESERVATION_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.RESERVED: frozenset({
        ReservationStatus.PICKED_UP,
        ReservationStatus.SHIPPED,
        ReservationStatus.CANCELLED,
        ReservationStatus.RELEASED,
    }),
    ReservationStatus.PICKED_UP: frozenset({ReservationStatus.INSTALLED}),
    # Terminal
    ReservationStatus.INSTALLED: frozenset(),
    ReservationStatus.SHIPPED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.RELEASED: frozenset(),
}

TRANSFER_TRANSITIONS: dict[TransferStatus, frozenset[TransferStatus]] = {
    TransferStatus.PENDING_APPROVAL: frozenset({
        TransferStatus.APPROVED,
        TransferStatus.REJECTED,
        TransferStatus.CANCELLED,
    }),
    TransferStatus.APPROVED: frozenset({
        TransferStatus.SHIPPED,
        TransferStatus.CANCELLED,
    }),
    TransferStatus.SHIPPED: frozenset({TransferStatus.RECEIVED}),
    # Terminal
    TransferStatus.RECEIVED: frozenset(),
    TransferStatus.REJECTED: frozenset(),
    TransferStatus.CANCELLED: frozenset(),
}

# Components counted by the conservation property: a serial is "live" in
# exactly one of these statuses.
LIVE_COMPONENT_STATUSES: frozenset[ComponentStatus] = frozenset({
    ComponentStatus.IN_STOCK,
    ComponentStatus.RESERVED,
    ComponentStatus.PICKED_UP,
    ComponentStatus.IN_TRANSIT,
    ComponentStatus.INSTALLED,
})


def can_transition(table: dict, current: Enum, target: Enum) -> bool:
    return target in table.get(current, frozenset())


def sources_of(table: dict, target: Enum) -> list:
    """Statuses from which ``target`` is reachable in one step, in table order."""
    return [status for status, targets in table.items() if target in targets]


def ensure_status(
    entity_type: str,
    entity_id: object,
    current: str,
    allowed: Iterable[Enum],
    action: str,
) -> None:
    """Raise InvalidStatusTransitionError unless ``current`` is one of ``allowed``."""
    allowed_values = [status.value for status in allowed]
    if current not in allowed_values:
        raise InvalidStatusTransitionError(
            entity_type=entity_type,
            entity_id=str(entity_id),
            current_status=current,
            allowed_statuses=allowed_values,
            action=action,
        )

"""
ORM-Level Immutability Enforcement for adjustment records.

===============================================================================
WHY THIS EXISTS
===============================================================================

Inventory adjustments are the audit trail for every manual stock
correction.  A correction is fixed by writing a new adjustment in the
opposite direction, never by editing or deleting the old one.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database:

    session.flush()
         |
         v
    [before_update] --> _check_adjustment_immutability() --> ImmutabilityViolationError
    [before_delete] --> _check_adjustment_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

A raised error aborts the flush; the enclosing unit of work rolls back.

===============================================================================
USAGE
===============================================================================

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup; safe to repeat

    # In tests that must bypass the rule:
    unregister_immutability_listeners()
"""

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_adjustment_immutability(mapper, connection, target):
    """Block any UPDATE of an InventoryAdjustment."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "InventoryAdjustment",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryAdjustment",
        entity_id=str(target.id),
        reason="Inventory adjustments are append-only and cannot be modified",
    )


def _check_adjustment_delete(mapper, connection, target):
    """Block DELETE of an InventoryAdjustment."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "InventoryAdjustment",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryAdjustment",
        entity_id=str(target.id),
        reason="Inventory adjustments cannot be deleted",
    )


_LISTENERS = (
    ("before_update", _check_adjustment_immutability),
    ("before_delete", _check_adjustment_delete),
)


def register_immutability_listeners():
    """Register the adjustment listeners (idempotent)."""
    from inventory_kernel.models.adjustment import InventoryAdjustment

    for event_name, listener_fn in _LISTENERS:
        if not event.contains(InventoryAdjustment, event_name, listener_fn):
            event.listen(InventoryAdjustment, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the adjustment listeners.

    WARNING: Only use this in tests that need to violate the rule on purpose.
    """
    from inventory_kernel.models.adjustment import InventoryAdjustment

    for event_name, listener_fn in _LISTENERS:
        _safe_remove_listener(InventoryAdjustment, event_name, listener_fn)

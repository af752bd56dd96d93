"""
Observability hooks for the inventory engine.

Emits structured log events for metrics and dashboards:
- Allocation: allocation_computed (reservations and source stocks per approval).
- Notifications: notification_dispatched (rooms and event per broadcast).
- Low stock: low_stock_alert (stocks reported per room).
- Failures: side_effect_failed (post-commit effect raised),
  guard_failure (a business rule rejected an operation),
  invariant_violation (stock bookkeeping defect; never a business error).

All events carry a stable ``observability_event`` field so log aggregators
can filter and count them without parsing messages.

Usage:
    from inventory_services.observability import log_guard_failure
    log_guard_failure(operation="approve_transfer", exc_code=exc.code)
"""

from __future__ import annotations

from typing import Any, Iterable

from inventory_kernel.logging_config import get_logger

logger = get_logger("services.observability")

EVENT_ALLOCATION_COMPUTED = "allocation_computed"
EVENT_NOTIFICATION_DISPATCHED = "notification_dispatched"
EVENT_LOW_STOCK_ALERT = "low_stock_alert"
EVENT_SIDE_EFFECT_FAILED = "side_effect_failed"
EVENT_GUARD_FAILURE = "guard_failure"
EVENT_INVARIANT_VIOLATION = "invariant_violation"


def log_allocation_computed(
    *,
    request_id: str,
    reservation_count: int,
    stock_ids: Iterable[str],
    duration_ms: float | None = None,
    **extra: Any,
) -> None:
    """Log a successful approval: how many reservations, from which stocks."""
    payload: dict[str, Any] = {
        "observability_event": EVENT_ALLOCATION_COMPUTED,
        "request_id": request_id,
        "reservation_count": reservation_count,
        "stock_ids": list(stock_ids),
        **extra,
    }
    if duration_ms is not None:
        payload["duration_ms"] = round(duration_ms, 2)
    logger.info("inventory_allocation_computed", extra=payload)


def log_notification_dispatched(
    *,
    rooms: Iterable[str],
    event_name: str,
    **extra: Any,
) -> None:
    payload: dict[str, Any] = {
        "observability_event": EVENT_NOTIFICATION_DISPATCHED,
        "rooms": list(rooms),
        "event_name": event_name,
        **extra,
    }
    logger.info("inventory_notification_dispatched", extra=payload)


def log_low_stock_alert(*, room: str, stock_count: int, **extra: Any) -> None:
    payload: dict[str, Any] = {
        "observability_event": EVENT_LOW_STOCK_ALERT,
        "room": room,
        "stock_count": stock_count,
        **extra,
    }
    logger.warning("inventory_low_stock_alert", extra=payload)


def log_side_effect_failed(effect: str, exc: Exception, **extra: Any) -> None:
    """
    Log a post-commit effect that raised.

    The stock mutation it followed is already committed; this is for
    alerting on a broken dispatcher, not for retrying.
    """
    payload: dict[str, Any] = {
        "observability_event": EVENT_SIDE_EFFECT_FAILED,
        "effect": effect,
        "exc_type": type(exc).__name__,
        **extra,
    }
    logger.error("inventory_side_effect_failed", extra=payload)


def log_guard_failure(
    *,
    operation: str,
    exc_code: str,
    entity_id: str | None = None,
    **extra: Any,
) -> None:
    """
    Log a business rule that rejected an operation.

    exc_code is the exception's ``code`` (INSUFFICIENT_STOCK,
    INVALID_STATUS_TRANSITION, DUPLICATE_SERIAL, ...).
    """
    payload: dict[str, Any] = {
        "observability_event": EVENT_GUARD_FAILURE,
        "operation": operation,
        "exc_code": exc_code,
        **extra,
    }
    if entity_id is not None:
        payload["entity_id"] = entity_id
    logger.warning("inventory_guard_failure", extra=payload)


def log_invariant_violation(*, operation: str, stock_id: str, **extra: Any) -> None:
    """Log a stock bookkeeping defect that aborted an operation."""
    logger.error(
        "inventory_invariant_violation",
        extra={
            "observability_event": EVENT_INVARIANT_VIOLATION,
            "operation": operation,
            "stock_id": stock_id,
            **extra,
        },
    )

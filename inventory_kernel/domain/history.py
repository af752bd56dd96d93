"""
HistoryProjector core -- merge adjustment and reservation events.

Pure functions: the selector loads rows, turns them into ``HistoryEvent``
values and hands them here to be signed, merged, sorted and paginated.

The reservation-status sign table is deliberately a data table.  A status
that is not listed contributes no quantity change.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Sequence
from uuid import UUID

from inventory_kernel.domain.dtos import Page

RESERVATION_STATUS_SIGN: dict[str, int] = {
    "RESERVED": -1,
    "SHIPPED": -1,
    "IN_TRANSIT": -1,
    "INSTALLED": -1,
    "PICKED_UP": -1,
    "COMPLETED": -1,
    "CANCELLED": 1,
    "RELEASED": 1,
    "RETURNED": 1,
}

ADJUSTMENT_TYPE_SIGN: dict[str, int] = {
    "IN": 1,
    "OUT": -1,
}

ADJUSTMENT_EVENT = "INVENTORY_ADJUSTMENT"
RESERVATION_EVENT = "COMPONENT_RESERVATION"


@dataclass(frozen=True)
class HistoryEvent:
    """One signed entry of a stock's ledger."""

    event_type: str
    source_id: UUID
    status: str
    quantity: int
    quantity_change: int
    occurred_at: datetime
    actor_id: UUID | None = None
    reason: str | None = None
    note: str | None = None
    case_line_id: UUID | None = None
    request_id: UUID | None = None


def reservation_delta(status: str, quantity: int) -> int:
    return RESERVATION_STATUS_SIGN.get(status, 0) * quantity


def adjustment_delta(adjustment_type: str, quantity: int) -> int:
    return ADJUSTMENT_TYPE_SIGN[adjustment_type] * quantity


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def merge_events(*streams: Iterable[HistoryEvent]) -> list[HistoryEvent]:
    """Merge event streams, newest first; ties ordered by source id."""
    merged = [event for stream in streams for event in stream]
    merged.sort(
        key=lambda event: (as_utc(event.occurred_at), str(event.source_id)),
        reverse=True,
    )
    return merged


def paginate(items: Sequence, page: int, limit: int) -> Page:
    """Slice an in-memory list into a Page (1-based page number)."""
    page = max(page, 1)
    limit = max(limit, 1)
    offset = (page - 1) * limit
    return Page(
        items=tuple(items[offset:offset + limit]),
        page=page,
        limit=limit,
        total=len(items),
    )

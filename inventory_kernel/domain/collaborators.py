"""
Protocols for the collaborators the engine calls but does not own.

- ``NotificationDispatcher``: fire-and-forget room broadcast.  Only ever
  called after commit.
- ``CaseLineGateway``: the case-line service's warehouse-facing surface.
  Its writes run inside the caller's unit of work, so they share the
  transaction of the stock mutation that triggered them.
"""

from typing import Any, Iterable, Mapping, Protocol, runtime_checkable
from uuid import UUID


@runtime_checkable
class NotificationDispatcher(Protocol):
    def send_to_room(self, room: str, event_name: str, payload: Mapping[str, Any]) -> None:
        ...

    def send_to_rooms(
        self, rooms: Iterable[str], event_name: str, payload: Mapping[str, Any]
    ) -> None:
        ...


@runtime_checkable
class CaseLineGateway(Protocol):
    def bulk_update_status_by_ids(
        self, session: Any, case_line_ids: Iterable[UUID], status: str
    ) -> int:
        """Set ``status`` on every listed case line; returns rows touched."""
        ...

    def get_vehicle_vin(self, session: Any, case_line_id: UUID) -> str | None:
        """VIN of the vehicle the case line belongs to, or None."""
        ...

    def count_warranty_by_type_component(
        self, session: Any, case_line_id: UUID, type_component_id: UUID
    ) -> int:
        """Active warranted units of this type on the case line's vehicle."""
        ...

"""
Notification dispatchers.

The kernel decides what to broadcast and to which rooms; these classes are
the delivery end of ``NotificationDispatcher``.  Real-time transport
(websockets and the like) lives outside this project: a deployment wires
its own dispatcher with the same two methods.

- ``LoggingNotificationDispatcher`` writes each broadcast to the structured
  log.  It is the default.
- ``RecordingNotificationDispatcher`` also keeps every broadcast in memory,
  for tests and for callers that forward notifications in bulk.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from inventory_kernel.domain.notifications import LOW_STOCK_ALERT, Notification
from inventory_services.observability import log_low_stock_alert, log_notification_dispatched


class LoggingNotificationDispatcher:

    def send_to_room(self, room: str, event_name: str, payload: Mapping[str, Any]) -> None:
        self._deliver((room,), event_name, payload)

    def send_to_rooms(
        self, rooms: Iterable[str], event_name: str, payload: Mapping[str, Any]
    ) -> None:
        self._deliver(tuple(rooms), event_name, payload)

    def _deliver(self, rooms: tuple[str, ...], event_name: str, payload: Mapping[str, Any]) -> None:
        log_notification_dispatched(rooms=rooms, event_name=event_name)
        if event_name == LOW_STOCK_ALERT:
            stocks = payload.get("data", {}).get("stocks", [])
            for room in rooms:
                log_low_stock_alert(room=room, stock_count=len(stocks))


class RecordingNotificationDispatcher(LoggingNotificationDispatcher):
    """Keeps every broadcast in ``sent``, oldest first."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    def _deliver(self, rooms: tuple[str, ...], event_name: str, payload: Mapping[str, Any]) -> None:
        self.sent.append(Notification(rooms=rooms, event_name=event_name, payload=dict(payload)))
        super()._deliver(rooms, event_name, payload)

    def events(self, event_name: str) -> list[Notification]:
        return [n for n in self.sent if n.event_name == event_name]

    def rooms_for(self, event_name: str) -> list[str]:
        return [room for n in self.events(event_name) for room in n.rooms]

    def clear(self) -> None:
        self.sent.clear()

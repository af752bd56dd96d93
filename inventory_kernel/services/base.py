"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor (injected clock) and the row-locking
    helper every state-changing service uses.  Services receive a
    ``UnitOfWork`` per call and work through ``uow.session`` with
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's unit of
      work and never commit or roll back themselves.
    - Lock order: ``lock_rows`` always locks in primary-key order, so two
      transactions locking overlapping sets of the same table cannot
      deadlock on each other.

Failure modes:
    - A subclass that commits breaks the all-or-nothing guarantee of
      multi-step operations such as approval.
"""

from abc import ABC
from typing import Any, Iterable, Mapping, TypeVar
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.db.base import Base
from inventory_kernel.db.unit_of_work import UnitOfWork
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.collaborators import NotificationDispatcher
from inventory_kernel.domain.notifications import RoomDirectory
from inventory_kernel.services.low_stock_alerts import LowStockAlertEngine

ModelType = TypeVar("ModelType", bound=Base)


def lock_rows(
    uow: UnitOfWork,
    model: type[ModelType],
    ids: Iterable[UUID],
) -> list[ModelType]:
    """
    SELECT ... FOR UPDATE the given rows, ordered by id.

    ``populate_existing`` refreshes rows already in the identity map, so
    callers always see the values as of the lock, not a stale earlier read.
    Missing ids are simply absent from the result.
    """
    unique_ids = sorted(set(ids), key=str)
    if not unique_ids:
        return []
    stmt = (
        select(model)
        .where(model.id.in_(unique_ids))
        .order_by(model.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(uow.session.scalars(stmt))


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``; the owner of the UnitOfWork does.

    Non-goals:
        - Does NOT provide read-only query methods; those live in
          ``inventory_kernel/selectors/``.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()


class NotifyingService(BaseService):
    """
    A service whose operations end in post-commit broadcasts.

    ``_notify`` and ``_alert_low_stock`` only queue work on the unit of
    work; nothing is sent unless the transaction commits.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        rooms: RoomDirectory | None = None,
        alerts: LowStockAlertEngine | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(clock)
        self._dispatcher = dispatcher
        self._rooms = rooms or RoomDirectory()
        self._alerts = alerts or LowStockAlertEngine(dispatcher, self._rooms)

    def _notify(
        self,
        uow: UnitOfWork,
        rooms: Iterable[str],
        event_name: str,
        payload: Mapping[str, Any],
    ) -> None:
        room_list = list(dict.fromkeys(rooms))
        if not room_list:
            return
        if len(room_list) == 1:
            uow.after_commit(self._dispatcher.send_to_room, room_list[0], event_name, payload)
        else:
            uow.after_commit(self._dispatcher.send_to_rooms, room_list, event_name, payload)

    def _alert_low_stock(self, uow: UnitOfWork, stock_ids: Iterable[UUID]) -> None:
        ids = list(dict.fromkeys(stock_ids))
        if ids:
            uow.after_commit(self._alerts.emit_low_stock_alerts, uow.session, ids)

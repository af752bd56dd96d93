"""
ReservationEngine -- per-unit reservations for repair case lines.

Responsibility:
    Reserve shelf units for a case line, hand them to a technician
    (pickup), fit them to the vehicle (install), or put them back
    (cancel / release).

State machine (per reservation)::

    RESERVED --> PICKED_UP --> INSTALLED          (terminal)
        |
        +------> CANCELLED | RELEASED            (terminal)

Stock effects:
    reserve        delta_reserved = +n
    pickup         delta_stock = -1, delta_reserved = -1  (unit leaves the shelf)
    cancel/release delta_reserved = -1                    (unit back on the shelf)

Invariants enforced:
    - Batches are all or nothing: every member is validated under lock
      before the unit of work can commit; one failure aborts the batch.
    - Lock order: stocks -> reservations -> components, each by id.
    - Case lines touched by a pickup move to IN_REPAIR once, after the loop.

Failure modes:
    - ReservationNotFoundError, InvalidStatusTransitionError,
      ComponentStateError (unit without a warehouse, old unit not installed),
      CaseLineNotFoundError (vehicle cannot be resolved).
"""

from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.db.unit_of_work import UnitOfWork
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.collaborators import CaseLineGateway, NotificationDispatcher
from inventory_kernel.domain.dtos import ReservationView
from inventory_kernel.domain.notifications import RoomDirectory
from inventory_kernel.domain.statuses import (
    RESERVATION_TRANSITIONS,
    CaseLineStatus,
    ComponentStatus,
    ReservationStatus,
    ensure_status,
    sources_of,
)
from inventory_kernel.exceptions import (
    BadRequestError,
    CaseLineNotFoundError,
    ComponentNotFoundError,
    ComponentShortageError,
    ComponentStateError,
    InsufficientStockError,
    ReservationNotFoundError,
    ReservationOwnedByRequestError,
    StockNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.reservation import Reservation
from inventory_kernel.services.base import NotifyingService, lock_rows
from inventory_kernel.services.component_registry import ComponentRegistry
from inventory_kernel.services.low_stock_alerts import LowStockAlertEngine
from inventory_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.reservation_service")


class ReservationEngine(NotifyingService):
    """
    Per-unit reservations for repair case lines.

    Contract
    --------
    Every method flushes inside the caller's unit of work and never
    commits.  Batch methods validate every member under lock before any
    counter moves, so one bad member aborts the whole batch.

    Guarantees:
        - A case-line reservation always names one component; the
          component's status moves in step with the reservation's.
        - Reservations held by a stock transfer request are never
          cancelled or released here; they move only with their request.
    """

    def __init__(
        self,
        stock_ledger: StockLedger,
        registry: ComponentRegistry,
        case_lines: CaseLineGateway,
        dispatcher: NotificationDispatcher,
        rooms: RoomDirectory | None = None,
        alerts: LowStockAlertEngine | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(dispatcher, rooms, alerts, clock)
        self._stocks = stock_ledger
        self._registry = registry
        self._case_lines = case_lines

    # ------------------------------------------------------------------
    # Reserve
    # ------------------------------------------------------------------

    def reserve(
        self,
        uow: UnitOfWork,
        *,
        case_line_id: UUID,
        warehouse_id: UUID,
        type_component_id: UUID,
        quantity: int = 1,
        actor_id: UUID | None = None,
    ) -> list[ReservationView]:
        """
        Reserve ``quantity`` shelf units of one type for a case line.

        One reservation per unit, each bound to the earliest IN_STOCK
        component, which becomes RESERVED.
        """
        if quantity <= 0:
            raise BadRequestError("quantity", "must be positive")

        stock = self._stocks.find_stock(uow, warehouse_id, type_component_id, lock=True)
        if stock is None:
            raise StockNotFoundError(
                warehouse_id=str(warehouse_id), type_component_id=str(type_component_id)
            )
        if stock.quantity_available < quantity:
            raise InsufficientStockError(
                type_component_id=str(type_component_id),
                requested=quantity,
                available=stock.quantity_available,
                stock_id=str(stock.id),
            )

        components = self._registry.lock_available(
            uow, warehouse_id, type_component_id, limit=quantity
        )
        if len(components) < quantity:
            raise ComponentShortageError(
                warehouse_id=str(warehouse_id),
                type_component_id=str(type_component_id),
                required=quantity,
                found=len(components),
            )

        now = self._clock.now()
        reservations = []
        for component in components:
            self._registry.transition(component, ComponentStatus.RESERVED)
            reservations.append(
                Reservation(
                    stock_id=stock.id,
                    type_component_id=type_component_id,
                    case_line_id=case_line_id,
                    component_id=component.id,
                    quantity_reserved=1,
                    status=ReservationStatus.RESERVED.value,
                    status_changed_at=now,
                    created_by_id=actor_id,
                    created_at=now,
                )
            )
        uow.session.add_all(reservations)
        self._stocks.apply_delta(uow, stock, delta_reserved=quantity)

        logger.info(
            "case_line_components_reserved",
            extra={
                "case_line_id": str(case_line_id),
                "stock_id": str(stock.id),
                "quantity": quantity,
            },
        )
        self._alert_low_stock(uow, [stock.id])
        return [reservation.to_dto() for reservation in reservations]

    # ------------------------------------------------------------------
    # Pickup
    # ------------------------------------------------------------------

    def pickup(
        self,
        uow: UnitOfWork,
        reservation_ids: Sequence[UUID],
        picked_up_by_tech_id: UUID,
    ) -> list[ReservationView]:
        """
        Hand reserved units to a technician, as one atomic batch.

        Each reservation must be RESERVED and bound to a component that
        sits in a warehouse.  The unit leaves the shelf: its stock loses
        one unit in stock and one reserved.
        """
        ids = list(dict.fromkeys(reservation_ids))
        if not ids:
            raise BadRequestError("reservation_ids", "must not be empty")

        reservations, stocks, components = self._lock_batch(uow, ids)
        now = self._clock.now()
        allowed = sources_of(RESERVATION_TRANSITIONS, ReservationStatus.PICKED_UP)

        case_line_ids: list[UUID] = []
        for reservation in reservations:
            with LogContext.bind(reservation_id=reservation.id):
                ensure_status(
                    "Reservation", reservation.id, reservation.status, allowed, "pick up"
                )
                component = components[reservation.component_id]
                if component.warehouse_id is None:
                    raise ComponentStateError(
                        component.serial_number, component.status, "has no warehouse assigned"
                    )
                self._registry.transition(
                    component,
                    ComponentStatus.PICKED_UP,
                    warehouse_id=None,
                    current_holder_id=picked_up_by_tech_id,
                )
                self._stocks.apply_delta(
                    uow,
                    stocks[reservation.stock_id],
                    delta_stock=-reservation.quantity_reserved,
                    delta_reserved=-reservation.quantity_reserved,
                )
                reservation.status = ReservationStatus.PICKED_UP.value
                reservation.picked_up_by_tech_id = picked_up_by_tech_id
                reservation.picked_up_at = now
                reservation.status_changed_at = now
                if reservation.case_line_id is not None:
                    case_line_ids.append(reservation.case_line_id)

        uow.session.flush()
        if case_line_ids:
            self._case_lines.bulk_update_status_by_ids(
                uow.session, list(dict.fromkeys(case_line_ids)), CaseLineStatus.IN_REPAIR.value
            )

        logger.info(
            "reservations_picked_up",
            extra={
                "reservation_ids": [str(r.id) for r in reservations],
                "picked_up_by_tech_id": str(picked_up_by_tech_id),
            },
        )
        self._alert_low_stock(uow, stocks.keys())
        return [reservation.to_dto() for reservation in reservations]

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    def install(self, uow: UnitOfWork, reservation_id: UUID) -> ReservationView:
        """
        Fit a picked-up unit to the case line's vehicle.

        When the vehicle carries an active warranted unit of the same type,
        that unit must be INSTALLED; it becomes REMOVED and its serial is
        kept on the reservation as ``old_component_serial``.
        """
        rows = lock_rows(uow, Reservation, [reservation_id])
        if not rows:
            raise ReservationNotFoundError(str(reservation_id))
        reservation = rows[0]
        LogContext.set(reservation_id=str(reservation.id))

        ensure_status(
            "Reservation",
            reservation.id,
            reservation.status,
            sources_of(RESERVATION_TRANSITIONS, ReservationStatus.INSTALLED),
            "install",
        )
        if reservation.case_line_id is None or reservation.component_id is None:
            raise BadRequestError(
                "reservation_id", f"reservation {reservation.id} is not a case-line reservation"
            )

        vin = self._case_lines.get_vehicle_vin(uow.session, reservation.case_line_id)
        if not vin:
            raise CaseLineNotFoundError(
                str(reservation.case_line_id), reason="Vehicle not found for case line"
            )
        warranty_count = self._case_lines.count_warranty_by_type_component(
            uow.session, reservation.case_line_id, reservation.type_component_id
        )

        old = None
        if warranty_count > 0:
            old = self._registry.find_on_vehicle(
                uow, vin, reservation.type_component_id, exclude_id=reservation.component_id
            )
            if old is None:
                raise ComponentNotFoundError(
                    [f"installed {reservation.type_component_id} on vehicle {vin}"]
                )

        wanted = [reservation.component_id] + ([old.id] if old is not None else [])
        components = self._registry.lock_by_ids(uow, wanted)
        new = components[reservation.component_id]
        now = self._clock.now()

        if old is not None:
            old = components[old.id]
            if old.status != ComponentStatus.INSTALLED.value:
                raise ComponentStateError(
                    old.serial_number, old.status, "old component is not installed"
                )
            self._registry.transition(old, ComponentStatus.REMOVED, removed_at=now)
            reservation.old_component_serial = old.serial_number

        self._registry.transition(
            new,
            ComponentStatus.INSTALLED,
            vehicle_vin=vin,
            installed_at=now,
            current_holder_id=None,
        )
        reservation.status = ReservationStatus.INSTALLED.value
        reservation.installed_at = now
        reservation.status_changed_at = now
        uow.session.flush()

        logger.info(
            "component_installed",
            extra={
                "reservation_id": str(reservation.id),
                "serial_number": new.serial_number,
                "vehicle_vin": vin,
                "old_component_serial": reservation.old_component_serial,
            },
        )
        return reservation.to_dto()

    # ------------------------------------------------------------------
    # Cancel / release
    # ------------------------------------------------------------------

    def cancel(self, uow: UnitOfWork, reservation_ids: Sequence[UUID]) -> list[ReservationView]:
        """Withdraw RESERVED reservations; their units return to the shelf."""
        return self._return_to_shelf(uow, reservation_ids, ReservationStatus.CANCELLED)

    def release(self, uow: UnitOfWork, reservation_ids: Sequence[UUID]) -> list[ReservationView]:
        """Release RESERVED reservations that are no longer needed."""
        return self._return_to_shelf(uow, reservation_ids, ReservationStatus.RELEASED)

    def reservations_for_case_line(self, uow: UnitOfWork, case_line_id: UUID) -> list[UUID]:
        stmt = (
            select(Reservation.id)
            .where(
                Reservation.case_line_id == case_line_id,
                Reservation.status == ReservationStatus.RESERVED.value,
            )
            .order_by(Reservation.id)
        )
        return list(uow.session.scalars(stmt))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _return_to_shelf(
        self,
        uow: UnitOfWork,
        reservation_ids: Sequence[UUID],
        target: ReservationStatus,
    ) -> list[ReservationView]:
        ids = list(dict.fromkeys(reservation_ids))
        if not ids:
            raise BadRequestError("reservation_ids", "must not be empty")

        reservations, stocks, components = self._lock_batch(uow, ids)
        allowed = sources_of(RESERVATION_TRANSITIONS, target)
        now = self._clock.now()

        for reservation in reservations:
            ensure_status(
                "Reservation", reservation.id, reservation.status, allowed, target.value.lower()
            )
            self._registry.transition(
                components[reservation.component_id], ComponentStatus.IN_STOCK
            )
            self._stocks.apply_delta(
                uow,
                stocks[reservation.stock_id],
                delta_reserved=-reservation.quantity_reserved,
            )
            reservation.status = target.value
            reservation.status_changed_at = now

        uow.session.flush()
        logger.info(
            "reservations_returned_to_shelf",
            extra={
                "reservation_ids": [str(r.id) for r in reservations],
                "status": target.value,
            },
        )
        return [reservation.to_dto() for reservation in reservations]

    def _lock_batch(self, uow: UnitOfWork, ids: Iterable[UUID]):
        """
        Lock a batch of reservations with their stocks and components.

        A plain read first learns which stocks and components are involved,
        then everything is locked in the canonical order and re-read.
        """
        ids = list(ids)
        preview = {
            r.id: r
            for r in uow.session.scalars(select(Reservation).where(Reservation.id.in_(ids)))
        }
        missing = [i for i in ids if i not in preview]
        if missing:
            raise ReservationNotFoundError(str(missing[0]))
        owned = [r for r in preview.values() if r.request_id is not None]
        if owned:
            raise ReservationOwnedByRequestError(str(owned[0].id), str(owned[0].request_id))
        unbound = [r for r in preview.values() if r.component_id is None]
        if unbound:
            raise BadRequestError(
                "reservation_ids", f"reservation {unbound[0].id} is not bound to a component"
            )

        stocks = self._stocks.lock_stocks(uow, {r.stock_id for r in preview.values()})
        reservations = lock_rows(uow, Reservation, ids)
        components = self._registry.lock_by_ids(uow, {r.component_id for r in reservations})
        return reservations, stocks, components

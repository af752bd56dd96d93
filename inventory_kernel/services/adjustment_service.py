"""
AdjustmentLedger (``inventory_kernel.services.adjustment_service``).

Responsibility
--------------
Manual IN/OUT stock corrections.  Each call locks the stock row, moves
components, applies the stock delta and writes one immutable
``InventoryAdjustment`` in the same unit of work.

- **IN**: the caller lists new serial numbers.  Any serial that already
  exists (or repeats within the list) rejects the whole adjustment.  One
  IN_STOCK component is created per serial and ``quantity_in_stock``
  grows by the count.
- **OUT**: models physical loss or damage, not allocation.  The caller
  names concrete serials or just a quantity; the quantity may not exceed
  ``quantity_available`` (reserved units are untouchable).  Named serials
  must be IN_STOCK in this stock's warehouse and type; a bare quantity
  retires the earliest-created IN_STOCK units.  Retired units become
  REMOVED and ``quantity_in_stock`` shrinks by the count.

Invariants
----------
- The stock row stays locked (FOR UPDATE) for the whole transaction, the
  same lock approval takes, so an OUT adjustment cannot interleave with a
  concurrent allocation on that stock.
- No component, delta or ledger entry is written unless every check passed.

Side effects (post-commit)
--------------------------
- ``inventory_adjustment_created`` to the owning coordinator room: the
  company coordinator for a company warehouse, otherwise the service
  center coordinator.
- Low-stock alert scan for every adjusted stock.
"""

from collections import Counter
from typing import Mapping, Sequence
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.db.unit_of_work import UnitOfWork
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.collaborators import NotificationDispatcher
from inventory_kernel.domain.dtos import AdjustmentOutcome
from inventory_kernel.domain.notifications import INVENTORY_ADJUSTMENT_CREATED, RoomDirectory
from inventory_kernel.domain.scope import ActorContext
from inventory_kernel.domain.statuses import AdjustmentType, ComponentStatus
from inventory_kernel.exceptions import (
    BadRequestError,
    ComponentShortageError,
    ComponentStateError,
    DuplicateSerialError,
    InsufficientStockError,
    StockNotFoundError,
    TypeComponentNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.adjustment import InventoryAdjustment
from inventory_kernel.models.stock import Stock
from inventory_kernel.models.warehouse import TypeComponent
from inventory_kernel.services.base import NotifyingService
from inventory_kernel.services.component_registry import ComponentRegistry
from inventory_kernel.services.low_stock_alerts import LowStockAlertEngine
from inventory_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.adjustment_service")


class AdjustmentLedger(NotifyingService):
    """
    Append-only IN/OUT corrections over StockLedger and ComponentRegistry.

    Contract
    --------
    ``create_adjustment`` and ``create_bulk_adjustments`` flush but never
    commit.  They queue notifications on the unit of work.
    """

    def __init__(
        self,
        stock_ledger: StockLedger,
        registry: ComponentRegistry,
        dispatcher: NotificationDispatcher,
        rooms: RoomDirectory | None = None,
        alerts: LowStockAlertEngine | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(dispatcher, rooms, alerts, clock)
        self._stocks = stock_ledger
        self._registry = registry

    def create_adjustment(
        self,
        uow: UnitOfWork,
        *,
        stock_id: UUID,
        adjustment_type: AdjustmentType | str,
        reason: str,
        actor: ActorContext,
        serial_numbers: Sequence[str] | None = None,
        quantity: int | None = None,
        note: str | None = None,
    ) -> AdjustmentOutcome:
        """
        Record one IN or OUT adjustment against a stock.

        Raises:
            StockNotFoundError: Unknown stock.
            BadRequestError: Missing serials (IN) or quantity (OUT), bad type.
            DuplicateSerialError: IN with a serial that already exists.
            InsufficientStockError: OUT beyond ``quantity_available``.
            ComponentNotFoundError / ComponentStateError: OUT naming serials
                that are unknown or not IN_STOCK in this stock.
            ComponentShortageError: OUT by quantity with too few units on the shelf.
        """
        stock = self._stocks.get_stock(uow, stock_id, lock=True)
        outcome = self._perform(
            uow,
            stock=stock,
            adjustment_type=adjustment_type,
            reason=reason,
            actor=actor,
            serial_numbers=serial_numbers,
            quantity=quantity,
            note=note,
        )
        self._alert_low_stock(uow, [stock.id])
        return outcome

    def create_bulk_adjustments(
        self,
        uow: UnitOfWork,
        *,
        warehouse_id: UUID,
        adjustment_type: AdjustmentType | str,
        components_by_sku: Mapping[str, Sequence[str]],
        reason: str,
        actor: ActorContext,
        note: str | None = None,
    ) -> list[AdjustmentOutcome]:
        """
        One adjustment per SKU in a single warehouse, all or nothing.

        Every SKU must resolve to a type component that already has a stock
        row in the warehouse.  Stocks are locked up front in id order.
        """
        if not components_by_sku:
            raise BadRequestError("components_by_sku", "must name at least one SKU")

        skus = list(components_by_sku)
        type_components = {
            tc.sku: tc
            for tc in uow.session.scalars(
                select(TypeComponent).where(TypeComponent.sku.in_(skus))
            )
        }
        unknown = [sku for sku in skus if sku not in type_components]
        if unknown:
            raise TypeComponentNotFoundError(unknown)

        stock_ids: dict[str, UUID] = {}
        for sku in skus:
            stock = self._stocks.find_stock(uow, warehouse_id, type_components[sku].id)
            if stock is None:
                raise StockNotFoundError(
                    warehouse_id=str(warehouse_id),
                    type_component_id=str(type_components[sku].id),
                )
            stock_ids[sku] = stock.id

        locked = self._stocks.lock_stocks(uow, stock_ids.values())

        outcomes = [
            self._perform(
                uow,
                stock=locked[stock_ids[sku]],
                adjustment_type=adjustment_type,
                reason=reason,
                actor=actor,
                serial_numbers=components_by_sku[sku],
                note=note,
            )
            for sku in skus
        ]
        self._alert_low_stock(uow, stock_ids.values())
        return outcomes

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _perform(
        self,
        uow: UnitOfWork,
        *,
        stock: Stock,
        adjustment_type: AdjustmentType | str,
        reason: str,
        actor: ActorContext,
        serial_numbers: Sequence[str] | None = None,
        quantity: int | None = None,
        note: str | None = None,
    ) -> AdjustmentOutcome:
        try:
            kind = AdjustmentType(adjustment_type)
        except ValueError:
            raise BadRequestError("adjustment_type", f"unknown type {adjustment_type!r}") from None
        if not reason:
            raise BadRequestError("reason", "is required")

        with LogContext.bind(stock_id=stock.id, actor_id=actor.user_id):
            if kind is AdjustmentType.IN:
                components = self._receive_serials(uow, stock, serial_numbers, actor)
                delta = len(components)
            else:
                components = self._retire_units(uow, stock, serial_numbers, quantity)
                delta = -len(components)

            self._stocks.apply_delta(uow, stock, delta_stock=delta)

            adjustment = InventoryAdjustment(
                stock_id=stock.id,
                adjustment_type=kind.value,
                quantity=len(components),
                reason=reason,
                note=note,
                adjusted_by_user_id=actor.user_id,
                adjusted_at=self._clock.now(),
                serial_numbers=sorted(c.serial_number for c in components),
                created_by_id=actor.user_id,
                created_at=self._clock.now(),
            )
            uow.session.add(adjustment)
            uow.session.flush()

            logger.info(
                "inventory_adjustment_created",
                extra={
                    "adjustment_id": str(adjustment.id),
                    "adjustment_type": kind.value,
                    "quantity": adjustment.quantity,
                    "reason": reason,
                },
            )

        self._notify_adjustment(uow, stock, adjustment)
        return AdjustmentOutcome(
            adjustment=adjustment.to_dto(),
            stock=stock.to_dto(),
            components=tuple(c.to_dto() for c in components),
        )

    def _receive_serials(self, uow, stock, serial_numbers, actor):
        serials = [s.strip() for s in (serial_numbers or []) if s and s.strip()]
        if not serials:
            raise BadRequestError("serial_numbers", "components list cannot be empty")

        repeated = sorted(serial for serial, n in Counter(serials).items() if n > 1)
        if repeated:
            raise DuplicateSerialError(repeated)
        existing = self._registry.existing_serials(uow, serials)
        if existing:
            logger.warning("duplicate_serials_rejected", extra={"serial_numbers": existing})
            raise DuplicateSerialError(existing)

        return self._registry.create_components(
            uow,
            serials,
            warehouse_id=stock.warehouse_id,
            type_component_id=stock.type_component_id,
            actor_id=actor.user_id,
        )

    def _retire_units(self, uow, stock, serial_numbers, quantity):
        if serial_numbers:
            requested = len(set(serial_numbers))
        elif quantity is not None and quantity > 0:
            requested = quantity
        else:
            raise BadRequestError("quantity", "OUT needs serial numbers or a positive quantity")

        if stock.quantity_available < requested:
            raise InsufficientStockError(
                type_component_id=str(stock.type_component_id),
                requested=requested,
                available=stock.quantity_available,
                stock_id=str(stock.id),
            )

        if serial_numbers:
            components = self._registry.lock_by_serials(uow, serial_numbers)
            for component in components:
                if (
                    component.warehouse_id != stock.warehouse_id
                    or component.type_component_id != stock.type_component_id
                ):
                    raise ComponentStateError(
                        component.serial_number, component.status, "not held by this stock"
                    )
                if component.status != ComponentStatus.IN_STOCK.value:
                    raise ComponentStateError(
                        component.serial_number, component.status, "not in stock"
                    )
        else:
            components = self._registry.lock_available(
                uow, stock.warehouse_id, stock.type_component_id, limit=requested
            )
            if len(components) < requested:
                raise ComponentShortageError(
                    warehouse_id=str(stock.warehouse_id),
                    type_component_id=str(stock.type_component_id),
                    required=requested,
                    found=len(components),
                )

        now = self._clock.now()
        for component in components:
            self._registry.transition(component, ComponentStatus.REMOVED, removed_at=now)
        uow.session.flush()
        return components

    def _notify_adjustment(self, uow, stock: Stock, adjustment: InventoryAdjustment) -> None:
        warehouse = stock.warehouse
        if warehouse.service_center_id is None and warehouse.vehicle_company_id is not None:
            room = self._rooms.company_coordinator(warehouse.vehicle_company_id)
        elif warehouse.service_center_id is not None:
            room = self._rooms.service_center_coordinator(warehouse.service_center_id)
        else:
            return

        added = adjustment.adjustment_type == AdjustmentType.IN.value
        payload = {
            "type": "system_alert",
            "priority": "medium",
            "title": f"Inventory {'Added' if added else 'Removed'}",
            "message": (
                f"{adjustment.quantity} item(s) "
                f"{'added to' if added else 'removed from'} inventory. "
                f"Reason: {adjustment.reason}"
            ),
            "timestamp": adjustment.adjusted_at.isoformat(),
            "data": {
                "adjustment_id": str(adjustment.id),
                "stock_id": str(stock.id),
                "adjustment_type": adjustment.adjustment_type,
                "quantity": adjustment.quantity,
                "reason": adjustment.reason,
                "quantity_in_stock": stock.quantity_in_stock,
                "quantity_available": stock.quantity_available,
                "navigation_action": "inventory",
            },
        }
        self._notify(uow, [room], INVENTORY_ADJUSTMENT_CREATED, payload)

"""
StockTransferWorkflow -- request-level state machine for moving stock.

Responsibility:
    Carry a stock transfer request (restock or per-case-line) through
    approval, shipment and receipt, driving StockLedger and
    ComponentRegistry at each step.

State machine::

    PENDING_APPROVAL --> APPROVED --> SHIPPED --> RECEIVED
          |                 |
          +--> REJECTED     |
          +--> CANCELLED <--+

    The requesting party may cancel only while PENDING_APPROVAL; the
    fulfilling party may also cancel an APPROVED request, which releases
    its reservations.

Stock effects:
    approve   delta_reserved = +n on each allocated source stock
    ship      delta_stock = -n, delta_reserved = -n on each source stock;
              the units go IN_TRANSIT tagged with the request id
    receive   delta_stock = +count on the destination stock (created lazily)
    cancel    delta_reserved = -n for every still-RESERVED reservation

Invariants enforced:
    - One unit of work per call; any failure leaves no partial write.
    - Approval pre-checks total availability for every item before it
      allocates anything, so a shortfall on one item reserves nothing for
      any item.
    - Lock order: request -> items -> stocks -> reservations -> components.

Side effects (post-commit):
    - Room notifications per transition (see each method).
    - Low-stock alert scan wherever source availability dropped.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.db.unit_of_work import UnitOfWork
from inventory_kernel.domain.allocation import allocate, order_candidates, total_available
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.collaborators import CaseLineGateway, NotificationDispatcher
from inventory_kernel.domain.dtos import ApproveOutcome, TransferRequestView
from inventory_kernel.domain.notifications import (
    NEW_STOCK_TRANSFER_REQUEST,
    STOCK_TRANSFER_REQUEST_APPROVED,
    STOCK_TRANSFER_REQUEST_CANCELLED,
    STOCK_TRANSFER_REQUEST_RECEIVED,
    STOCK_TRANSFER_REQUEST_REJECTED,
    STOCK_TRANSFER_REQUEST_SHIPPED,
    RoomDirectory,
)
from inventory_kernel.domain.scope import ActorContext, RoleDirectory, TransferParty
from inventory_kernel.domain.statuses import (
    TRANSFER_TRANSITIONS,
    CaseLineStatus,
    ComponentStatus,
    RequestType,
    ReservationStatus,
    TransferStatus,
    ensure_status,
    sources_of,
)
from inventory_kernel.exceptions import (
    BadRequestError,
    ComponentShortageError,
    EmptyTransferRequestError,
    ForbiddenError,
    InsufficientStockError,
    RequestTypeMismatchError,
    TransferRequestNotFoundError,
    TypeComponentNotFoundError,
    WarehouseNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.component import Component
from inventory_kernel.models.reservation import Reservation
from inventory_kernel.models.transfer import StockTransferRequest, StockTransferRequestItem
from inventory_kernel.models.warehouse import TypeComponent, Warehouse
from inventory_kernel.services.base import NotifyingService, lock_rows
from inventory_kernel.services.component_registry import ComponentRegistry
from inventory_kernel.services.low_stock_alerts import LowStockAlertEngine
from inventory_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.transfer_service")

# Statuses each party may cancel from.
CANCELLABLE_BY: dict[TransferParty, tuple[TransferStatus, ...]] = {
    TransferParty.REQUESTER: (TransferStatus.PENDING_APPROVAL,),
    TransferParty.FULFILLER: (TransferStatus.PENDING_APPROVAL, TransferStatus.APPROVED),
}


@dataclass(frozen=True)
class TransferLine:
    """
    One requested line.

    Restock lines name the component type by ``sku``; case-line lines carry
    ``type_component_id`` and the ``case_line_id`` they are for.
    """

    quantity_requested: int
    type_component_id: UUID | None = None
    sku: str | None = None
    case_line_id: UUID | None = None


class StockTransferWorkflow(NotifyingService):
    """
    Drives a stock transfer request from PENDING_APPROVAL to a terminal status.

    Contract
    --------
    Each transition locks the request first, then its items, stocks,
    reservations and components, flushes, and queues its room
    notification on the unit of work.  Nothing is committed here.

    Guarantees:
        - Approval reserves for every item or for none.
        - Units shipped equal units reserved; units received equal units
          shipped.
        - Case-line statuses change in the same unit of work as the request.
    """

    def __init__(
        self,
        stock_ledger: StockLedger,
        registry: ComponentRegistry,
        case_lines: CaseLineGateway,
        dispatcher: NotificationDispatcher,
        rooms: RoomDirectory | None = None,
        alerts: LowStockAlertEngine | None = None,
        roles: RoleDirectory | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(dispatcher, rooms, alerts, clock)
        self._stocks = stock_ledger
        self._registry = registry
        self._case_lines = case_lines
        self._roles = roles or RoleDirectory()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        uow: UnitOfWork,
        *,
        requesting_warehouse_id: UUID,
        items: Sequence[TransferLine],
        request_type: RequestType | str,
        actor: ActorContext,
    ) -> TransferRequestView:
        """
        Open a PENDING_APPROVAL request.

        A CASELINE request moves every case line it names to
        WAITING_FOR_PARTS in the same unit of work.

        Raises:
            BadRequestError: No items, non-positive quantity, or a line
                missing the field its request type needs.
            WarehouseNotFoundError: Unknown requesting warehouse.
            TypeComponentNotFoundError: Restock SKUs or case-line type ids
                that do not exist, all of them listed.
        """
        try:
            kind = RequestType(request_type)
        except ValueError:
            raise BadRequestError("request_type", f"unknown type {request_type!r}") from None
        if not items:
            raise BadRequestError("items", "must contain at least one item")
        for line in items:
            if line.quantity_requested <= 0:
                raise BadRequestError("quantity_requested", "must be positive")

        warehouse = uow.session.get(Warehouse, requesting_warehouse_id)
        if warehouse is None:
            raise WarehouseNotFoundError(str(requesting_warehouse_id))

        if kind is RequestType.WAREHOUSE_RESTOCK:
            type_ids = self._resolve_skus(uow, items)
            case_line_ids: list[UUID] = []
        else:
            for line in items:
                if line.type_component_id is None or line.case_line_id is None:
                    raise BadRequestError(
                        "items", "case-line items need type_component_id and case_line_id"
                    )
            type_ids = self._check_type_ids(uow, [line.type_component_id for line in items])
            case_line_ids = list(dict.fromkeys(line.case_line_id for line in items))

        now = self._clock.now()
        request = StockTransferRequest(
            request_type=kind.value,
            status=TransferStatus.PENDING_APPROVAL.value,
            requesting_warehouse_id=warehouse.id,
            requested_by_user_id=actor.user_id,
            requested_at=now,
            created_by_id=actor.user_id,
            created_at=now,
        )
        uow.session.add(request)
        uow.session.flush()

        for line_number, (line, type_id) in enumerate(zip(items, type_ids), start=1):
            uow.session.add(
                StockTransferRequestItem(
                    request_id=request.id,
                    line_number=line_number,
                    type_component_id=type_id,
                    quantity_requested=line.quantity_requested,
                    case_line_id=line.case_line_id if kind is RequestType.CASELINE else None,
                    created_by_id=actor.user_id,
                    created_at=now,
                )
            )
        uow.session.flush()
        uow.session.refresh(request, ["items"])

        if case_line_ids:
            self._case_lines.bulk_update_status_by_ids(
                uow.session, case_line_ids, CaseLineStatus.WAITING_FOR_PARTS.value
            )

        logger.info(
            "transfer_request_created",
            extra={
                "request_id": str(request.id),
                "request_type": kind.value,
                "requesting_warehouse_id": str(warehouse.id),
                "item_count": len(items),
            },
        )

        if warehouse.vehicle_company_id is not None:
            self._notify(
                uow,
                [self._rooms.emv_staff(warehouse.vehicle_company_id)],
                NEW_STOCK_TRANSFER_REQUEST,
                self._payload(request, "New Stock Transfer Request", "medium"),
            )
        return request.to_dto()

    # ------------------------------------------------------------------
    # Approve
    # ------------------------------------------------------------------

    def approve(
        self,
        uow: UnitOfWork,
        request_id: UUID,
        actor: ActorContext,
        expected_type: RequestType | None = None,
    ) -> ApproveOutcome:
        """
        Allocate stock for every item and move the request to APPROVED.

        Candidate stocks are the warehouses of the fulfilling company (the
        approver's, else the requesting warehouse's) holding the item's type,
        company-owned warehouses first, then by warehouse id.  The requesting
        warehouse never supplies itself.

        Raises:
            RequestTypeMismatchError: ``expected_type`` given and different.
            ForbiddenError: No company to fulfil from.
            InvalidStatusTransitionError: Request not PENDING_APPROVAL.
            EmptyTransferRequestError: Request without items.
            InsufficientStockError: Some type is short across all candidates;
                nothing is reserved for any item.
        """
        request = self._lock_request(uow, request_id)
        if expected_type is not None and request.request_type != RequestType(expected_type).value:
            raise RequestTypeMismatchError(
                str(request.id), request.request_type, RequestType(expected_type).value
            )
        self._ensure(request, TransferStatus.APPROVED, "approve")

        items = self._lock_items(uow, request)
        if not items:
            raise EmptyTransferRequestError(str(request.id), "request has no items")

        warehouse = request.requesting_warehouse
        company_id = actor.company_id or warehouse.vehicle_company_id
        if company_id is None:
            raise ForbiddenError(
                actor.role_name, "approve", "neither approver nor warehouse belongs to a company"
            )
        pairs = self._stocks.lock_candidates(
            uow,
            [item.type_component_id for item in items],
            company_id=company_id,
            exclude_warehouse_id=warehouse.id,
        )
        stocks = {stock.id: stock for stock, _ in pairs}
        candidates_by_type = defaultdict(list)
        for _, candidate in pairs:
            candidates_by_type[candidate.type_component_id].append(candidate)
        for type_id in candidates_by_type:
            candidates_by_type[type_id] = order_candidates(candidates_by_type[type_id])

        requested_by_type: dict[UUID, int] = defaultdict(int)
        for item in items:
            requested_by_type[item.type_component_id] += item.quantity_requested
        for type_id, requested in requested_by_type.items():
            available = total_available(candidates_by_type[type_id])
            if available < requested:
                logger.warning(
                    "transfer_approval_short",
                    extra={
                        "request_id": str(request.id),
                        "type_component_id": str(type_id),
                        "requested": requested,
                        "available": available,
                    },
                )
                raise InsufficientStockError(
                    type_component_id=str(type_id),
                    requested=requested,
                    available=available,
                )

        plan = []
        for item in items:
            allocations = allocate(
                item.type_component_id,
                item.quantity_requested,
                candidates_by_type[item.type_component_id],
            )
            plan.extend(allocations)
            logger.info(
                "allocation_computed",
                extra={
                    "request_id": str(request.id),
                    "type_component_id": str(item.type_component_id),
                    "requested": item.quantity_requested,
                    "allocations": [
                        {"stock_id": str(a.stock_id), "quantity": a.quantity_reserved}
                        for a in allocations
                    ],
                },
            )

        now = self._clock.now()
        reservations = [
            Reservation(
                stock_id=allocation.stock_id,
                type_component_id=allocation.type_component_id,
                request_id=request.id,
                quantity_reserved=allocation.quantity_reserved,
                status=ReservationStatus.RESERVED.value,
                status_changed_at=now,
                created_by_id=actor.user_id,
                created_at=now,
            )
            for allocation in plan
        ]
        uow.session.add_all(reservations)

        reserved_by_stock: dict[UUID, int] = defaultdict(int)
        for allocation in plan:
            reserved_by_stock[allocation.stock_id] += allocation.quantity_reserved
        touched = sorted(reserved_by_stock, key=str)
        for stock_id in touched:
            self._stocks.apply_delta(
                uow, stocks[stock_id], delta_reserved=reserved_by_stock[stock_id]
            )

        request.status = TransferStatus.APPROVED.value
        request.approved_by_user_id = actor.user_id
        request.approved_at = now
        uow.session.flush()

        logger.info(
            "transfer_request_approved",
            extra={
                "request_id": str(request.id),
                "reservation_count": len(reservations),
                "stock_ids": [str(s) for s in touched],
            },
        )

        self._notify(
            uow,
            [self._coordinator_room(warehouse, company_id)],
            STOCK_TRANSFER_REQUEST_APPROVED,
            self._payload(request, "Stock Transfer Request Approved", "medium"),
        )
        self._alert_low_stock(uow, touched)
        return ApproveOutcome(
            request=request.to_dto(),
            reservations=tuple(r.to_dto() for r in reservations),
            touched_stock_ids=tuple(touched),
        )

    # ------------------------------------------------------------------
    # Ship
    # ------------------------------------------------------------------

    def ship(
        self,
        uow: UnitOfWork,
        request_id: UUID,
        actor: ActorContext,
        estimated_delivery_date: datetime | None = None,
    ) -> TransferRequestView:
        """
        Send the reserved units on their way.

        For each source stock the earliest-created IN_STOCK units matching
        the reserved quantity go IN_TRANSIT tagged with the request.

        Raises:
            InvalidStatusTransitionError: Request not APPROVED.
            EmptyTransferRequestError: No RESERVED reservation under the request.
            ComponentShortageError: Fewer physical units than reserved.
        """
        request = self._lock_request(uow, request_id)
        self._ensure(request, TransferStatus.SHIPPED, "ship")
        self._lock_items(uow, request)

        reservations, stocks = self._lock_reservations(uow, request)
        if not reservations:
            raise EmptyTransferRequestError(str(request.id), "no reserved stock to ship")

        quantity_by_stock: dict[UUID, int] = defaultdict(int)
        for reservation in reservations:
            quantity_by_stock[reservation.stock_id] += reservation.quantity_reserved

        stock_ids = sorted(quantity_by_stock, key=str)
        shipped = 0
        for stock_id in stock_ids:
            stock = stocks[stock_id]
            quantity = quantity_by_stock[stock_id]
            components = self._registry.lock_available(
                uow, stock.warehouse_id, stock.type_component_id, limit=quantity
            )
            if len(components) < quantity:
                raise ComponentShortageError(
                    warehouse_id=str(stock.warehouse_id),
                    type_component_id=str(stock.type_component_id),
                    required=quantity,
                    found=len(components),
                )
            for component in components:
                self._registry.transition(
                    component,
                    ComponentStatus.IN_TRANSIT,
                    warehouse_id=None,
                    request_id=request.id,
                )
            self._stocks.apply_delta(
                uow, stock, delta_stock=-quantity, delta_reserved=-quantity
            )
            shipped += quantity

        now = self._clock.now()
        for reservation in reservations:
            reservation.status = ReservationStatus.SHIPPED.value
            reservation.status_changed_at = now

        request.status = TransferStatus.SHIPPED.value
        request.shipped_at = now
        request.estimated_delivery_date = estimated_delivery_date
        uow.session.flush()

        logger.info(
            "transfer_request_shipped",
            extra={
                "request_id": str(request.id),
                "quantity": shipped,
                "stock_ids": [str(s) for s in stock_ids],
            },
        )

        warehouse = request.requesting_warehouse
        rooms = []
        if warehouse.service_center_id is not None:
            rooms = [
                self._rooms.service_center_staff(warehouse.service_center_id),
                self._rooms.service_center_manager(warehouse.service_center_id),
                self._rooms.service_center_coordinator(warehouse.service_center_id),
            ]
        payload = self._payload(request, "Stock Transfer Request Shipped", "medium")
        payload["data"]["estimated_delivery_date"] = (
            estimated_delivery_date.isoformat() if estimated_delivery_date else None
        )
        self._notify(uow, rooms, STOCK_TRANSFER_REQUEST_SHIPPED, payload)
        self._alert_low_stock(uow, stock_ids)
        return request.to_dto()

    # ------------------------------------------------------------------
    # Receive
    # ------------------------------------------------------------------

    def receive(self, uow: UnitOfWork, request_id: UUID, actor: ActorContext) -> TransferRequestView:
        """
        Book the in-transit units into the requesting warehouse.

        Destination stocks are found or created per component type.  A
        CASELINE request moves its case lines to PARTS_AVAILABLE.
        """
        request = self._lock_request(uow, request_id)
        self._ensure(request, TransferStatus.RECEIVED, "receive")
        self._lock_items(uow, request)
        destination = request.requesting_warehouse

        type_ids = sorted(
            set(
                uow.session.scalars(
                    select(Component.type_component_id).where(
                        Component.request_id == request.id,
                        Component.status == ComponentStatus.IN_TRANSIT.value,
                    )
                )
            ),
            key=str,
        )
        existing = {}
        for type_id in type_ids:
            stock = self._stocks.find_stock(uow, destination.id, type_id)
            if stock is not None:
                existing[type_id] = stock.id
        locked = self._stocks.lock_stocks(uow, existing.values())
        destination_stocks = {type_id: locked[stock_id] for type_id, stock_id in existing.items()}

        components = self._registry.lock_in_transit(uow, request.id)
        if not components:
            raise EmptyTransferRequestError(str(request.id), "no components in transit")

        by_type: dict[UUID, list] = defaultdict(list)
        for component in components:
            by_type[component.type_component_id].append(component)

        touched = []
        for type_id in sorted(by_type, key=str):
            stock = destination_stocks.get(type_id) or self._stocks.find_or_create(
                uow, destination.id, type_id, actor_id=actor.user_id
            )
            for component in by_type[type_id]:
                self._registry.transition(
                    component,
                    ComponentStatus.IN_STOCK,
                    warehouse_id=destination.id,
                    request_id=None,
                )
            self._stocks.apply_delta(uow, stock, delta_stock=len(by_type[type_id]))
            touched.append(stock.id)

        now = self._clock.now()
        request.status = TransferStatus.RECEIVED.value
        request.received_at = now
        uow.session.flush()

        case_line_ids = request.case_line_ids
        if request.request_type == RequestType.CASELINE.value and case_line_ids:
            self._case_lines.bulk_update_status_by_ids(
                uow.session, case_line_ids, CaseLineStatus.PARTS_AVAILABLE.value
            )

        logger.info(
            "transfer_request_received",
            extra={
                "request_id": str(request.id),
                "quantity": len(components),
                "stock_ids": [str(s) for s in touched],
            },
        )

        if destination.service_center_id is not None:
            payload = self._payload(request, "Stock Transfer Request Received", "medium")
            payload["data"]["case_line_ids"] = [str(c) for c in case_line_ids]
            self._notify(
                uow,
                [
                    self._rooms.service_center_staff(destination.service_center_id),
                    self._rooms.service_center_manager(destination.service_center_id),
                ],
                STOCK_TRANSFER_REQUEST_RECEIVED,
                payload,
            )
        return request.to_dto()

    # ------------------------------------------------------------------
    # Reject / cancel
    # ------------------------------------------------------------------

    def reject(
        self,
        uow: UnitOfWork,
        request_id: UUID,
        actor: ActorContext,
        reason: str,
    ) -> TransferRequestView:
        """Refuse a pending request; its case lines become REJECTED_BY_OEM."""
        if not reason:
            raise BadRequestError("reason", "is required")
        request = self._lock_request(uow, request_id)
        self._ensure(request, TransferStatus.REJECTED, "reject")

        now = self._clock.now()
        request.status = TransferStatus.REJECTED.value
        request.rejected_by_user_id = actor.user_id
        request.rejection_reason = reason
        request.rejected_at = now
        uow.session.flush()

        case_line_ids = request.case_line_ids
        if case_line_ids:
            self._case_lines.bulk_update_status_by_ids(
                uow.session, case_line_ids, CaseLineStatus.REJECTED_BY_OEM.value
            )

        logger.info(
            "transfer_request_rejected",
            extra={"request_id": str(request.id), "reason": reason},
        )

        warehouse = request.requesting_warehouse
        if warehouse.service_center_id is not None:
            payload = self._payload(request, "Stock Transfer Request Rejected", "high")
            payload["data"]["reason"] = reason
            self._notify(
                uow,
                [
                    self._rooms.service_center_staff(warehouse.service_center_id),
                    self._rooms.service_center_manager(warehouse.service_center_id),
                ],
                STOCK_TRANSFER_REQUEST_REJECTED,
                payload,
            )
        return request.to_dto()

    def cancel(
        self,
        uow: UnitOfWork,
        request_id: UUID,
        actor: ActorContext,
        reason: str | None = None,
    ) -> TransferRequestView:
        """
        Withdraw a request.

        The requesting party may cancel only a PENDING_APPROVAL request;
        the fulfilling party may also cancel an APPROVED one, in which case
        every RESERVED reservation becomes CANCELLED and its stock's
        reserved counter is given back.  Case lines keep their status.

        Raises:
            ForbiddenError: Actor's role is not a transfer party.
            InvalidStatusTransitionError: Status not cancellable by that party.
        """
        party = self._roles.resolve_party(actor)
        request = self._lock_request(uow, request_id)
        ensure_status(
            "StockTransferRequest",
            request.id,
            request.status,
            CANCELLABLE_BY[party],
            f"cancel as {party.value.lower()}",
        )
        self._lock_items(uow, request)

        released: list[UUID] = []
        if request.status == TransferStatus.APPROVED.value:
            reservations, stocks = self._lock_reservations(uow, request)
            now = self._clock.now()
            for reservation in reservations:
                self._stocks.apply_delta(
                    uow,
                    stocks[reservation.stock_id],
                    delta_reserved=-reservation.quantity_reserved,
                )
                reservation.status = ReservationStatus.CANCELLED.value
                reservation.status_changed_at = now
            released = sorted(stocks, key=str)

        request.status = TransferStatus.CANCELLED.value
        request.cancelled_by_user_id = actor.user_id
        request.cancellation_reason = reason
        request.cancelled_at = self._clock.now()
        uow.session.flush()

        logger.info(
            "transfer_request_cancelled",
            extra={
                "request_id": str(request.id),
                "party": party.value,
                "released_stock_ids": [str(s) for s in released],
            },
        )

        warehouse = request.requesting_warehouse
        if party is TransferParty.REQUESTER:
            rooms = (
                [self._rooms.emv_staff(warehouse.vehicle_company_id)]
                if warehouse.vehicle_company_id is not None
                else []
            )
        elif warehouse.service_center_id is not None:
            rooms = [
                self._rooms.service_center_staff(warehouse.service_center_id),
                self._rooms.service_center_manager(warehouse.service_center_id),
                self._rooms.service_center_coordinator(warehouse.service_center_id),
            ]
        else:
            rooms = []
        payload = self._payload(request, "Stock Transfer Request Cancelled", "medium")
        payload["data"]["reason"] = reason
        self._notify(uow, rooms, STOCK_TRANSFER_REQUEST_CANCELLED, payload)
        return request.to_dto()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_request(self, uow: UnitOfWork, request_id: UUID) -> StockTransferRequest:
        rows = lock_rows(uow, StockTransferRequest, [request_id])
        if not rows:
            raise TransferRequestNotFoundError(str(request_id))
        LogContext.set(request_id=str(rows[0].id))
        return rows[0]

    def _lock_items(self, uow: UnitOfWork, request: StockTransferRequest):
        item_ids = uow.session.scalars(
            select(StockTransferRequestItem.id).where(
                StockTransferRequestItem.request_id == request.id
            )
        )
        items = lock_rows(uow, StockTransferRequestItem, item_ids)
        return sorted(items, key=lambda item: item.line_number)

    def _lock_reservations(self, uow: UnitOfWork, request: StockTransferRequest):
        """RESERVED reservations of the request and their stocks, locked."""
        preview = list(
            uow.session.execute(
                select(Reservation.id, Reservation.stock_id).where(
                    Reservation.request_id == request.id,
                    Reservation.status == ReservationStatus.RESERVED.value,
                )
            )
        )
        stocks = self._stocks.lock_stocks(uow, {stock_id for _, stock_id in preview})
        reservations = [
            r
            for r in lock_rows(uow, Reservation, [rid for rid, _ in preview])
            if r.status == ReservationStatus.RESERVED.value
        ]
        return reservations, stocks

    def _ensure(self, request: StockTransferRequest, target: TransferStatus, action: str) -> None:
        ensure_status(
            "StockTransferRequest",
            request.id,
            request.status,
            sources_of(TRANSFER_TRANSITIONS, target),
            action,
        )

    def _resolve_skus(self, uow: UnitOfWork, items: Sequence[TransferLine]) -> list[UUID]:
        skus = [line.sku for line in items]
        if any(not sku for sku in skus):
            raise BadRequestError("items", "restock items need a sku")
        found = {
            tc.sku: tc.id
            for tc in uow.session.scalars(
                select(TypeComponent).where(TypeComponent.sku.in_(set(skus)))
            )
        }
        unknown = list(dict.fromkeys(sku for sku in skus if sku not in found))
        if unknown:
            raise TypeComponentNotFoundError(unknown)
        return [found[sku] for sku in skus]

    def _check_type_ids(self, uow: UnitOfWork, type_ids: list[UUID]) -> list[UUID]:
        stmt = select(TypeComponent.id).where(TypeComponent.id.in_(set(type_ids)))
        known = set(uow.session.scalars(stmt))
        unknown = list(dict.fromkeys(str(t) for t in type_ids if t not in known))
        if unknown:
            raise TypeComponentNotFoundError(unknown)
        return type_ids

    def _coordinator_room(self, warehouse: Warehouse, company_id: UUID) -> str:
        if warehouse.service_center_id is not None:
            return self._rooms.service_center_coordinator(warehouse.service_center_id)
        return self._rooms.company_coordinator(warehouse.vehicle_company_id or company_id)

    def _payload(self, request: StockTransferRequest, title: str, priority: str) -> dict[str, Any]:
        return {
            "type": "stock_transfer",
            "priority": priority,
            "title": title,
            "message": f"Request {request.id} is {request.status}",
            "timestamp": self._clock.now().isoformat(),
            "data": {
                "request_id": str(request.id),
                "request_type": request.request_type,
                "status": request.status,
                "requesting_warehouse_id": str(request.requesting_warehouse_id),
                "items": [
                    {
                        "type_component_id": str(item.type_component_id),
                        "quantity_requested": item.quantity_requested,
                        "case_line_id": str(item.case_line_id) if item.case_line_id else None,
                    }
                    for item in request.items
                ],
                "navigation_action": "stock_transfer_request",
            },
        }

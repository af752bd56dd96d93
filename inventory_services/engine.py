"""
inventory_services.engine -- InventoryEngine, the in-process entry point.

Responsibility:
    Builds every kernel service exactly once from one ``EngineConfig`` and
    runs each public operation in its own unit of work: commit on success,
    rollback on any error, post-commit notifications after the commit.

Architecture position:
    Services -- the outermost layer.  The API layer (out of scope here)
    calls these methods with the caller's ``ActorContext``.

Invariants enforced:
    - One transaction per write call; the kernel services only flush.
    - Reads open their own session, take no locks and never write.
    - Business errors are logged as ``guard_failure`` and re-raised
      unchanged.  ``InvariantViolation`` is logged as ``invariant_violation``
      instead, never as a guard failure, and propagates as the defect it is.

Usage:
    engine = InventoryEngine(get_session_factory(), case_lines=gateway)
    outcome = engine.approve_transfer(actor, request_id)
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Mapping, Sequence
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from inventory_config import get_active_config
from inventory_config.bridges import (
    build_page_defaults,
    build_role_directory,
    build_room_directory,
)
from inventory_config.schema import EngineConfig
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.db.unit_of_work import UnitOfWork, unit_of_work
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.collaborators import CaseLineGateway, NotificationDispatcher
from inventory_kernel.domain.dtos import (
    AdjustmentOutcome,
    AdjustmentView,
    ApproveOutcome,
    Page,
    ReservationView,
    StockHistory,
    StockSummaryRow,
    StockView,
    TransferRequestView,
)
from inventory_kernel.domain.notifications import Notification
from inventory_kernel.domain.scope import ActorContext
from inventory_kernel.domain.statuses import AdjustmentType, RequestType, TransferStatus
from inventory_kernel.exceptions import InvariantViolation, InventoryKernelError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.selectors import (
    AdjustmentFilter,
    AdjustmentSelector,
    HistorySelector,
    ReservationFilter,
    ReservationSelector,
    StockSelector,
    TransferSelector,
)
from inventory_kernel.services import (
    AdjustmentLedger,
    ComponentRegistry,
    LowStockAlertEngine,
    ReservationEngine,
    StockLedger,
    StockTransferWorkflow,
    TransferLine,
)
from inventory_services.notifications import LoggingNotificationDispatcher
from inventory_services.observability import (
    log_allocation_computed,
    log_guard_failure,
    log_invariant_violation,
    log_side_effect_failed,
)

logger = get_logger("services.engine")


class InventoryEngine:
    """
    Facade over the inventory kernel.

    Contract:
        Receives a session factory, a case-line gateway and optionally a
        config, dispatcher and clock.  Every write method commits exactly
        once or not at all.

    Non-goals:
        - Does NOT authenticate callers; ``actor`` is trusted input.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        case_lines: CaseLineGateway,
        config: EngineConfig | None = None,
        dispatcher: NotificationDispatcher | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or get_active_config()
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self.dispatcher = dispatcher or LoggingNotificationDispatcher()

        self.rooms = build_room_directory(self.config)
        self.roles = build_role_directory(self.config)
        self.paging = build_page_defaults(self.config)

        # --- Singletons, in dependency order ---
        self.alerts = LowStockAlertEngine(
            self.dispatcher,
            self.rooms,
            enabled=self.config.alerts.low_stock_enabled,
            priority=self.config.alerts.priority,
        )
        self.stock_ledger = StockLedger(self._clock)
        self.registry = ComponentRegistry(self._clock)
        self.adjustments = AdjustmentLedger(
            self.stock_ledger, self.registry, self.dispatcher, self.rooms, self.alerts, self._clock
        )
        self.reservations = ReservationEngine(
            self.stock_ledger,
            self.registry,
            case_lines,
            self.dispatcher,
            self.rooms,
            self.alerts,
            self._clock,
        )
        self.transfers = StockTransferWorkflow(
            self.stock_ledger,
            self.registry,
            case_lines,
            self.dispatcher,
            self.rooms,
            self.alerts,
            self.roles,
            self._clock,
        )

        register_immutability_listeners()

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(
        self, operation: str, actor: ActorContext | None = None
    ) -> Iterator[UnitOfWork]:
        with LogContext.bind(
            correlation_id=uuid4(),
            actor_id=actor.user_id if actor is not None else None,
        ):
            try:
                with unit_of_work(self._session_factory, log_side_effect_failed) as uow:
                    yield uow
            except InvariantViolation as exc:
                log_invariant_violation(operation=operation, stock_id=exc.stock_id)
                raise
            except InventoryKernelError as exc:
                log_guard_failure(operation=operation, exc_code=exc.code)
                raise
            finally:
                LogContext.clear()

    @contextmanager
    def _read(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        finally:
            session.rollback()
            session.close()

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------

    def adjust(
        self,
        actor: ActorContext,
        *,
        stock_id: UUID,
        adjustment_type: AdjustmentType | str,
        reason: str,
        serial_numbers: Sequence[str] | None = None,
        quantity: int | None = None,
        note: str | None = None,
    ) -> AdjustmentOutcome:
        with self._transaction("create_adjustment", actor) as uow:
            return self.adjustments.create_adjustment(
                uow,
                stock_id=stock_id,
                adjustment_type=adjustment_type,
                reason=reason,
                actor=actor,
                serial_numbers=serial_numbers,
                quantity=quantity,
                note=note,
            )

    def bulk_adjust(
        self,
        actor: ActorContext,
        *,
        warehouse_id: UUID,
        adjustment_type: AdjustmentType | str,
        components_by_sku: Mapping[str, Sequence[str]],
        reason: str,
        note: str | None = None,
    ) -> list[AdjustmentOutcome]:
        with self._transaction("create_bulk_adjustments", actor) as uow:
            return self.adjustments.create_bulk_adjustments(
                uow,
                warehouse_id=warehouse_id,
                adjustment_type=adjustment_type,
                components_by_sku=components_by_sku,
                reason=reason,
                actor=actor,
                note=note,
            )

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def reserve(
        self,
        actor: ActorContext,
        *,
        case_line_id: UUID,
        warehouse_id: UUID,
        type_component_id: UUID,
        quantity: int = 1,
    ) -> list[ReservationView]:
        with self._transaction("reserve", actor) as uow:
            return self.reservations.reserve(
                uow,
                case_line_id=case_line_id,
                warehouse_id=warehouse_id,
                type_component_id=type_component_id,
                quantity=quantity,
                actor_id=actor.user_id,
            )

    def pickup(
        self,
        actor: ActorContext,
        reservation_ids: Sequence[UUID],
        picked_up_by_tech_id: UUID | None = None,
    ) -> list[ReservationView]:
        with self._transaction("pickup", actor) as uow:
            return self.reservations.pickup(
                uow, reservation_ids, picked_up_by_tech_id or actor.user_id
            )

    def install(self, actor: ActorContext, reservation_id: UUID) -> ReservationView:
        with self._transaction("install", actor) as uow:
            return self.reservations.install(uow, reservation_id)

    def cancel_reservations(
        self, actor: ActorContext, reservation_ids: Sequence[UUID]
    ) -> list[ReservationView]:
        with self._transaction("cancel_reservations", actor) as uow:
            return self.reservations.cancel(uow, reservation_ids)

    def release_reservations(
        self, actor: ActorContext, reservation_ids: Sequence[UUID]
    ) -> list[ReservationView]:
        with self._transaction("release_reservations", actor) as uow:
            return self.reservations.release(uow, reservation_ids)

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def create_transfer(
        self,
        actor: ActorContext,
        *,
        requesting_warehouse_id: UUID,
        items: Sequence[TransferLine],
        request_type: RequestType | str,
    ) -> TransferRequestView:
        with self._transaction("create_transfer", actor) as uow:
            return self.transfers.create(
                uow,
                requesting_warehouse_id=requesting_warehouse_id,
                items=items,
                request_type=request_type,
                actor=actor,
            )

    def approve_transfer(
        self,
        actor: ActorContext,
        request_id: UUID,
        expected_type: RequestType | None = None,
    ) -> ApproveOutcome:
        started = time.perf_counter()
        with self._transaction("approve_transfer", actor) as uow:
            outcome = self.transfers.approve(uow, request_id, actor, expected_type)
        log_allocation_computed(
            request_id=str(request_id),
            reservation_count=len(outcome.reservations),
            stock_ids=[str(s) for s in outcome.touched_stock_ids],
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return outcome

    def ship_transfer(
        self,
        actor: ActorContext,
        request_id: UUID,
        estimated_delivery_date: datetime | None = None,
    ) -> TransferRequestView:
        with self._transaction("ship_transfer", actor) as uow:
            return self.transfers.ship(uow, request_id, actor, estimated_delivery_date)

    def receive_transfer(self, actor: ActorContext, request_id: UUID) -> TransferRequestView:
        with self._transaction("receive_transfer", actor) as uow:
            return self.transfers.receive(uow, request_id, actor)

    def reject_transfer(
        self, actor: ActorContext, request_id: UUID, reason: str
    ) -> TransferRequestView:
        with self._transaction("reject_transfer", actor) as uow:
            return self.transfers.reject(uow, request_id, actor, reason)

    def cancel_transfer(
        self, actor: ActorContext, request_id: UUID, reason: str | None = None
    ) -> TransferRequestView:
        with self._transaction("cancel_transfer", actor) as uow:
            return self.transfers.cancel(uow, request_id, actor, reason)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_stock(self, warehouse_id: UUID, type_component_id: UUID) -> StockView | None:
        with self._read() as session:
            return StockSelector(session, self.paging).find_by_warehouse_and_type(
                warehouse_id, type_component_id
            )

    def stock_summary(
        self, actor: ActorContext, service_center_id: UUID | None = None
    ) -> list[StockSummaryRow]:
        scope = self.roles.resolve_scope(actor, service_center_id)
        with self._read() as session:
            return StockSelector(session, self.paging).summary_by_warehouse_filter(scope)

    def list_stocks(
        self,
        actor: ActorContext,
        type_component_id: UUID | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page:
        scope = self.roles.resolve_scope(actor)
        with self._read() as session:
            return StockSelector(session, self.paging).list_type_components(
                scope, type_component_id, page, limit
            )

    def get_component_reservations(
        self,
        actor: ActorContext,
        filters: ReservationFilter | None = None,
        page: int | None = None,
        limit: int | None = None,
        sort_by: str = "created_at",
        sort_order: str = "DESC",
    ) -> Page:
        scope = self.roles.resolve_scope(actor)
        with self._read() as session:
            return ReservationSelector(session, self.paging).get_component_reservations(
                scope, filters, page, limit, sort_by, sort_order
            )

    def list_transfers(
        self,
        actor: ActorContext,
        status: TransferStatus | str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page:
        scope = self.roles.resolve_scope(actor)
        with self._read() as session:
            return TransferSelector(session, self.paging).list(scope, status, page, limit)

    def get_transfer(self, actor: ActorContext, request_id: UUID) -> TransferRequestView:
        scope = self.roles.resolve_scope(actor)
        with self._read() as session:
            return TransferSelector(session, self.paging).get(scope, request_id)

    def list_adjustments(
        self,
        actor: ActorContext,
        filters: AdjustmentFilter | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page:
        scope = self.roles.resolve_scope(actor)
        with self._read() as session:
            return AdjustmentSelector(session, self.paging).list(scope, filters, page, limit)

    def get_adjustment(self, actor: ActorContext, adjustment_id: UUID) -> AdjustmentView:
        scope = self.roles.resolve_scope(actor)
        with self._read() as session:
            return AdjustmentSelector(session, self.paging).get_by_id(scope, adjustment_id)

    def get_stock_history(
        self,
        actor: ActorContext,
        stock_id: UUID,
        page: int | None = None,
        limit: int | None = None,
    ) -> StockHistory:
        scope = self.roles.resolve_scope(actor)
        with self._read() as session:
            return HistorySelector(session, self.paging).get_stock_history(
                stock_id, page, limit, scope
            )

    def emit_low_stock_alerts(self, stock_ids: Sequence[UUID]) -> list[Notification]:
        """Re-run the low-stock scan on demand; read-only."""
        with self._read() as session:
            return self.alerts.emit_low_stock_alerts(session, stock_ids)

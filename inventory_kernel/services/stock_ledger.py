"""
StockLedger -- per-warehouse, per-type quantity counters.

Responsibility:
    The only code path that changes ``Stock.quantity_in_stock`` and
    ``Stock.quantity_reserved``.  Every caller holds a row lock on the
    stock for the rest of its unit of work before calling ``apply_delta``.

Invariants enforced:
    - 0 <= quantity_reserved <= quantity_in_stock after every delta.  A
      delta that would break this raises ``InvariantViolation`` and is
      logged at CRITICAL: callers validate availability first, so reaching
      it means a bug, not a user mistake.

Failure modes:
    - StockNotFoundError for unknown stock ids.
    - InvariantViolation as above.
"""

from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from inventory_kernel.db.unit_of_work import UnitOfWork
from inventory_kernel.domain.allocation import StockCandidate
from inventory_kernel.exceptions import InvariantViolation, StockNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.stock import Stock
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.services.base import BaseService, lock_rows

logger = get_logger("services.stock_ledger")


class StockLedger(BaseService):
    """Quantity bookkeeping over locked stock rows."""

    def find_stock(
        self,
        uow: UnitOfWork,
        warehouse_id: UUID,
        type_component_id: UUID,
        lock: bool = False,
    ) -> Stock | None:
        stmt = select(Stock).where(
            Stock.warehouse_id == warehouse_id,
            Stock.type_component_id == type_component_id,
        )
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return uow.session.scalars(stmt).one_or_none()

    def get_stock(self, uow: UnitOfWork, stock_id: UUID, lock: bool = False) -> Stock:
        if lock:
            rows = lock_rows(uow, Stock, [stock_id])
            stock = rows[0] if rows else None
        else:
            stock = uow.session.get(Stock, stock_id)
        if stock is None:
            raise StockNotFoundError(stock_id=str(stock_id))
        return stock

    def lock_stocks(self, uow: UnitOfWork, stock_ids) -> dict[UUID, Stock]:
        """Lock every listed stock (id order); all must exist."""
        wanted = set(stock_ids)
        stocks = {stock.id: stock for stock in lock_rows(uow, Stock, wanted)}
        missing = wanted - stocks.keys()
        if missing:
            raise StockNotFoundError(stock_id=str(sorted(missing, key=str)[0]))
        return stocks

    def lock_candidates(
        self,
        uow: UnitOfWork,
        type_component_ids: Iterable[UUID],
        company_id: UUID,
        exclude_warehouse_id: UUID | None = None,
    ) -> list[tuple[Stock, StockCandidate]]:
        """
        Lock every stock of the given types in the company's warehouses.

        Returns (row, candidate) pairs in lock (id) order; the caller sorts
        candidates by priority.
        """
        stmt = (
            select(Stock, Warehouse)
            .join(Warehouse, Stock.warehouse_id == Warehouse.id)
            .where(
                Stock.type_component_id.in_(sorted(set(type_component_ids), key=str)),
                Warehouse.vehicle_company_id == company_id,
            )
            .order_by(Stock.id)
            .with_for_update(of=Stock)
            .execution_options(populate_existing=True)
        )
        if exclude_warehouse_id is not None:
            stmt = stmt.where(Stock.warehouse_id != exclude_warehouse_id)

        pairs = []
        for stock, warehouse in uow.session.execute(stmt):
            candidate = StockCandidate(
                stock_id=stock.id,
                warehouse_id=stock.warehouse_id,
                type_component_id=stock.type_component_id,
                quantity_in_stock=stock.quantity_in_stock,
                quantity_reserved=stock.quantity_reserved,
                service_center_id=warehouse.service_center_id,
            )
            pairs.append((stock, candidate))
        return pairs

    def apply_delta(
        self,
        uow: UnitOfWork,
        stock: Stock,
        delta_stock: int = 0,
        delta_reserved: int = 0,
    ) -> Stock:
        """
        Apply signed deltas to a locked stock row and flush.

        Raises:
            InvariantViolation: If either counter would go negative or
                reserved would exceed in-stock.
        """
        new_in_stock = stock.quantity_in_stock + delta_stock
        new_reserved = stock.quantity_reserved + delta_reserved
        if new_in_stock < 0 or new_reserved < 0 or new_reserved > new_in_stock:
            logger.critical(
                "stock_invariant_violation",
                extra={
                    "stock_id": str(stock.id),
                    "quantity_in_stock": stock.quantity_in_stock,
                    "quantity_reserved": stock.quantity_reserved,
                    "delta_stock": delta_stock,
                    "delta_reserved": delta_reserved,
                },
            )
            raise InvariantViolation(
                stock_id=str(stock.id),
                quantity_in_stock=stock.quantity_in_stock,
                quantity_reserved=stock.quantity_reserved,
                delta_stock=delta_stock,
                delta_reserved=delta_reserved,
            )

        stock.quantity_in_stock = new_in_stock
        stock.quantity_reserved = new_reserved
        uow.session.flush()

        logger.info(
            "stock_delta_applied",
            extra={
                "stock_id": str(stock.id),
                "delta_stock": delta_stock,
                "delta_reserved": delta_reserved,
                "quantity_in_stock": new_in_stock,
                "quantity_reserved": new_reserved,
            },
        )
        return stock

    def find_or_create(
        self,
        uow: UnitOfWork,
        warehouse_id: UUID,
        type_component_id: UUID,
        actor_id: UUID | None = None,
    ) -> Stock:
        """
        Locked stock for (warehouse, type), created empty if missing.

        A concurrent creator wins the unique constraint; the loser's
        savepoint is rolled back and it locks the winner's row instead.
        """
        stock = self.find_stock(uow, warehouse_id, type_component_id, lock=True)
        if stock is not None:
            return stock

        try:
            with uow.session.begin_nested():
                stock = Stock(
                    warehouse_id=warehouse_id,
                    type_component_id=type_component_id,
                    quantity_in_stock=0,
                    quantity_reserved=0,
                    reorder_point=0,
                    created_by_id=actor_id,
                    created_at=self._clock.now(),
                )
                uow.session.add(stock)
        except IntegrityError:
            logger.info(
                "stock_create_race_lost",
                extra={
                    "warehouse_id": str(warehouse_id),
                    "type_component_id": str(type_component_id),
                },
            )
            stock = self.find_stock(uow, warehouse_id, type_component_id, lock=True)
            if stock is None:
                raise
            return stock

        logger.info(
            "stock_created",
            extra={
                "stock_id": str(stock.id),
                "warehouse_id": str(warehouse_id),
                "type_component_id": str(type_component_id),
            },
        )
        return stock

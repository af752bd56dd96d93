"""
Module: inventory_kernel.selectors.stock_selector
Responsibility: Read aggregates over stock rows: single lookups, per-type
    summaries across a caller's warehouses, and paginated stock listings.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - quantity_available is always derived (in_stock - reserved); it is not
      stored anywhere.
    - Every list query is filtered by the caller's ScopeResolver.
"""

from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.domain.dtos import Page, StockSummaryRow, StockView
from inventory_kernel.domain.scope import ScopeResolver
from inventory_kernel.exceptions import StockNotFoundError
from inventory_kernel.models.stock import Stock
from inventory_kernel.models.warehouse import TypeComponent, Warehouse
from inventory_kernel.selectors.base import BaseSelector


class StockSelector(BaseSelector):

    def find_by_warehouse_and_type(
        self, warehouse_id: UUID, type_component_id: UUID
    ) -> StockView | None:
        stock = self.session.scalars(
            select(Stock).where(
                Stock.warehouse_id == warehouse_id,
                Stock.type_component_id == type_component_id,
            )
        ).one_or_none()
        return stock.to_dto() if stock is not None else None

    def get(self, stock_id: UUID, scope: ScopeResolver | None = None) -> StockView:
        """
        A stock by id.  With ``scope``, a stock outside it is reported as
        not found rather than forbidden.
        """
        stock = self.session.get(Stock, stock_id)
        if stock is None or (scope is not None and not scope.allows(stock.warehouse)):
            raise StockNotFoundError(stock_id=str(stock_id))
        return stock.to_dto()

    def summary_by_warehouse_filter(self, scope: ScopeResolver) -> list[StockSummaryRow]:
        """Per-type totals across every warehouse the scope covers, by SKU."""
        stmt = (
            select(
                TypeComponent.id,
                TypeComponent.sku,
                TypeComponent.name,
                func.coalesce(func.sum(Stock.quantity_in_stock), 0),
                func.coalesce(func.sum(Stock.quantity_reserved), 0),
                func.count(func.distinct(Stock.warehouse_id)),
            )
            .join(Stock, Stock.type_component_id == TypeComponent.id)
            .join(Warehouse, Stock.warehouse_id == Warehouse.id)
            .where(scope.predicate())
            .group_by(TypeComponent.id, TypeComponent.sku, TypeComponent.name)
            .order_by(TypeComponent.sku)
        )
        return [
            StockSummaryRow(
                type_component_id=type_id,
                sku=sku,
                name=name,
                quantity_in_stock=int(in_stock),
                quantity_reserved=int(reserved),
                quantity_available=int(in_stock) - int(reserved),
                warehouse_count=int(warehouses),
            )
            for type_id, sku, name, in_stock, reserved, warehouses in self.session.execute(stmt)
        ]

    def list_type_components(
        self,
        scope: ScopeResolver,
        type_component_id: UUID | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page:
        """Paginated stock rows in scope, optionally for one type."""
        page, limit = self.paging.normalize(page, limit)
        stmt = (
            select(Stock)
            .join(Warehouse, Stock.warehouse_id == Warehouse.id)
            .where(scope.predicate())
        )
        if type_component_id is not None:
            stmt = stmt.where(Stock.type_component_id == type_component_id)

        total = self._count(stmt)
        rows = self.session.scalars(
            stmt.order_by(Warehouse.name, Stock.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return Page(
            items=tuple(stock.to_dto() for stock in rows),
            page=page,
            limit=limit,
            total=total,
        )

    def low_stock(self, scope: ScopeResolver) -> list[StockView]:
        stmt = (
            select(Stock)
            .join(Warehouse, Stock.warehouse_id == Warehouse.id)
            .where(
                scope.predicate(),
                Stock.quantity_in_stock - Stock.quantity_reserved <= Stock.reorder_point,
            )
            .order_by(Stock.id)
        )
        return [stock.to_dto() for stock in self.session.scalars(stmt)]

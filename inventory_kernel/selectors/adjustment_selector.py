"""
Module: inventory_kernel.selectors.adjustment_selector
Responsibility: Scoped listing and lookup of inventory adjustments.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import AdjustmentView, Page
from inventory_kernel.domain.scope import ScopeResolver
from inventory_kernel.domain.statuses import AdjustmentType
from inventory_kernel.exceptions import AdjustmentNotFoundError, BadRequestError
from inventory_kernel.models.adjustment import InventoryAdjustment
from inventory_kernel.models.stock import Stock
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AdjustmentFilter:
    warehouse_id: UUID | None = None
    type_component_id: UUID | None = None
    adjustment_type: AdjustmentType | str | None = None
    reason: str | None = None
    adjusted_by_user_id: UUID | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class AdjustmentSelector(BaseSelector):

    def _scoped(self, scope: ScopeResolver):
        return (
            select(InventoryAdjustment)
            .join(Stock, InventoryAdjustment.stock_id == Stock.id)
            .join(Warehouse, Stock.warehouse_id == Warehouse.id)
            .where(scope.predicate())
        )

    def get_by_id(self, scope: ScopeResolver, adjustment_id: UUID) -> AdjustmentView:
        adjustment = self.session.scalars(
            self._scoped(scope).where(InventoryAdjustment.id == adjustment_id)
        ).one_or_none()
        if adjustment is None:
            raise AdjustmentNotFoundError(str(adjustment_id))
        return adjustment.to_dto()

    def list(
        self,
        scope: ScopeResolver,
        filters: AdjustmentFilter | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page:
        """Adjustments in scope matching ``filters``, newest first."""
        page, limit = self.paging.normalize(page, limit)
        filters = filters or AdjustmentFilter()
        stmt = self._scoped(scope)

        if filters.warehouse_id is not None:
            stmt = stmt.where(Stock.warehouse_id == filters.warehouse_id)
        if filters.type_component_id is not None:
            stmt = stmt.where(Stock.type_component_id == filters.type_component_id)
        if filters.adjustment_type is not None:
            try:
                kind = AdjustmentType(filters.adjustment_type)
            except ValueError:
                raise BadRequestError(
                    "adjustment_type", f"unknown type {filters.adjustment_type!r}"
                ) from None
            stmt = stmt.where(InventoryAdjustment.adjustment_type == kind.value)
        if filters.reason is not None:
            stmt = stmt.where(InventoryAdjustment.reason == filters.reason)
        if filters.adjusted_by_user_id is not None:
            stmt = stmt.where(InventoryAdjustment.adjusted_by_user_id == filters.adjusted_by_user_id)
        if filters.start_date is not None:
            stmt = stmt.where(InventoryAdjustment.adjusted_at >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(InventoryAdjustment.adjusted_at <= filters.end_date)

        total = self._count(stmt)
        rows = self.session.scalars(
            stmt.order_by(InventoryAdjustment.adjusted_at.desc(), InventoryAdjustment.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return Page(
            items=tuple(adjustment.to_dto() for adjustment in rows),
            page=page,
            limit=limit,
            total=total,
        )

"""
Module: inventory_kernel.selectors.transfer_selector
Responsibility: Stock transfer requests by id or as a scoped, paginated list.
Architecture position: Kernel > Selectors.

A request is visible when the caller's scope covers its requesting
warehouse.  A request outside the scope is reported as not found.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from inventory_kernel.domain.dtos import Page, TransferRequestView
from inventory_kernel.domain.scope import ScopeResolver
from inventory_kernel.domain.statuses import TransferStatus
from inventory_kernel.exceptions import BadRequestError, TransferRequestNotFoundError
from inventory_kernel.models.transfer import StockTransferRequest
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.selectors.base import BaseSelector


class TransferSelector(BaseSelector):

    def get(self, scope: ScopeResolver, request_id: UUID) -> TransferRequestView:
        request = self.session.get(StockTransferRequest, request_id)
        if request is None or not scope.allows(request.requesting_warehouse):
            raise TransferRequestNotFoundError(str(request_id))
        return request.to_dto()

    def list(
        self,
        scope: ScopeResolver,
        status: TransferStatus | str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page:
        """Requests in scope, newest first."""
        page, limit = self.paging.normalize(page, limit)
        stmt = (
            select(StockTransferRequest)
            .join(Warehouse, StockTransferRequest.requesting_warehouse_id == Warehouse.id)
            .where(scope.predicate())
        )
        if status is not None:
            try:
                stmt = stmt.where(StockTransferRequest.status == TransferStatus(status).value)
            except ValueError:
                raise BadRequestError("status", f"unknown status {status!r}") from None

        total = self._count(stmt)
        rows = self.session.scalars(
            stmt.options(selectinload(StockTransferRequest.items))
            .order_by(StockTransferRequest.requested_at.desc(), StockTransferRequest.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return Page(
            items=tuple(request.to_dto() for request in rows),
            page=page,
            limit=limit,
            total=total,
        )

"""
AllocationAlgorithm -- pure greedy allocation over prioritized stocks.

Responsibility:
    Given a requested quantity of one component type and an ordered list of
    candidate stock rows, decide how many units to reserve from each.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The caller loads
    and locks the stock rows, builds ``StockCandidate`` snapshots, calls
    ``allocate`` and persists the result.

Invariants enforced:
    - All or nothing: ``allocate`` checks total availability before it
      hands out a single unit, so a failure never leaves a partial plan.
    - Consumed quantities are written back onto the in-memory candidate,
      so a second item of the same batch sees the reduced availability.
    - Priority: company-owned warehouses (no service center) first, then
      service-center warehouses; ties broken by warehouse id ascending.
"""

from dataclasses import dataclass
from typing import Iterable, Sequence
from uuid import UUID

from inventory_kernel.exceptions import AllocationError


@dataclass
class StockCandidate:
    """Mutable snapshot of one stock row considered for allocation."""

    stock_id: UUID
    warehouse_id: UUID
    type_component_id: UUID
    quantity_in_stock: int
    quantity_reserved: int
    service_center_id: UUID | None = None

    @property
    def available(self) -> int:
        return self.quantity_in_stock - self.quantity_reserved


@dataclass(frozen=True)
class Allocation:
    """Units to reserve on one stock row."""

    stock_id: UUID
    warehouse_id: UUID
    type_component_id: UUID
    quantity_reserved: int


def total_available(candidates: Iterable[StockCandidate]) -> int:
    """Sum of positive availability across candidates."""
    return sum(max(candidate.available, 0) for candidate in candidates)


def priority_key(candidate: StockCandidate) -> tuple[int, str]:
    owner_rank = 0 if candidate.service_center_id is None else 1
    return (owner_rank, str(candidate.warehouse_id))


def order_candidates(
    candidates: Iterable[StockCandidate],
    exclude_warehouse_id: UUID | None = None,
) -> list[StockCandidate]:
    """Drop the requesting warehouse and sort the rest by priority."""
    return sorted(
        (c for c in candidates if c.warehouse_id != exclude_warehouse_id),
        key=priority_key,
    )


def allocate(
    type_component_id: UUID,
    requested: int,
    candidates: Sequence[StockCandidate],
) -> list[Allocation]:
    """
    Greedily allocate ``requested`` units across ``candidates`` in list order.

    Args:
        type_component_id: Component type being allocated (for error context).
        requested: Units needed; must be positive.
        candidates: Pre-sorted candidates.  Their ``quantity_reserved`` is
            increased in place by the amount allocated from each.

    Returns:
        One Allocation per candidate that contributed at least one unit.

    Raises:
        AllocationError: If total availability is below ``requested``.
            Nothing is mutated in that case.
    """
    if requested <= 0:
        raise ValueError(f"requested must be positive, got {requested}")

    available = total_available(candidates)
    if available < requested:
        raise AllocationError(
            type_component_id=str(type_component_id),
            requested=requested,
            allocated=available,
        )

    allocations: list[Allocation] = []
    remaining = requested
    for candidate in candidates:
        if remaining == 0:
            break
        if candidate.available <= 0:
            continue
        take = min(candidate.available, remaining)
        candidate.quantity_reserved += take
        remaining -= take
        allocations.append(
            Allocation(
                stock_id=candidate.stock_id,
                warehouse_id=candidate.warehouse_id,
                type_component_id=candidate.type_component_id,
                quantity_reserved=take,
            )
        )

    return allocations

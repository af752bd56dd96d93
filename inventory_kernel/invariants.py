"""
Kernel Invariants Contract.

These invariants are structural law for the inventory ledger. They are
hardcoded in the stock ledger, the database check constraints and the
ORM listeners. No configuration set or role mapping may override them.

This module exists solely to declare the invariants explicitly. The
enforcement is distributed across StockLedger, AllocationAlgorithm,
the adjustment immutability listeners and UnitOfWork.
"""

from enum import Enum, unique


@unique
class InventoryInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    STOCK_BOUNDS = "stock_bounds"
    """0 <= quantity_reserved <= quantity_in_stock for every stock row.
    Enforced by StockLedger.apply_delta and DB check constraints."""

    SERIAL_CONSERVATION = "serial_conservation"
    """A serial number exists exactly once. Enforced by the unique
    constraint on components.serial_number and the IN adjustment check."""

    ALLOCATION_ATOMICITY = "allocation_atomicity"
    """Approval either reserves every item of a request or nothing.
    Enforced by the total-availability pre-check before any write."""

    ADJUSTMENT_IMMUTABILITY = "adjustment_immutability"
    """Adjustment records are append-only. Enforced by ORM listeners
    (inventory_kernel.db.immutability)."""

    LOCK_ORDER = "lock_order"
    """Rows are locked request -> items -> stocks -> reservations ->
    components, each set sorted by id."""

    POST_COMMIT_EFFECTS = "post_commit_effects"
    """Notifications and alerts run only after commit and never raise
    into the caller. Enforced by UnitOfWork.commit."""


ALL_INVENTORY_INVARIANTS: frozenset[InventoryInvariant] = frozenset(InventoryInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "inventory_services",
    "inventory_config",
)

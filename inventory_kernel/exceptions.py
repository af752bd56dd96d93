"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The API layer that sits in front of the kernel has to render a precise
message for every rejected stock operation ("requested 5, available 3").
Parsing message strings for that is fragile, so every error:

  1. Has its own class (catch by type, not by message)
  2. Carries a machine-readable ``code`` class attribute
  3. Stores its context (ids, counts, statuses) as attributes

Example:
    try:
        workflow.approve(uow, request_id, actor)
    except InsufficientStockError as e:
        return {"error": e.code, "requested": e.requested, "available": e.available}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- NotFoundError
    |   +-- StockNotFoundError
    |   +-- ComponentNotFoundError
    |   +-- ReservationNotFoundError
    |   +-- TransferRequestNotFoundError
    |   +-- TypeComponentNotFoundError
    |   +-- WarehouseNotFoundError
    |   +-- CaseLineNotFoundError
    |   +-- AdjustmentNotFoundError
    |
    +-- ConflictError
    |   +-- InvalidStatusTransitionError
    |   +-- InsufficientStockError
    |   +-- DuplicateSerialError
    |   +-- ComponentShortageError
    |   +-- ComponentStateError
    |   +-- RequestTypeMismatchError
    |   +-- ReservationOwnedByRequestError
    |   +-- EmptyTransferRequestError
    |   +-- AllocationError
    |
    +-- BadRequestError
    +-- ForbiddenError
    +-- InvariantViolation
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                        | When Raised
------------|-----------------------------|---------------------------------------
Not found   | STOCK_NOT_FOUND             | Stock id / (warehouse, type) missing
            | COMPONENT_NOT_FOUND         | Serial or component id missing
            | RESERVATION_NOT_FOUND       | Reservation id missing
            | TRANSFER_REQUEST_NOT_FOUND  | Request id missing or out of scope
            | TYPE_COMPONENT_NOT_FOUND    | Unknown SKU / type component
            | WAREHOUSE_NOT_FOUND         | Warehouse id missing
            | CASE_LINE_NOT_FOUND         | Case line has no resolvable vehicle
            | ADJUSTMENT_NOT_FOUND        | Adjustment id missing or out of scope
------------|-----------------------------|---------------------------------------
Conflict    | INVALID_STATUS_TRANSITION   | Wrong current status for the action
            | INSUFFICIENT_STOCK          | Requested > available
            | DUPLICATE_SERIAL            | IN adjustment with known serials
            | COMPONENT_SHORTAGE          | Fewer physical units than booked
            | COMPONENT_STATE             | Unit in the wrong place or status
            | REQUEST_TYPE_MISMATCH       | Restock-only action on a case-line request
            | RESERVATION_HELD_BY_REQUEST | Per-reservation cancel of a transfer hold
            | EMPTY_TRANSFER_REQUEST      | Request without items / reservations
            | ALLOCATION_FAILED           | Allocation could not cover the request
------------|-----------------------------|---------------------------------------
Input       | BAD_REQUEST                 | Malformed caller input
Access      | FORBIDDEN                   | Role / ownership mismatch
Defect      | INVARIANT_VIOLATION         | Stock counters would break bounds
            | IMMUTABILITY_VIOLATION      | Mutation of an append-only record

===============================================================================
PROPAGATION
===============================================================================

Every error aborts the enclosing unit of work; nothing is partially
committed.  ``InvariantViolation`` is a defect signal: it is logged at
CRITICAL where it is raised and should be rendered as a generic failure.
Post-commit side effects never raise into the caller.
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses define a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Not found


class NotFoundError(InventoryKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class StockNotFoundError(NotFoundError):
    """Stock record was not found."""

    code: str = "STOCK_NOT_FOUND"

    def __init__(
        self,
        stock_id: str | None = None,
        warehouse_id: str | None = None,
        type_component_id: str | None = None,
    ):
        self.stock_id = stock_id
        self.warehouse_id = warehouse_id
        self.type_component_id = type_component_id
        if stock_id is not None:
            message = f"Stock not found: {stock_id}"
        else:
            message = (
                f"Stock not found for warehouse {warehouse_id} "
                f"and type component {type_component_id}"
            )
        super().__init__(message)


class ComponentNotFoundError(NotFoundError):
    """One or more components were not found."""

    code: str = "COMPONENT_NOT_FOUND"

    def __init__(self, identifiers: list[str]):
        self.identifiers = identifiers
        super().__init__(f"Components not found: {', '.join(identifiers)}")


class ReservationNotFoundError(NotFoundError):
    """Reservation was not found."""

    code: str = "RESERVATION_NOT_FOUND"

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation not found: {reservation_id}")


class TransferRequestNotFoundError(NotFoundError):
    """Stock transfer request was not found (or is outside the caller's scope)."""

    code: str = "TRANSFER_REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Stock transfer request not found: {request_id}")


class TypeComponentNotFoundError(NotFoundError):
    """Type components (by id or SKU) were not found."""

    code: str = "TYPE_COMPONENT_NOT_FOUND"

    def __init__(self, identifiers: list[str]):
        self.identifiers = identifiers
        super().__init__(f"Type components not found: {', '.join(identifiers)}")


class WarehouseNotFoundError(NotFoundError):
    """Warehouse was not found."""

    code: str = "WAREHOUSE_NOT_FOUND"

    def __init__(self, warehouse_id: str):
        self.warehouse_id = warehouse_id
        super().__init__(f"Warehouse not found: {warehouse_id}")


class CaseLineNotFoundError(NotFoundError):
    """Case line (or the vehicle behind it) could not be resolved."""

    code: str = "CASE_LINE_NOT_FOUND"

    def __init__(self, case_line_id: str, reason: str = "Case line not found"):
        self.case_line_id = case_line_id
        self.reason = reason
        super().__init__(f"{reason}: {case_line_id}")


class AdjustmentNotFoundError(NotFoundError):
    """Inventory adjustment was not found (or is outside the caller's scope)."""

    code: str = "ADJUSTMENT_NOT_FOUND"

    def __init__(self, adjustment_id: str):
        self.adjustment_id = adjustment_id
        super().__init__(f"Inventory adjustment not found: {adjustment_id}")


# Conflicts


class ConflictError(InventoryKernelError):
    """Base exception for state-machine and availability conflicts."""

    code: str = "CONFLICT"


class InvalidStatusTransitionError(ConflictError):
    """The entity is not in a status that allows the requested action."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        allowed_statuses: list[str],
        action: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.allowed_statuses = allowed_statuses
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id}: status is "
            f"{current_status}, expected one of {', '.join(allowed_statuses)}"
        )


class InsufficientStockError(ConflictError):
    """Requested quantity exceeds what is available."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        type_component_id: str,
        requested: int,
        available: int,
        stock_id: str | None = None,
    ):
        self.type_component_id = type_component_id
        self.requested = requested
        self.available = available
        self.stock_id = stock_id
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient available stock for type component {type_component_id}: "
            f"requested {requested}, available {available} "
            f"(short by {self.shortfall})"
        )


class DuplicateSerialError(ConflictError):
    """Serial numbers already exist in the system."""

    code: str = "DUPLICATE_SERIAL"

    def __init__(self, serial_numbers: list[str]):
        self.serial_numbers = serial_numbers
        super().__init__(f"Serial numbers already exist: {', '.join(serial_numbers)}")


class ComponentShortageError(ConflictError):
    """Fewer physical components exist than the stock book says."""

    code: str = "COMPONENT_SHORTAGE"

    def __init__(self, warehouse_id: str, type_component_id: str, required: int, found: int):
        self.warehouse_id = warehouse_id
        self.type_component_id = type_component_id
        self.required = required
        self.found = found
        super().__init__(
            f"Insufficient components in warehouse {warehouse_id} for type "
            f"component {type_component_id}: required {required}, found {found}"
        )


class ComponentStateError(ConflictError):
    """A component is not where (or in the status) the operation needs it."""

    code: str = "COMPONENT_STATE"

    def __init__(self, serial_number: str, status: str, reason: str):
        self.serial_number = serial_number
        self.status = status
        self.reason = reason
        super().__init__(f"Component {serial_number} ({status}): {reason}")


class RequestTypeMismatchError(ConflictError):
    """The action is not valid for this transfer request type."""

    code: str = "REQUEST_TYPE_MISMATCH"

    def __init__(self, request_id: str, request_type: str, expected_type: str):
        self.request_id = request_id
        self.request_type = request_type
        self.expected_type = expected_type
        super().__init__(
            f"Request {request_id} is {request_type}, expected {expected_type}"
        )


class ReservationOwnedByRequestError(ConflictError):
    """The reservation belongs to a transfer request and moves only with it."""

    code: str = "RESERVATION_HELD_BY_REQUEST"

    def __init__(self, reservation_id: str, request_id: str):
        self.reservation_id = reservation_id
        self.request_id = request_id
        super().__init__(
            f"Reservation {reservation_id} belongs to stock transfer request {request_id}; "
            "cancel the request instead"
        )


class EmptyTransferRequestError(ConflictError):
    """A transfer request has nothing to act on."""

    code: str = "EMPTY_TRANSFER_REQUEST"

    def __init__(self, request_id: str, reason: str):
        self.request_id = request_id
        self.reason = reason
        super().__init__(f"Request {request_id}: {reason}")


class AllocationError(ConflictError):
    """Candidates could not cover the requested quantity."""

    code: str = "ALLOCATION_FAILED"

    def __init__(self, type_component_id: str, requested: int, allocated: int):
        self.type_component_id = type_component_id
        self.requested = requested
        self.allocated = allocated
        super().__init__(
            f"Unable to allocate {requested} of type component {type_component_id}; "
            f"only {allocated} available across candidates"
        )


# Input and access


class BadRequestError(InventoryKernelError):
    """Malformed caller input."""

    code: str = "BAD_REQUEST"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class ForbiddenError(InventoryKernelError):
    """Role or ownership does not permit the action."""

    code: str = "FORBIDDEN"

    def __init__(self, role_name: str | None, action: str, reason: str):
        self.role_name = role_name
        self.action = action
        self.reason = reason
        super().__init__(f"Role {role_name!r} may not {action}: {reason}")


# Defects


class InvariantViolation(InventoryKernelError):
    """
    Stock bookkeeping would become negative or inconsistent.

    Always a defect in the caller, never a user mistake.
    """

    code: str = "INVARIANT_VIOLATION"

    def __init__(
        self,
        stock_id: str,
        quantity_in_stock: int,
        quantity_reserved: int,
        delta_stock: int,
        delta_reserved: int,
    ):
        self.stock_id = stock_id
        self.quantity_in_stock = quantity_in_stock
        self.quantity_reserved = quantity_reserved
        self.delta_stock = delta_stock
        self.delta_reserved = delta_reserved
        super().__init__(
            f"Stock {stock_id} invariant violated: in_stock={quantity_in_stock}"
            f"{delta_stock:+d}, reserved={quantity_reserved}{delta_reserved:+d}"
        )


class ImmutabilityViolationError(InventoryKernelError):
    """Attempt to modify an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")

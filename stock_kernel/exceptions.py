"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every ledger failure is a per-request, recoverable condition that a caller
renders as a validation message.  Callers must be able to tell "not enough
stock" apart from "unknown location" without parsing strings:

    try:
        orchestrator.transfer(item_id, src, dst, 5)
    except InsufficientStockError as e:
        show(f"Only {e.available} left at {e.location_id}")
    except InvalidLocationError as e:
        show(f"Location {e.location_id} cannot receive stock")

Rules:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- StockError
    |   +-- InvalidQuantityError
    |   +-- InsufficientStockError
    |
    +-- LocationError
    |   +-- InvalidLocationError
    |       +-- LocationNotFoundError   (also a NotFoundError)
    |
    +-- NotFoundError
    |   +-- LocationNotFoundError
    |   +-- UnitNotFoundError
    |
    +-- TransferError
    |   +-- InvalidTransferError
    |
    +-- UnitError
    |   +-- DuplicateCodeError
    |   +-- InvalidUnitStatusError
    |
    +-- AllocationError
    |   +-- AllocationMismatchError
    |   +-- AllocationExceedsAvailableError
    |
    +-- ConcurrencyError
    |   +-- ConflictError
    |
    +-- AuditError
    |   +-- AuditWriteFailedError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|-----------------------------------
Stock        | INVALID_QUANTITY              | Negative / non-integer quantity
             | INSUFFICIENT_STOCK            | Debit larger than quantity on hand
-------------|-------------------------------|-----------------------------------
Location     | INVALID_LOCATION              | Location inactive for this use
             | LOCATION_NOT_FOUND            | Location id doesn't exist
-------------|-------------------------------|-----------------------------------
Lookup       | UNIT_NOT_FOUND                | Individual unit id doesn't exist
-------------|-------------------------------|-----------------------------------
Transfer     | INVALID_TRANSFER              | Source equals destination
-------------|-------------------------------|-----------------------------------
Unit         | DUPLICATE_CODE                | Code already used in its category
             | INVALID_UNIT_STATUS           | Status outside the four known tags
-------------|-------------------------------|-----------------------------------
Allocation   | ALLOCATION_MISMATCH           | Sum != quantity needed
             | ALLOCATION_EXCEEDS_AVAILABLE  | Row larger than location stock
-------------|-------------------------------|-----------------------------------
Concurrency  | CONFLICT                      | Bounded adjust retry exhausted
-------------|-------------------------------|-----------------------------------
Audit        | AUDIT_WRITE_FAILED            | Transfer done, audit row missing
-------------|-------------------------------|-----------------------------------
Immutability | IMMUTABILITY_VIOLATION        | UPDATE/DELETE of append-only row

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Nothing here is fatal to the process.  All errors are per-request.

2. ConflictError means "retry after refetching availability":

    except ConflictError:
        levels = selector.list_by_item(item_id)
        ask_user_to_retry(levels)

3. AuditWriteFailedError is never raised out of a successful transfer.  It
   is attached to ``TransferResult.warning`` as a degraded-success marker:

    result = orchestrator.transfer(...)
    if result.degraded:
        warn(result.warning.code)
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Stock quantity exceptions


class StockError(StockKernelError):
    """Base exception for quantity-related errors."""

    code: str = "STOCK_ERROR"


class InvalidQuantityError(StockError):
    """Quantity is negative, non-integer, or zero where positive is required."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, reason: str):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity!r}: {reason}")


class InsufficientStockError(StockError):
    """A debit would take a location's quantity below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, location_id: str, requested: int, available: int):
        self.item_id = item_id
        self.location_id = location_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_id} at {location_id}: "
            f"requested {requested}, available {available}"
        )


# Location exceptions


class LocationError(StockKernelError):
    """Base exception for location-related errors."""

    code: str = "LOCATION_ERROR"


class InvalidLocationError(LocationError):
    """Location exists but cannot be used for this operation."""

    code: str = "INVALID_LOCATION"

    def __init__(self, location_id: str, reason: str = "location is inactive"):
        self.location_id = location_id
        self.reason = reason
        super().__init__(f"Invalid location {location_id}: {reason}")


# Lookup exceptions


class NotFoundError(StockKernelError):
    """Base exception for referential lookups that found nothing."""

    code: str = "NOT_FOUND"


class LocationNotFoundError(InvalidLocationError, NotFoundError):
    """Location with given ID was not found."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: str):
        super().__init__(location_id, reason="location not found")


class UnitNotFoundError(NotFoundError):
    """Individual unit with given ID was not found."""

    code: str = "UNIT_NOT_FOUND"

    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"Individual unit not found: {unit_id}")


# Transfer exceptions


class TransferError(StockKernelError):
    """Base exception for transfer errors."""

    code: str = "TRANSFER_ERROR"


class InvalidTransferError(TransferError):
    """Transfer request violates a precondition other than quantity."""

    code: str = "INVALID_TRANSFER"

    def __init__(self, item_id: str, reason: str):
        self.item_id = item_id
        self.reason = reason
        super().__init__(f"Invalid transfer of item {item_id}: {reason}")


# Individual unit exceptions


class UnitError(StockKernelError):
    """Base exception for individual unit errors."""

    code: str = "UNIT_ERROR"


class DuplicateCodeError(UnitError):
    """Generated unit code is already used within its category."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, code_category: str, unit_code: str):
        self.code_category = code_category
        self.unit_code = unit_code
        super().__init__(
            f"Unit code {unit_code} already exists in category {code_category}"
        )


class InvalidUnitStatusError(UnitError):
    """Status is not one of the known unit status tags."""

    code: str = "INVALID_UNIT_STATUS"

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Unknown unit status: {status}")


# Allocation exceptions


class AllocationError(StockKernelError):
    """Base exception for allocation submission errors."""

    code: str = "ALLOCATION_ERROR"


class AllocationMismatchError(AllocationError):
    """Allocated quantities do not add up to the quantity needed."""

    code: str = "ALLOCATION_MISMATCH"

    def __init__(self, total_needed: int, allocated: int):
        self.total_needed = total_needed
        self.allocated = allocated
        super().__init__(
            f"Allocation mismatch: needed {total_needed}, allocated {allocated}"
        )


class AllocationExceedsAvailableError(AllocationError):
    """An allocation row asks for more than its location holds."""

    code: str = "ALLOCATION_EXCEEDS_AVAILABLE"

    def __init__(self, location_id: str, quantity: int, available: int):
        self.location_id = location_id
        self.quantity = quantity
        self.available = available
        super().__init__(
            f"Allocation of {quantity} at {location_id} exceeds available {available}"
        )


# Concurrency exceptions


class ConcurrencyError(StockKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class ConflictError(ConcurrencyError):
    """Concurrent modification retry budget exhausted."""

    code: str = "CONFLICT"

    def __init__(self, item_id: str, location_id: str, attempts: int):
        self.item_id = item_id
        self.location_id = location_id
        self.attempts = attempts
        super().__init__(
            f"Concurrent modification of item {item_id} at {location_id}: "
            f"gave up after {attempts} attempt(s)"
        )


# Audit exceptions


class AuditError(StockKernelError):
    """Base exception for audit trail errors."""

    code: str = "AUDIT_ERROR"


class AuditWriteFailedError(AuditError):
    """Stock moved but the transfer record could not be written."""

    code: str = "AUDIT_WRITE_FAILED"

    def __init__(self, item_id: str, reason: str):
        self.item_id = item_id
        self.reason = reason
        super().__init__(
            f"Transfer of item {item_id} succeeded but audit write failed: {reason}"
        )


# Immutability exceptions


class ImmutabilityError(StockKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted modification of an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")

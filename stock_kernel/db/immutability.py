"""
ORM-Level Append-Only Enforcement (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

Transfer records and stock adjustments are the audit trail of every unit that
moved or was corrected.  Once written they are permanent: a mistaken transfer
is fixed with a second transfer in the opposite direction, never by editing
or deleting the first one.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through Python/SQLAlchemy code
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/sql/*.sql (PostgreSQL triggers)
    - Catches raw SQL, bulk UPDATE statements, direct psql access

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity           | When Immutable         | Why
-----------------|------------------------|-------------------------------
TransferRecord   | ALWAYS (from creation) | Movement history is the audit
StockAdjustment  | ALWAYS (from creation) | Corrections must stay traceable

===============================================================================
USAGE
===============================================================================

    from stock_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_transfer_record_immutability(mapper, connection, target):
    """Prevent any updates to TransferRecord rows."""
    _block(
        "TransferRecord",
        target,
        "UPDATE",
        "Transfer records are append-only and cannot be modified",
    )


def _check_transfer_record_delete(mapper, connection, target):
    """Prevent deletion of TransferRecord rows."""
    _block(
        "TransferRecord",
        target,
        "DELETE",
        "Transfer records cannot be deleted",
    )


def _check_stock_adjustment_immutability(mapper, connection, target):
    """Prevent any updates to StockAdjustment rows."""
    _block(
        "StockAdjustment",
        target,
        "UPDATE",
        "Stock adjustments are append-only and cannot be modified",
    )


def _check_stock_adjustment_delete(mapper, connection, target):
    """Prevent deletion of StockAdjustment rows."""
    _block(
        "StockAdjustment",
        target,
        "DELETE",
        "Stock adjustments cannot be deleted",
    )


def _listeners():
    from stock_kernel.models.stock_adjustment import StockAdjustment
    from stock_kernel.models.transfer_record import TransferRecord

    return [
        (TransferRecord, "before_update", _check_transfer_record_immutability),
        (TransferRecord, "before_delete", _check_transfer_record_delete),
        (StockAdjustment, "before_update", _check_stock_adjustment_immutability),
        (StockAdjustment, "before_delete", _check_stock_adjustment_delete),
    ]


def register_immutability_listeners():
    """
    Register all append-only enforcement event listeners.

    Safe to call more than once: listeners already present are skipped.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove append-only enforcement event listeners.

    WARNING: Only use this in tests that need to bypass layer 1 to exercise
    the database triggers.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)

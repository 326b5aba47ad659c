"""
StockAdjustmentService -- reasoned, audited direct corrections.

Responsibility:
    Applies a signed quantity change to one stock entry (damage, loss,
    found stock, count variance) through ``StockLedger.adjust`` and appends
    a StockAdjustment row with the quantities before and after.

Architecture position:
    Kernel > Services -- imperative shell.  Used directly by callers and by
    StockCountService.

Invariants enforced:
    - The ledger change and its audit row commit together or not at all
      (one SAVEPOINT).  Unlike transfers, an adjustment without its reason
      on record is not accepted.
    - previous_quantity is derived from the atomic UPDATE's result, never
      from an earlier read.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import AdjustmentRecordInfo
from stock_kernel.exceptions import InvalidQuantityError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.stock_adjustment import StockAdjustment
from stock_kernel.services.base import BaseService
from stock_kernel.services.location_registry import coerce_location_id
from stock_kernel.services.stock_ledger import StockLedger, require_int

logger = get_logger("services.stock_adjustment")


class StockAdjustmentService(BaseService[StockAdjustment]):
    """Direct stock adjustments with a mandatory reason."""

    def __init__(
        self,
        session: Session,
        ledger: StockLedger | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._ledger = ledger or StockLedger(session)
        self._clock = clock or SystemClock()

    def _to_dto(self, row: StockAdjustment) -> AdjustmentRecordInfo:
        return AdjustmentRecordInfo(
            id=row.id,
            item_id=row.item_id,
            location_id=row.location_id,
            quantity_change=row.quantity_change,
            previous_quantity=row.previous_quantity,
            new_quantity=row.new_quantity,
            reason=row.reason,
            occurred_at=row.occurred_at,
            notes=row.notes,
            actor_id=row.actor_id,
        )

    def record_adjustment(
        self,
        item_id: str,
        location_id: UUID,
        quantity_change: int,
        reason: str,
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> AdjustmentRecordInfo:
        """
        Apply ``quantity_change`` and record why.

        Raises:
            ValueError: reason is blank.
            InvalidQuantityError: quantity_change is zero or not an int.
            InsufficientStockError, InvalidLocationError,
            LocationNotFoundError, ConflictError: from the ledger.
        """
        require_int(quantity_change, "quantity_change")
        if quantity_change == 0:
            raise InvalidQuantityError(quantity_change, "adjustment cannot be zero")
        if not reason or not reason.strip():
            raise ValueError("An adjustment reason is required")
        location_id = coerce_location_id(location_id)

        savepoint = self.session.begin_nested()
        try:
            new_quantity = self._ledger.adjust(item_id, location_id, quantity_change)
            row = StockAdjustment(
                item_id=item_id,
                location_id=location_id,
                quantity_change=quantity_change,
                previous_quantity=new_quantity - quantity_change,
                new_quantity=new_quantity,
                reason=reason.strip(),
                notes=notes,
                actor_id=actor_id,
                occurred_at=self._clock.now(),
            )
            self.session.add(row)
            self.session.flush()
        except Exception:
            savepoint.rollback()
            raise
        savepoint.commit()

        logger.info(
            "stock_adjustment_recorded",
            extra={
                "adjustment_id": str(row.id),
                "item_id": item_id,
                "location_id": str(location_id),
                "quantity_change": quantity_change,
                "new_quantity": new_quantity,
                "reason": row.reason,
            },
        )
        return self._to_dto(row)

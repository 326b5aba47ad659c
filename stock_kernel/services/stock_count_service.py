"""
StockCountService -- physical stock counts at a location.

A count compares what the ledger says with what was physically counted and
applies each non-zero variance as a reasoned adjustment.  The counted value
is never written as an absolute quantity.
"""

from __future__ import annotations

from typing import Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import CountLine, CountResult
from stock_kernel.exceptions import InvalidQuantityError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.stock_adjustment import StockAdjustment
from stock_kernel.services.base import BaseService
from stock_kernel.services.location_registry import coerce_location_id
from stock_kernel.services.stock_adjustment_service import StockAdjustmentService
from stock_kernel.services.stock_ledger import StockLedger, require_int

logger = get_logger("services.stock_count")

DEFAULT_COUNT_REASON = "Physical count adjustment"


class StockCountService(BaseService[StockAdjustment]):
    """Reconcile the ledger with a physical count."""

    def __init__(
        self,
        session: Session,
        ledger: StockLedger | None = None,
        adjustments: StockAdjustmentService | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._ledger = ledger or StockLedger(session)
        self._clock = clock or SystemClock()
        self._adjustments = adjustments or StockAdjustmentService(
            session, self._ledger, self._clock
        )

    def _validate(self, counts: Mapping[str, int]) -> None:
        for item_id, counted in counts.items():
            require_int(counted, f"counted quantity for {item_id}")
            if counted < 0:
                raise InvalidQuantityError(counted, "counted quantity cannot be negative")

    def preview_count(self, location_id: UUID, counts: Mapping[str, int]) -> CountResult:
        """Compute the count lines without writing anything."""
        self._validate(counts)
        location_id = coerce_location_id(location_id)
        self._ledger.registry.get(location_id)

        lines = tuple(
            CountLine(
                item_id=item_id,
                system_quantity=self._ledger.get_quantity(item_id, location_id),
                counted_quantity=counted,
            )
            for item_id, counted in sorted(counts.items())
        )
        return CountResult(
            location_id=location_id,
            lines=lines,
            counted_at=self._clock.now(),
            applied=False,
        )

    def apply_count(
        self,
        location_id: UUID,
        counts: Mapping[str, int],
        reason: str = DEFAULT_COUNT_REASON,
        actor_id: UUID | None = None,
    ) -> CountResult:
        """
        Apply every non-zero variance of a count.

        All adjustments share one SAVEPOINT: if any fails, none is applied.

        Raises:
            InvalidQuantityError: a counted quantity is negative or not an int.
            LocationNotFoundError: unknown location.
            InsufficientStockError: stock left concurrently between the
                preview and the negative adjustment.
        """
        preview = self.preview_count(location_id, counts)

        lines = []
        savepoint = self.session.begin_nested()
        try:
            for line in preview.lines:
                if line.variance == 0:
                    lines.append(line)
                    continue
                adjustment = self._adjustments.record_adjustment(
                    line.item_id,
                    preview.location_id,
                    line.variance,
                    reason,
                    notes=(
                        f"Counted {line.counted_quantity}, "
                        f"system had {line.system_quantity}"
                    ),
                    actor_id=actor_id,
                )
                lines.append(
                    CountLine(
                        item_id=line.item_id,
                        system_quantity=adjustment.previous_quantity,
                        counted_quantity=line.counted_quantity,
                        adjustment_id=adjustment.id,
                    )
                )
        except Exception:
            savepoint.rollback()
            raise
        savepoint.commit()

        result = CountResult(
            location_id=preview.location_id,
            lines=tuple(lines),
            counted_at=preview.counted_at,
            applied=True,
        )
        logger.info(
            "stock_count_applied",
            extra={
                "location_id": str(result.location_id),
                "items_counted": len(result.lines),
                "items_adjusted": len(result.items_with_variance),
                "total_absolute_variance": result.total_absolute_variance,
            },
        )
        return result

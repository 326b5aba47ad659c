"""
AllocationService -- submits allocation plans against live stock.

Responsibility:
    Feeds the pure planner with fresh availability and turns a submitted
    plan into ledger mutations: debits for consumption (job picking),
    initial-stocking transfers for new items.

Architecture position:
    Services -- stateful orchestration over stock_engines + stock_kernel.

Invariants enforced:
    - Availability is re-read on every call; nothing is cached across a
      mutation.
    - A consumption submit either debits every row or none (one SAVEPOINT).
    - Consumption rows are re-validated against current stock, not the
      availability captured when the plan was drawn up.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from stock_engines.allocation import (
    Allocation,
    AllocationCandidate,
    plan_allocation,
    validate_consumption,
    validate_initial_stocking,
)
from stock_kernel.domain.dtos import TransferResult
from stock_kernel.exceptions import AllocationExceedsAvailableError
from stock_kernel.logging_config import get_logger
from stock_kernel.services.stock_adjustment_service import StockAdjustmentService
from stock_kernel.services.stock_ledger import StockLedger
from stock_kernel.services.transfer_orchestrator import TransferOrchestrator

logger = get_logger("services.allocation")

DEFAULT_CONSUMPTION_REASON = "Consumed"


class AllocationService:
    """
    Plan and submit location allocations for one item at a time.

    Non-goals:
        - Does NOT auto-fix a plan that no longer fits current stock; the
          caller re-plans and asks the user.
    """

    def __init__(
        self,
        session: Session,
        ledger: StockLedger,
        orchestrator: TransferOrchestrator,
        adjustments: StockAdjustmentService | None = None,
    ) -> None:
        self._session = session
        self._ledger = ledger
        self._orchestrator = orchestrator
        self._adjustments = adjustments or StockAdjustmentService(session, ledger)

    def candidates_for(self, item_id: str) -> list[AllocationCandidate]:
        """Locations currently holding the item, largest first."""
        return [
            AllocationCandidate(location_id=location_id, available_quantity=quantity)
            for location_id, quantity in self._ledger.list_by_item(item_id).items()
        ]

    def plan(
        self,
        item_id: str,
        total_needed: int,
        existing: Sequence[Allocation] = (),
    ) -> tuple[Allocation, ...]:
        """Greedy largest-first proposal over current availability."""
        return plan_allocation(
            total_needed=total_needed,
            candidates=self.candidates_for(item_id),
            existing=existing,
        )

    def submit_consumption(
        self,
        item_id: str,
        total_needed: int,
        allocations: Sequence[Allocation],
        notes: str | None = None,
        actor_id: UUID | None = None,
        reason: str = DEFAULT_CONSUMPTION_REASON,
    ) -> dict[UUID, int]:
        """
        Debit each row of a consumption plan.

        Returns:
            New quantity per debited location.

        Raises:
            AllocationMismatchError: rows do not add up to total_needed.
            AllocationExceedsAvailableError: a row exceeds the availability
                it was planned with, or current stock.
            InsufficientStockError / ConflictError: stock moved between the
                check and the debit.  Nothing is debited.
        """
        validate_consumption(total_needed, allocations)

        for row in allocations:
            current = self._ledger.get_quantity(item_id, row.location_id)
            if row.quantity > current:
                raise AllocationExceedsAvailableError(
                    str(row.location_id), row.quantity, current
                )

        results: dict[UUID, int] = {}
        savepoint = self._session.begin_nested()
        try:
            for row in allocations:
                if row.quantity == 0:
                    continue
                record = self._adjustments.record_adjustment(
                    item_id,
                    row.location_id,
                    -row.quantity,
                    reason,
                    notes=notes,
                    actor_id=actor_id,
                )
                results[row.location_id] = record.new_quantity
        except Exception:
            savepoint.rollback()
            raise
        savepoint.commit()

        logger.info(
            "allocation_consumed",
            extra={
                "item_id": item_id,
                "total_needed": total_needed,
                "locations": len(results),
            },
        )
        return results

    def submit_initial_stocking(
        self,
        item_id: str,
        allocations: Sequence[Allocation],
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> tuple[list[TransferResult], int]:
        """
        Place new stock of an item across locations.

        Each row becomes a transfer with no source, so the audit trail
        shows where the item was first stocked.

        Returns:
            The transfer results and the total stocked.
        """
        total = validate_initial_stocking(allocations)

        transfers: list[TransferResult] = []
        savepoint = self._session.begin_nested()
        try:
            for row in allocations:
                if row.quantity == 0:
                    continue
                transfers.append(
                    self._orchestrator.transfer(
                        item_id,
                        None,
                        row.location_id,
                        row.quantity,
                        notes=notes,
                        actor_id=actor_id,
                    )
                )
        except Exception:
            savepoint.rollback()
            raise
        savepoint.commit()

        logger.info(
            "allocation_initial_stocked",
            extra={"item_id": item_id, "total": total, "locations": len(transfers)},
        )
        return transfers, total

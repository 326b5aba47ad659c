"""
stock_services.stock_context -- Central DI container for stock services.

Responsibility:
    Creates every kernel service exactly once, applies the runtime
    settings to them and wires them together.  Application code obtains
    services from here instead of constructing them ad hoc.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    The only place where stock_config settings reach kernel services.

Invariants enforced:
    - Single-instance lifecycle: one LocationRegistry, one StockLedger,
      one TransferOrchestrator per context.
    - All services share the same Session and Clock instances.

Usage:
    from stock_services.stock_context import StockContext

    with session_scope() as session:
        ctx = StockContext(session, settings=get_active_settings())
        ctx.orchestrator.transfer("DRILL-01", shelf_a, van_3, 2)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from stock_config.settings import LedgerSettings
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.selectors.reconciliation_selector import ReconciliationSelector
from stock_kernel.selectors.stock_selector import StockSelector
from stock_kernel.services.code_sequence_service import CodeSequenceService
from stock_kernel.services.location_registry import LocationRegistry
from stock_kernel.services.stock_adjustment_service import StockAdjustmentService
from stock_kernel.services.stock_count_service import StockCountService
from stock_kernel.services.stock_ledger import StockLedger
from stock_kernel.services.transfer_orchestrator import TransferOrchestrator
from stock_kernel.services.unit_tracker import IndividualUnitTracker
from stock_services.allocation_service import AllocationService
from stock_services.bulk_conversion import BulkConversionService


class StockContext:
    """
    Central factory for stock services.

    Non-goals:
        - Does NOT manage transaction boundaries (caller's responsibility).
        - Does NOT own the Session lifecycle (no commit/rollback).
    """

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or LedgerSettings()
        self.clock = clock or SystemClock()

        # Order matters: each service receives the ones built before it
        self.registry = LocationRegistry(session)
        self.ledger = StockLedger(
            session,
            self.registry,
            max_conflict_retries=self.settings.max_conflict_retries,
        )
        self.orchestrator = TransferOrchestrator(
            session,
            self.ledger,
            self.registry,
            self.clock,
            rollback_mode=self.settings.transfer_rollback_mode,
        )
        self.adjustments = StockAdjustmentService(session, self.ledger, self.clock)
        self.counts = StockCountService(
            session, self.ledger, self.adjustments, self.clock
        )
        self.codes = CodeSequenceService(session)
        self.units = IndividualUnitTracker(
            session,
            self.ledger,
            self.registry,
            self.orchestrator,
            default_code_category=self.settings.default_code_category,
        )
        self.allocation = AllocationService(
            session, self.ledger, self.orchestrator, self.adjustments
        )
        self.conversion = BulkConversionService(
            session,
            self.ledger,
            self.units,
            self.codes,
            default_code_category=self.settings.default_code_category,
        )

        self.stock = StockSelector(session)
        self.reconciliation = ReconciliationSelector(session, self.clock)

    def low_stock_alerts(self, thresholds=None, location_id=None):
        """Low-stock alerts using the configured default reorder threshold."""
        return self.stock.low_stock_alerts(
            thresholds,
            default_threshold=self.settings.default_reorder_threshold,
            location_id=location_id,
        )

"""Mutating services for the stock kernel.  Services flush; callers commit."""

from stock_kernel.services.code_sequence_service import CodeSequenceService
from stock_kernel.services.location_registry import LocationRegistry
from stock_kernel.services.stock_adjustment_service import StockAdjustmentService
from stock_kernel.services.stock_count_service import StockCountService
from stock_kernel.services.stock_ledger import StockLedger
from stock_kernel.services.transfer_orchestrator import TransferOrchestrator
from stock_kernel.services.unit_tracker import IndividualUnitTracker

__all__ = [
    "CodeSequenceService",
    "IndividualUnitTracker",
    "LocationRegistry",
    "StockAdjustmentService",
    "StockCountService",
    "StockLedger",
    "TransferOrchestrator",
]

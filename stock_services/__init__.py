"""
stock_services -- orchestration above the stock kernel.

Allocation submission, bulk-to-tracked conversion, the optimistic client
view, and the StockContext container that wires everything together.
"""

from stock_services.allocation_service import AllocationService
from stock_services.bulk_conversion import BulkConversionService
from stock_services.speculative import SpeculativeStockView
from stock_services.stock_context import StockContext

__all__ = [
    "AllocationService",
    "BulkConversionService",
    "SpeculativeStockView",
    "StockContext",
]

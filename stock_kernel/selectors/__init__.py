"""Read-only query selectors for the stock kernel."""

from stock_kernel.selectors.reconciliation_selector import ReconciliationSelector
from stock_kernel.selectors.stock_selector import StockSelector

__all__ = [
    "ReconciliationSelector",
    "StockSelector",
]

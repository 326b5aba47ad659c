"""Persistence models for the stock kernel."""

from stock_kernel.models.code_counter import CodeCounter
from stock_kernel.models.individual_unit import IndividualUnit, UnitStatus
from stock_kernel.models.location import Location
from stock_kernel.models.stock_adjustment import StockAdjustment
from stock_kernel.models.stock_entry import StockEntry
from stock_kernel.models.transfer_record import TransferRecord

__all__ = [
    "CodeCounter",
    "IndividualUnit",
    "Location",
    "StockAdjustment",
    "StockEntry",
    "TransferRecord",
    "UnitStatus",
]

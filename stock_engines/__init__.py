"""
Pure calculation engines for the stock ledger.  Zero I/O.
"""

from stock_engines.allocation import (
    Allocation,
    AllocationCandidate,
    add_location,
    allocated_total,
    edit_allocation,
    plan_allocation,
    remaining_needed,
    remove_location,
    validate_consumption,
    validate_initial_stocking,
)

__all__ = [
    "Allocation",
    "AllocationCandidate",
    "add_location",
    "allocated_total",
    "edit_allocation",
    "plan_allocation",
    "remaining_needed",
    "remove_location",
    "validate_consumption",
    "validate_initial_stocking",
]

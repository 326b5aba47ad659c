"""
Module: stock_engines.allocation
Responsibility:
    Propose how a requested quantity should be split across storage
    locations, support the interactive edits a picking screen makes to that
    proposal, and validate the final split before it is submitted.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel exceptions and logging.

Invariants enforced:
    - Greedy largest-first: candidates are taken in descending availability
      (ties keep input order) until the need is covered.
    - No row is ever proposed above its location's availability.
    - Edits never rebalance other rows; the remaining need is recomputed,
      not redistributed.
    - Consumption submit: sum(quantities) == total_needed exactly and
      every row <= its availability.
    - Initial stocking submit: sum(quantities) > 0.

Failure modes:
    - InvalidQuantityError on a negative or non-integer quantity.
    - ValueError on duplicate locations or edits to an unknown row.
    - AllocationMismatchError / AllocationExceedsAvailableError at validation.

Usage:
    from stock_engines.allocation import AllocationCandidate, plan_allocation

    plan = plan_allocation(10, [
        AllocationCandidate(location_a, 7),
        AllocationCandidate(location_b, 5),
    ])
    # -> A: 7, B: 3
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from uuid import UUID

from stock_engines.tracer import traced_engine
from stock_kernel.exceptions import (
    AllocationExceedsAvailableError,
    AllocationMismatchError,
    InvalidQuantityError,
)
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


def _require_quantity(value: object, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQuantityError(value, f"{what} must be an integer")
    if value < 0:
        raise InvalidQuantityError(value, f"{what} cannot be negative")
    return value


@dataclass(frozen=True)
class AllocationCandidate:
    """A location that could supply (or receive) stock, with its availability."""

    location_id: UUID
    available_quantity: int

    def __post_init__(self) -> None:
        _require_quantity(self.available_quantity, "available_quantity")


@dataclass(frozen=True)
class Allocation:
    """
    One (location, quantity) row of a plan.

    ``available_quantity`` is None when the row is unconstrained (initial
    stocking places new stock, so there is nothing to exceed).
    """

    location_id: UUID
    quantity: int
    available_quantity: int | None = None

    def __post_init__(self) -> None:
        _require_quantity(self.quantity, "quantity")
        if self.available_quantity is not None:
            _require_quantity(self.available_quantity, "available_quantity")

    @property
    def exceeds_available(self) -> bool:
        return (
            self.available_quantity is not None
            and self.quantity > self.available_quantity
        )


def allocated_total(allocations: Iterable[Allocation]) -> int:
    return sum(a.quantity for a in allocations)


def remaining_needed(total_needed: int, allocations: Iterable[Allocation]) -> int:
    """Quantity still to place.  Negative means the plan is over-allocated."""
    return total_needed - allocated_total(allocations)


@traced_engine("allocation", "1.0", fingerprint_fields=("total_needed",))
def plan_allocation(
    total_needed: int,
    candidates: Sequence[AllocationCandidate],
    existing: Sequence[Allocation] = (),
) -> tuple[Allocation, ...]:
    """
    Greedy largest-first split of ``total_needed``.

    Existing rows are kept unchanged; only the remaining need is filled,
    from candidates not already present.  Candidates with nothing
    available are skipped.  If availability runs out the plan is short,
    never over.

    Args:
        total_needed: Quantity to place (>= 0).
        candidates: Locations with their current availability.
        existing: Rows the user already has.

    Returns:
        existing rows followed by the newly proposed rows.
    """
    _require_quantity(total_needed, "total_needed")

    plan = list(existing)
    used = {a.location_id for a in plan}
    remaining = remaining_needed(total_needed, plan)

    # sorted() is stable, so equal availabilities keep input order
    for candidate in sorted(candidates, key=lambda c: -c.available_quantity):
        if remaining <= 0:
            break
        if candidate.available_quantity <= 0 or candidate.location_id in used:
            continue
        quantity = min(remaining, candidate.available_quantity)
        plan.append(
            Allocation(
                location_id=candidate.location_id,
                quantity=quantity,
                available_quantity=candidate.available_quantity,
            )
        )
        used.add(candidate.location_id)
        remaining -= quantity

    if remaining > 0:
        logger.info(
            "allocation_short",
            extra={
                "total_needed": total_needed,
                "shortfall": remaining,
                "candidate_count": len(candidates),
            },
        )
    return tuple(plan)


def add_location(
    total_needed: int,
    allocations: Sequence[Allocation],
    candidate: AllocationCandidate,
) -> tuple[Allocation, ...]:
    """
    Append a manually chosen location, pre-filled with
    ``min(remaining_needed, available)`` (never negative).

    Raises:
        ValueError: The location already has a row.
    """
    if any(a.location_id == candidate.location_id for a in allocations):
        raise ValueError(f"Location {candidate.location_id} is already allocated")
    quantity = max(
        0, min(remaining_needed(total_needed, allocations), candidate.available_quantity)
    )
    return tuple(allocations) + (
        Allocation(
            location_id=candidate.location_id,
            quantity=quantity,
            available_quantity=candidate.available_quantity,
        ),
    )


def edit_allocation(
    allocations: Sequence[Allocation],
    location_id: UUID,
    quantity: int,
) -> tuple[Allocation, ...]:
    """
    Set one row's quantity, clamped to ``[0, available_quantity]``.

    Other rows are untouched.

    Raises:
        ValueError: No row for the location.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(quantity, "quantity must be an integer")

    result = []
    found = False
    for row in allocations:
        if row.location_id == location_id:
            found = True
            clamped = max(0, quantity)
            if row.available_quantity is not None:
                clamped = min(clamped, row.available_quantity)
            row = replace(row, quantity=clamped)
        result.append(row)

    if not found:
        raise ValueError(f"No allocation for location {location_id}")
    return tuple(result)


def remove_location(
    allocations: Sequence[Allocation],
    location_id: UUID,
) -> tuple[Allocation, ...]:
    """Drop a row.  The freed quantity is not redistributed."""
    return tuple(a for a in allocations if a.location_id != location_id)


def _require_unique_locations(allocations: Sequence[Allocation]) -> None:
    seen = set()
    for row in allocations:
        if row.location_id in seen:
            raise ValueError(f"Location {row.location_id} appears more than once")
        seen.add(row.location_id)


def validate_consumption(total_needed: int, allocations: Sequence[Allocation]) -> None:
    """
    Check a consumption split before submit.

    Raises:
        InvalidQuantityError: total_needed is not a positive int.
        ValueError: A location appears twice.
        AllocationExceedsAvailableError: A row asks for more than is available.
        AllocationMismatchError: The rows do not add up to total_needed.
    """
    _require_quantity(total_needed, "total_needed")
    if total_needed == 0:
        raise InvalidQuantityError(total_needed, "total_needed must be positive")
    _require_unique_locations(allocations)

    for row in allocations:
        if row.exceeds_available:
            raise AllocationExceedsAvailableError(
                str(row.location_id), row.quantity, row.available_quantity
            )

    allocated = allocated_total(allocations)
    if allocated != total_needed:
        raise AllocationMismatchError(total_needed, allocated)


def validate_initial_stocking(allocations: Sequence[Allocation]) -> int:
    """
    Check an initial-stocking split before submit.

    Returns:
        The total stocked, which becomes the item's total stock.

    Raises:
        ValueError: A location appears twice.
        InvalidQuantityError: Nothing would be stocked.
    """
    _require_unique_locations(allocations)
    total = allocated_total(allocations)
    if total <= 0:
        raise InvalidQuantityError(total, "initial stocking must place at least one unit")
    return total

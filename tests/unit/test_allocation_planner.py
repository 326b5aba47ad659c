"""
Unit tests for the allocation planner (stock_engines.allocation).

Verifies:
- Greedy largest-first proposals, stable on ties
- Interactive edits never rebalance other rows
- Consumption and initial-stocking validation
"""

from uuid import uuid4

import pytest

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
from stock_kernel.exceptions import (
    AllocationExceedsAvailableError,
    AllocationMismatchError,
    InvalidQuantityError,
)

A, B, C = uuid4(), uuid4(), uuid4()


class TestPlanAllocation:
    """Tests for plan_allocation()."""

    def test_largest_first_split(self):
        """Need 10 from A:7, B:5 -> A:7, B:3."""
        plan = plan_allocation(
            10,
            [AllocationCandidate(B, 5), AllocationCandidate(A, 7)],
        )

        assert [(a.location_id, a.quantity) for a in plan] == [(A, 7), (B, 3)]
        assert remaining_needed(10, plan) == 0

    def test_single_location_covers_need(self):
        plan = plan_allocation(4, [AllocationCandidate(A, 7), AllocationCandidate(B, 5)])

        assert len(plan) == 1
        assert plan[0].location_id == A
        assert plan[0].quantity == 4
        assert plan[0].available_quantity == 7

    def test_ties_keep_input_order(self):
        plan = plan_allocation(
            6,
            [AllocationCandidate(B, 3), AllocationCandidate(A, 3)],
        )
        assert [a.location_id for a in plan] == [B, A]

    def test_short_plan_never_exceeds_availability(self):
        """Total availability 4 for a need of 10 leaves 6 unplaced."""
        plan = plan_allocation(10, [AllocationCandidate(A, 3), AllocationCandidate(B, 1)])

        assert allocated_total(plan) == 4
        assert remaining_needed(10, plan) == 6
        assert all(not a.exceeds_available for a in plan)

    def test_zero_availability_skipped(self):
        plan = plan_allocation(2, [AllocationCandidate(A, 0), AllocationCandidate(B, 5)])
        assert [a.location_id for a in plan] == [B]

    def test_zero_need_gives_empty_plan(self):
        assert plan_allocation(0, [AllocationCandidate(A, 5)]) == ()

    def test_existing_rows_kept_and_remaining_filled(self):
        existing = (Allocation(B, 2, available_quantity=5),)
        plan = plan_allocation(
            6,
            [AllocationCandidate(A, 7), AllocationCandidate(B, 5)],
            existing,
        )

        assert plan[0] == existing[0]
        assert [(a.location_id, a.quantity) for a in plan[1:]] == [(A, 4)]

    def test_negative_need_rejected(self):
        with pytest.raises(InvalidQuantityError):
            plan_allocation(-1, [AllocationCandidate(A, 5)])

    def test_negative_availability_rejected(self):
        with pytest.raises(InvalidQuantityError):
            AllocationCandidate(A, -3)


class TestEdits:
    """Tests for add_location(), edit_allocation() and remove_location()."""

    def test_add_location_prefills_remaining(self):
        plan = (Allocation(A, 7, 7),)
        plan = add_location(10, plan, AllocationCandidate(B, 5))

        assert plan[-1].location_id == B
        assert plan[-1].quantity == 3

    def test_add_location_prefill_capped_by_availability(self):
        plan = add_location(10, (), AllocationCandidate(B, 5))
        assert plan[-1].quantity == 5

    def test_add_location_when_overallocated_prefills_zero(self):
        plan = (Allocation(A, 12, 12),)
        plan = add_location(10, plan, AllocationCandidate(B, 5))
        assert plan[-1].quantity == 0

    def test_add_duplicate_location_rejected(self):
        plan = (Allocation(A, 7, 7),)
        with pytest.raises(ValueError):
            add_location(10, plan, AllocationCandidate(A, 7))

    def test_edit_does_not_rebalance(self):
        """Editing A from 7 to 5 leaves B at 3 and 2 still needed."""
        plan = (Allocation(A, 7, 7), Allocation(B, 3, 5))
        plan = edit_allocation(plan, A, 5)

        assert [(a.location_id, a.quantity) for a in plan] == [(A, 5), (B, 3)]
        assert remaining_needed(10, plan) == 2

    def test_edit_clamps_to_bounds(self):
        plan = (Allocation(A, 2, 7),)

        assert edit_allocation(plan, A, 50)[0].quantity == 7
        assert edit_allocation(plan, A, -4)[0].quantity == 0

    def test_edit_unknown_location_rejected(self):
        with pytest.raises(ValueError):
            edit_allocation((Allocation(A, 2, 7),), B, 1)

    def test_edit_rejects_non_integer(self):
        with pytest.raises(InvalidQuantityError):
            edit_allocation((Allocation(A, 2, 7),), A, 1.5)

    def test_remove_location_does_not_redistribute(self):
        plan = (Allocation(A, 7, 7), Allocation(B, 3, 5))
        plan = remove_location(plan, B)

        assert [a.location_id for a in plan] == [A]
        assert remaining_needed(10, plan) == 3

    def test_overage_is_negative_remaining(self):
        plan = (Allocation(A, 7, 7), Allocation(B, 5, 5))
        assert remaining_needed(10, plan) == -2


class TestValidateConsumption:
    """Tests for validate_consumption()."""

    def test_exact_split_passes(self):
        validate_consumption(10, (Allocation(A, 7, 7), Allocation(B, 3, 5)))

    def test_short_split_rejected(self):
        with pytest.raises(AllocationMismatchError) as exc_info:
            validate_consumption(10, (Allocation(A, 7, 7),))

        assert exc_info.value.total_needed == 10
        assert exc_info.value.allocated == 7
        assert exc_info.value.code == "ALLOCATION_MISMATCH"

    def test_over_split_rejected(self):
        with pytest.raises(AllocationMismatchError):
            validate_consumption(10, (Allocation(A, 7, 7), Allocation(B, 5, 5)))

    def test_row_above_availability_rejected(self):
        with pytest.raises(AllocationExceedsAvailableError) as exc_info:
            validate_consumption(10, (Allocation(A, 10, 7),))

        assert exc_info.value.available == 7

    def test_duplicate_location_rejected(self):
        with pytest.raises(ValueError):
            validate_consumption(4, (Allocation(A, 2, 7), Allocation(A, 2, 7)))

    def test_zero_need_rejected(self):
        with pytest.raises(InvalidQuantityError):
            validate_consumption(0, ())


class TestValidateInitialStocking:
    """Tests for validate_initial_stocking()."""

    def test_returns_total(self):
        total = validate_initial_stocking((Allocation(A, 4), Allocation(B, 6), Allocation(C, 0)))
        assert total == 10

    def test_nothing_stocked_rejected(self):
        with pytest.raises(InvalidQuantityError):
            validate_initial_stocking((Allocation(A, 0),))

    def test_empty_rejected(self):
        with pytest.raises(InvalidQuantityError):
            validate_initial_stocking(())

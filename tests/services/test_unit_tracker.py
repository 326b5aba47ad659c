"""
Tests for IndividualUnitTracker -- coded units with optional bulk sync.

Covers:
- create_units(): codes 1001..1003 with bulk increment, duplicates,
  sync_stock=False, counter codes given back on rejection, default category
- transfer_unit(): single move, bulk untouched
- transfer_units(): grouped bulk transfers in one savepoint
- set_status(): any transition, unknown status rejected
"""

from itertools import count
from uuid import uuid4

import pytest

from stock_kernel.exceptions import (
    DuplicateCodeError,
    InsufficientStockError,
    InvalidLocationError,
    InvalidQuantityError,
    InvalidUnitStatusError,
    UnitNotFoundError,
)
from stock_kernel.models.individual_unit import UnitStatus
from stock_kernel.services.unit_tracker import IndividualUnitTracker

ITEM = "tool:laser-level"


def sequence_from(start):
    numbers = count(start)
    return lambda: str(next(numbers))


@pytest.fixture
def wh(locations):
    return locations["warehouse"].id


@pytest.fixture
def van(locations):
    return locations["van"].id


class TestCreateUnits:

    def test_creates_units_and_increments_bulk(self, tracker, ledger, wh):
        """Codes 1001, 1002, 1003 -> three units and bulk +3."""
        ledger.adjust(ITEM, wh, 2)

        units = tracker.create_units(ITEM, wh, 3, sequence_from(1001))

        assert [u.code for u in units] == ["1001", "1002", "1003"]
        assert all(u.status == UnitStatus.AVAILABLE.value for u in units)
        assert all(u.current_location_id == wh for u in units)
        assert ledger.get_quantity(ITEM, wh) == 5

    def test_with_code_sequence_service(self, tracker, codes, wh):
        units = tracker.create_units(ITEM, wh, 3, codes.code_generator("1000"))
        assert [u.code for u in units] == ["1001", "1002", "1003"]

    def test_without_stock_sync(self, tracker, ledger, wh):
        tracker.create_units(ITEM, wh, 2, sequence_from(1), sync_stock=False)
        assert ledger.get_quantity(ITEM, wh) == 0

    def test_duplicate_code_creates_nothing(self, tracker, ledger, wh):
        tracker.create_units(ITEM, wh, 2, sequence_from(1001))

        with pytest.raises(DuplicateCodeError) as exc_info:
            tracker.create_units(ITEM, wh, 3, sequence_from(1000))

        assert exc_info.value.unit_code in ("1001", "1002")
        assert len(tracker.list_units(ITEM)) == 2
        assert ledger.get_quantity(ITEM, wh) == 2

    def test_duplicate_within_batch_rejected(self, tracker, wh):
        with pytest.raises(DuplicateCodeError):
            tracker.create_units(ITEM, wh, 2, lambda: "7")
        assert tracker.list_units(ITEM) == []

    def test_same_code_in_other_category_allowed(self, tracker, wh):
        tracker.create_units(ITEM, wh, 1, sequence_from(1), code_category="1000")
        tracker.create_units(ITEM, wh, 1, sequence_from(1), code_category="2000")
        assert len(tracker.list_units(ITEM)) == 2

    @pytest.mark.parametrize("n", [0, -1])
    def test_count_must_be_positive(self, tracker, wh, n):
        with pytest.raises(InvalidQuantityError):
            tracker.create_units(ITEM, wh, n, sequence_from(1))

    def test_inactive_location_rejected(self, tracker, registry, wh):
        registry.deactivate(wh)
        with pytest.raises(InvalidLocationError):
            tracker.create_units(ITEM, wh, 1, sequence_from(1))

    def test_rejected_batch_gives_back_counter_codes(self, tracker, codes, wh):
        tracker.create_units(ITEM, wh, 1, sequence_from(1002), code_category="1000")

        with pytest.raises(DuplicateCodeError):
            tracker.create_units(ITEM, wh, 2, codes.code_generator("1000"))

        assert codes.peek_code("1000") == "1001"
        units = tracker.create_units(ITEM, wh, 1, codes.code_generator("1000"))
        assert [u.code for u in units] == ["1001"]

    def test_configured_default_category(self, session, ledger, registry, orchestrator, wh):
        tracker = IndividualUnitTracker(
            session, ledger, registry, orchestrator, default_code_category="3000"
        )

        units = tracker.create_units(ITEM, wh, 1, sequence_from(3001))

        assert units[0].code_category == "3000"


class TestTransferUnit:

    def test_moves_unit_only(self, tracker, ledger, wh, van):
        unit = tracker.create_units(ITEM, wh, 1, sequence_from(1))[0]

        moved = tracker.transfer_unit(unit.id, van)

        assert moved.current_location_id == van
        assert ledger.get_quantity(ITEM, wh) == 1
        assert ledger.get_quantity(ITEM, van) == 0

    def test_unknown_unit(self, tracker, van):
        with pytest.raises(UnitNotFoundError):
            tracker.transfer_unit(uuid4(), van)

    def test_status_does_not_block_transfer(self, tracker, wh, van):
        unit = tracker.create_units(ITEM, wh, 1, sequence_from(1))[0]
        tracker.set_status(unit.id, UnitStatus.OUT_OF_SERVICE)

        assert tracker.transfer_unit(unit.id, van).current_location_id == van


class TestTransferUnits:

    def test_grouped_bulk_transfers(self, tracker, ledger, locations, wh, van):
        shelf = locations["shelf"].id
        at_wh = tracker.create_units(ITEM, wh, 3, sequence_from(1))
        at_shelf = tracker.create_units(ITEM, shelf, 2, sequence_from(10))

        moved, transfers = tracker.transfer_units(
            [u.id for u in at_wh[:2]] + [u.id for u in at_shelf], van
        )

        assert len(moved) == 4
        assert sorted(t.record.quantity for t in transfers) == [2, 2]
        assert ledger.get_quantity(ITEM, wh) == 1
        assert ledger.get_quantity(ITEM, shelf) == 0
        assert ledger.get_quantity(ITEM, van) == 4
        assert len(tracker.list_units(ITEM, van)) == 4

    def test_units_already_there_are_skipped(self, tracker, wh):
        units = tracker.create_units(ITEM, wh, 2, sequence_from(1))

        moved, transfers = tracker.transfer_units([u.id for u in units], wh)

        assert moved == []
        assert transfers == []

    def test_short_bulk_moves_nothing(self, tracker, ledger, wh, van):
        units = tracker.create_units(ITEM, wh, 2, sequence_from(1), sync_stock=False)
        ledger.adjust(ITEM, wh, 1)

        with pytest.raises(InsufficientStockError):
            tracker.transfer_units([u.id for u in units], van)

        assert all(u.current_location_id == wh for u in tracker.list_units(ITEM))
        assert ledger.get_quantity(ITEM, wh) == 1
        assert ledger.get_quantity(ITEM, van) == 0

    def test_without_stock_sync(self, tracker, ledger, wh, van):
        units = tracker.create_units(ITEM, wh, 2, sequence_from(1))

        moved, transfers = tracker.transfer_units([u.id for u in units], van, sync_stock=False)

        assert len(moved) == 2
        assert transfers == []
        assert ledger.get_quantity(ITEM, wh) == 2


class TestSetStatus:

    def test_any_transition_allowed(self, tracker, wh):
        unit = tracker.create_units(ITEM, wh, 1, sequence_from(1))[0]

        for status in ("assigned", UnitStatus.MAINTENANCE, "available", "out_of_service"):
            tracker.set_status(unit.id, status)

        assert tracker.get(unit.id).status == "out_of_service"

    def test_unknown_status_rejected(self, tracker, wh):
        unit = tracker.create_units(ITEM, wh, 1, sequence_from(1))[0]
        with pytest.raises(InvalidUnitStatusError):
            tracker.set_status(unit.id, "lost")

    def test_list_filters_by_status(self, tracker, wh):
        units = tracker.create_units(ITEM, wh, 3, sequence_from(1))
        tracker.set_status(units[0].id, UnitStatus.ASSIGNED)

        available = tracker.list_units(ITEM, status=UnitStatus.AVAILABLE)
        assert [u.code for u in available] == ["2", "3"]

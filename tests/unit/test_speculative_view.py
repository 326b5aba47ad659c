"""
Unit tests for SpeculativeStockView (stock_services.speculative).

Verifies:
- Speculative value visible while commit runs
- Confirmed value replaces the speculative one
- Failure reverts to the prior value and re-raises
- Invalidation touches only the named keys
"""

from uuid import uuid4

import pytest

from stock_kernel.exceptions import InsufficientStockError
from stock_services.speculative import SpeculativeStockView

LOC_A, LOC_B = uuid4(), uuid4()


@pytest.fixture
def view():
    v = SpeculativeStockView()
    v.load("drill", LOC_A, 10)
    v.load("drill", LOC_B, 4)
    v.load("saw", LOC_A, 1)
    return v


class TestApply:

    def test_speculative_value_seen_during_commit(self, view):
        seen = []

        def commit():
            seen.append(view.get("drill", LOC_A))
            return 7

        assert view.apply("drill", LOC_A, -3, commit) == 7
        assert seen == [7]
        assert view.get("drill", LOC_A) == 7

    def test_confirmed_value_wins(self, view):
        """Another writer got there first: the ledger's number is kept."""
        view.apply("drill", LOC_A, -3, lambda: 5)
        assert view.get("drill", LOC_A) == 5

    def test_failure_reverts_and_reraises(self, view):
        def commit():
            raise InsufficientStockError("drill", str(LOC_A), 30, 10)

        with pytest.raises(InsufficientStockError):
            view.apply("drill", LOC_A, -30, commit)

        assert view.get("drill", LOC_A) == 10

    def test_unloaded_key_stores_confirmed_value(self, view):
        other = uuid4()
        assert view.apply("drill", other, 2, lambda: 2) == 2
        assert view.get("drill", other) == 2

    def test_unloaded_key_stays_unknown_after_failure(self, view):
        other = uuid4()

        def commit():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            view.apply("drill", other, 2, commit)
        assert view.get("drill", other) is None

    def test_versions_bump_on_every_change(self, view):
        before = view.version("drill", LOC_A)
        view.apply("drill", LOC_A, 1, lambda: 11)
        # speculative write + confirmation
        assert view.version("drill", LOC_A) == before + 2


class TestInvalidate:

    def test_single_key(self, view):
        assert view.invalidate("drill", LOC_A) == 1

        assert view.get("drill", LOC_A) is None
        assert view.get("drill", LOC_B) == 4
        assert view.get("saw", LOC_A) == 1

    def test_whole_item(self, view):
        assert view.invalidate("drill") == 2

        assert view.get("drill", LOC_A) is None
        assert view.get("drill", LOC_B) is None
        assert view.get("saw", LOC_A) == 1

    def test_unknown_key_is_noop(self, view):
        assert view.invalidate("hammer") == 0

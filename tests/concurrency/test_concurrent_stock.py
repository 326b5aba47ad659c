"""
Concurrency tests for stock mutation.

Each worker runs in its own session and commits, so rows are genuinely
contended.  Requires PostgreSQL: in-memory SQLite shares one connection
across threads.

Expected Behavior:
- Concurrent debits never drive a quantity below zero
- A debit that loses the race is rejected with InsufficientStockError
- Transfers between two locations conserve the item total
- Concurrent first writes to an absent entry all land
- Unit codes issued concurrently are unique
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier
from uuid import uuid4

import pytest

from stock_kernel.exceptions import InsufficientStockError
from stock_kernel.models.location import Location
from stock_kernel.services.code_sequence_service import CodeSequenceService
from stock_kernel.services.stock_ledger import StockLedger
from stock_kernel.services.transfer_orchestrator import TransferOrchestrator

pytestmark = [pytest.mark.postgres, pytest.mark.slow_locks]

WORKERS = 8


def setup_locations(session, actor_id, count=2):
    locations = [
        Location(
            code=f"CC-{uuid4().hex[:8]}",
            name=f"Concurrency location {i}",
            is_active=True,
            created_by_id=actor_id,
        )
        for i in range(count)
    ]
    session.add_all(locations)
    session.commit()
    return [loc.id for loc in locations]


def run_concurrently(session_factory, work, count=WORKERS):
    """
    Run ``work(session, index)`` in ``count`` threads released together.

    Returns a list of (result, exception) pairs in index order.
    """
    barrier = Barrier(count)

    def worker(index):
        session = session_factory()
        try:
            barrier.wait()
            result = work(session, index)
            session.commit()
            return result, None
        except Exception as exc:
            session.rollback()
            return None, exc
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(worker, range(count)))


class TestConcurrentDebits:

    def test_oversubscribed_debits_never_go_negative(self, pg_session_factory, test_actor_id):
        setup = pg_session_factory()
        (loc,) = setup_locations(setup, test_actor_id, count=1)
        StockLedger(setup).adjust("widget", loc, 5)
        setup.commit()

        outcomes = run_concurrently(
            pg_session_factory,
            lambda s, i: StockLedger(s).adjust("widget", loc, -1),
        )

        successes = [r for r, exc in outcomes if exc is None]
        failures = [exc for r, exc in outcomes if exc is not None]
        assert len(successes) == 5
        assert len(failures) == WORKERS - 5
        assert all(isinstance(exc, InsufficientStockError) for exc in failures)

        check = pg_session_factory()
        assert StockLedger(check).get_quantity("widget", loc) == 0

    def test_first_writes_to_absent_entry_all_land(self, pg_session_factory, test_actor_id):
        setup = pg_session_factory()
        (loc,) = setup_locations(setup, test_actor_id, count=1)

        outcomes = run_concurrently(
            pg_session_factory,
            lambda s, i: StockLedger(s).adjust("gasket", loc, 2),
        )

        assert [exc for _, exc in outcomes] == [None] * WORKERS
        check = pg_session_factory()
        assert StockLedger(check).get_quantity("gasket", loc) == 2 * WORKERS


class TestConcurrentTransfers:

    def test_parallel_transfers_conserve_total(self, pg_session_factory, test_actor_id):
        setup = pg_session_factory()
        a, b = setup_locations(setup, test_actor_id)
        ledger = StockLedger(setup)
        ledger.adjust("cable", a, 40)
        ledger.adjust("cable", b, 5)
        setup.commit()

        outcomes = run_concurrently(
            pg_session_factory,
            lambda s, i: TransferOrchestrator(s).transfer(
                "cable", a, b, 3, actor_id=test_actor_id
            ),
        )

        assert [exc for _, exc in outcomes] == [None] * WORKERS
        check = StockLedger(pg_session_factory())
        assert check.get_quantity("cable", a) == 40 - 3 * WORKERS
        assert check.total_for_item("cable") == 45

    def test_draining_transfers_reject_the_excess(self, pg_session_factory, test_actor_id):
        setup = pg_session_factory()
        a, b = setup_locations(setup, test_actor_id)
        StockLedger(setup).adjust("fuse", a, 9)
        setup.commit()

        outcomes = run_concurrently(
            pg_session_factory,
            lambda s, i: TransferOrchestrator(s).transfer("fuse", a, b, 2),
        )

        moved = sum(1 for _, exc in outcomes if exc is None)
        assert moved == 4
        assert all(
            isinstance(exc, InsufficientStockError)
            for _, exc in outcomes
            if exc is not None
        )
        check = StockLedger(pg_session_factory())
        assert check.get_quantity("fuse", a) == 1
        assert check.get_quantity("fuse", b) == 8


class TestConcurrentCodes:

    def test_codes_are_unique(self, pg_session_factory):
        category = "5000"

        outcomes = run_concurrently(
            pg_session_factory,
            lambda s, i: [CodeSequenceService(s).next_code(category) for _ in range(3)],
        )

        assert [exc for _, exc in outcomes] == [None] * WORKERS
        codes = [code for result, _ in outcomes for code in result]
        assert len(codes) == len(set(codes)) == 3 * WORKERS
        assert sorted(codes, key=int) == [str(5000 + n) for n in range(1, 3 * WORKERS + 1)]

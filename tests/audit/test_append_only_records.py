"""
Append-only enforcement for transfer records and stock adjustments.

Layer 1 (ORM listeners) is tested on every backend.  Layer 2 (PostgreSQL
triggers) is tested with raw SQL that bypasses the ORM.
"""

import pytest
from sqlalchemy import delete, select, text, update
from sqlalchemy.exc import DBAPIError

from stock_kernel.db.engine import get_engine
from stock_kernel.db.triggers import ALL_TRIGGER_NAMES, get_installed_triggers, triggers_installed
from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.models.stock_adjustment import StockAdjustment
from stock_kernel.models.transfer_record import TransferRecord

ITEM = "tool:multimeter"


@pytest.fixture
def transfer_record(session, ledger, orchestrator, locations):
    wh, van = locations["warehouse"].id, locations["van"].id
    ledger.adjust(ITEM, wh, 5)
    result = orchestrator.transfer(ITEM, wh, van, 2, notes="original")
    return session.get(TransferRecord, result.record.id)


@pytest.fixture
def adjustment_row(session, adjustments, locations):
    info = adjustments.record_adjustment(ITEM, locations["warehouse"].id, 3, "found")
    return session.get(StockAdjustment, info.id)


class TestOrmListeners:
    """Layer 1: ORM modifications are refused before any SQL is sent."""

    def test_transfer_record_update_blocked(self, session, transfer_record):
        transfer_record.quantity = 200

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            with session.begin_nested():
                session.flush()

        assert exc_info.value.entity_type == "TransferRecord"
        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"

    def test_transfer_record_delete_blocked(self, session, transfer_record):
        session.delete(transfer_record)

        with pytest.raises(ImmutabilityViolationError):
            with session.begin_nested():
                session.flush()

    def test_adjustment_update_blocked(self, session, adjustment_row):
        adjustment_row.reason = "rewritten"

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            with session.begin_nested():
                session.flush()

        assert exc_info.value.entity_type == "StockAdjustment"

    def test_adjustment_delete_blocked(self, session, adjustment_row):
        session.delete(adjustment_row)

        with pytest.raises(ImmutabilityViolationError):
            with session.begin_nested():
                session.flush()

    def test_violation_logged(self, session, transfer_record, captured_logs):
        transfer_record.notes = "edited"

        with pytest.raises(ImmutabilityViolationError):
            with session.begin_nested():
                session.flush()

        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked and blocked[0]["operation"] == "UPDATE"


@pytest.mark.postgres
class TestDatabaseTriggers:
    """Layer 2: raw SQL cannot rewrite or remove audit rows."""

    def test_all_triggers_installed(self, db_tables):
        engine = get_engine()
        assert triggers_installed(engine)
        assert set(ALL_TRIGGER_NAMES) <= set(get_installed_triggers(engine))

    def test_raw_update_blocked(self, session, transfer_record):
        with pytest.raises(DBAPIError):
            with session.begin_nested():
                session.execute(
                    text("UPDATE transfer_records SET quantity = 99 WHERE id = :id"),
                    {"id": str(transfer_record.id)},
                )

    def test_bulk_delete_blocked(self, session, adjustment_row):
        with pytest.raises(DBAPIError):
            with session.begin_nested():
                session.execute(delete(StockAdjustment))

    def test_bulk_update_blocked(self, session, transfer_record):
        with pytest.raises(DBAPIError):
            with session.begin_nested():
                session.execute(
                    update(TransferRecord)
                    .values(notes="rewritten")
                    .execution_options(synchronize_session=False)
                )

        notes = session.execute(
            select(TransferRecord.notes).where(TransferRecord.id == transfer_record.id)
        ).scalar_one()
        assert notes == "original"

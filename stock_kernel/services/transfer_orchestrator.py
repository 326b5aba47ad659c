"""
TransferOrchestrator -- moves stock between locations as one auditable unit.

Responsibility:
    Composes a source debit, a destination credit and an audit row into a
    single logical transfer.  Initial stocking is a transfer with no source.

Architecture position:
    Kernel > Services -- imperative shell.
    Depends on StockLedger (mutations), LocationRegistry (validation),
    StockSelector (history) and Clock (timestamps).

Invariants enforced:
    - Conservation: a transfer with a source never changes the item's total.
    - Atomicity: if the credit fails after the debit succeeded, the net
      visible state is as if nothing happened.  In ``savepoint`` mode both
      adjustments share one SAVEPOINT; in ``compensate`` mode the source is
      re-credited before the error propagates.
    - Audit: exactly one TransferRecord per successful transfer, written in
      its own SAVEPOINT after the stock has moved.

Failure modes:
    - InvalidQuantityError: quantity is not a positive int.
    - InvalidTransferError: source equals destination.
    - InsufficientStockError / InvalidLocationError / LocationNotFoundError /
      ConflictError from the ledger: the transfer is aborted with no effect.
    - Audit write failure: NOT raised.  The transfer stands and the result
      carries an AuditWriteFailedError warning with a synthetic record.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import TransferRecordInfo, TransferResult
from stock_kernel.exceptions import (
    AuditWriteFailedError,
    InvalidQuantityError,
    InvalidTransferError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.transfer_record import TransferRecord
from stock_kernel.selectors.stock_selector import StockSelector, transfer_record_to_dto
from stock_kernel.services.base import BaseService
from stock_kernel.services.location_registry import (
    LocationRegistry,
    coerce_location_id,
)
from stock_kernel.services.stock_ledger import (
    StockLedger,
    require_int,
    require_item_id,
)

logger = get_logger("services.transfer_orchestrator")

ROLLBACK_SAVEPOINT = "savepoint"
ROLLBACK_COMPENSATE = "compensate"
ROLLBACK_MODES = (ROLLBACK_SAVEPOINT, ROLLBACK_COMPENSATE)


class TransferOrchestrator(BaseService[TransferRecord]):
    """
    Debit, credit and audit as one transfer.

    Contract:
        ``transfer`` either moves exactly ``quantity`` from source to
        destination and returns a TransferResult, or raises and leaves every
        stock entry unchanged.

    Non-goals:
        - Does NOT roll back stock because the audit write failed.
        - Does NOT retry on InsufficientStockError.

    Usage:
        with session_scope() as session:
            registry = LocationRegistry(session)
            ledger = StockLedger(session, registry)
            result = TransferOrchestrator(session, ledger, registry).transfer(
                "consumable:42", warehouse_id, van_id, 4,
            )
            if result.degraded:
                notify(result.warning)
    """

    def __init__(
        self,
        session: Session,
        ledger: StockLedger | None = None,
        registry: LocationRegistry | None = None,
        clock: Clock | None = None,
        rollback_mode: str = ROLLBACK_SAVEPOINT,
    ):
        super().__init__(session)
        if rollback_mode not in ROLLBACK_MODES:
            raise ValueError(
                f"rollback_mode must be one of {ROLLBACK_MODES}, got {rollback_mode!r}"
            )
        self._registry = registry or (ledger.registry if ledger else LocationRegistry(session))
        self._ledger = ledger or StockLedger(session, self._registry)
        self._clock = clock or SystemClock()
        self._rollback_mode = rollback_mode

    @property
    def ledger(self) -> StockLedger:
        return self._ledger

    def transfer(
        self,
        item_id: str,
        from_location_id: UUID | None,
        to_location_id: UUID,
        quantity: int,
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> TransferResult:
        """
        Move ``quantity`` of an item, or materialize it when there is no source.

        Preconditions:
            - quantity is an int > 0.
            - from_location_id, when given, differs from to_location_id.

        Postconditions:
            - Source decreased and destination increased by ``quantity``.
            - One TransferRecord appended, or a degraded result returned.

        Raises:
            InvalidQuantityError, InvalidTransferError, InsufficientStockError,
            InvalidLocationError, LocationNotFoundError, ConflictError.
        """
        require_int(quantity)
        if quantity <= 0:
            raise InvalidQuantityError(quantity, "transfer quantity must be positive")
        require_item_id(item_id)

        to_id = coerce_location_id(to_location_id)
        from_id = coerce_location_id(from_location_id) if from_location_id is not None else None
        if from_id == to_id:
            raise InvalidTransferError(item_id, "source and destination are the same location")

        with LogContext.bind(item_id=item_id, actor_id=actor_id):
            if self._rollback_mode == ROLLBACK_SAVEPOINT:
                self._move_in_savepoint(item_id, from_id, to_id, quantity)
            else:
                self._move_with_compensation(item_id, from_id, to_id, quantity)

            record, warning = self._write_audit(
                item_id, from_id, to_id, quantity, notes, actor_id
            )

            logger.info(
                "transfer_completed",
                extra={
                    "transfer_id": str(record.id) if record.id else None,
                    "from_location_id": str(from_id) if from_id else None,
                    "to_location_id": str(to_id),
                    "quantity": quantity,
                    "degraded": warning is not None,
                },
            )
            return TransferResult(record=record, warning=warning)

    def _move_in_savepoint(
        self,
        item_id: str,
        from_id: UUID | None,
        to_id: UUID,
        quantity: int,
    ) -> None:
        savepoint = self.session.begin_nested()
        try:
            if from_id is not None:
                self._ledger.adjust(item_id, from_id, -quantity)
            self._ledger.adjust(item_id, to_id, quantity)
        except Exception as exc:
            savepoint.rollback()
            self._log_rejected(item_id, from_id, to_id, quantity, exc)
            raise
        savepoint.commit()

    def _move_with_compensation(
        self,
        item_id: str,
        from_id: UUID | None,
        to_id: UUID,
        quantity: int,
    ) -> None:
        if from_id is not None:
            try:
                self._ledger.adjust(item_id, from_id, -quantity)
            except Exception as exc:
                self._log_rejected(item_id, from_id, to_id, quantity, exc)
                raise

        try:
            self._ledger.adjust(item_id, to_id, quantity)
        except Exception as exc:
            self._log_rejected(item_id, from_id, to_id, quantity, exc)
            if from_id is not None:
                try:
                    self._ledger.adjust(item_id, from_id, quantity, allow_inactive=True)
                except Exception:
                    logger.error(
                        "transfer_compensation_failed",
                        exc_info=True,
                        extra={"from_location_id": str(from_id), "quantity": quantity},
                    )
                    raise
                logger.warning(
                    "transfer_compensated",
                    extra={"from_location_id": str(from_id), "quantity": quantity},
                )
            raise

    def _log_rejected(self, item_id, from_id, to_id, quantity, exc: Exception) -> None:
        logger.info(
            "transfer_rejected",
            extra={
                "from_location_id": str(from_id) if from_id else None,
                "to_location_id": str(to_id),
                "quantity": quantity,
                "error_code": getattr(exc, "code", type(exc).__name__),
            },
        )

    def _insert_record(self, record: TransferRecord) -> TransferRecord:
        self.session.add(record)
        self.session.flush()
        return record

    def _write_audit(
        self,
        item_id: str,
        from_id: UUID | None,
        to_id: UUID,
        quantity: int,
        notes: str | None,
        actor_id: UUID | None,
    ) -> tuple[TransferRecordInfo, AuditWriteFailedError | None]:
        """Append the TransferRecord; a failure degrades the result instead of raising."""
        occurred_at = self._clock.now()
        savepoint = self.session.begin_nested()
        try:
            record = self._insert_record(
                TransferRecord(
                    item_id=item_id,
                    from_location_id=from_id,
                    to_location_id=to_id,
                    quantity=quantity,
                    occurred_at=occurred_at,
                    notes=notes,
                    actor_id=actor_id,
                )
            )
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            warning = AuditWriteFailedError(item_id, str(exc))
            logger.warning(
                "transfer_audit_write_failed",
                exc_info=True,
                extra={
                    "from_location_id": str(from_id) if from_id else None,
                    "to_location_id": str(to_id),
                    "quantity": quantity,
                },
            )
            synthetic = TransferRecordInfo(
                id=None,
                item_id=item_id,
                from_location_id=from_id,
                to_location_id=to_id,
                quantity=quantity,
                occurred_at=occurred_at,
                notes=notes,
                actor_id=actor_id,
            )
            return synthetic, warning

        return transfer_record_to_dto(record), None

    def history(
        self,
        item_id: str,
        location_id: UUID | None = None,
        limit: int = 50,
    ) -> list[TransferRecordInfo]:
        """Transfers of an item, newest first."""
        return StockSelector(self.session).history(item_id, location_id, limit)

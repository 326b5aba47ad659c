"""
StockLedger -- authoritative quantity-at-location state.

Responsibility:
    Holds, per (item_id, location_id), a non-negative integer quantity and
    provides the mutation primitives every other flow is built on.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by TransferOrchestrator, StockAdjustmentService,
    IndividualUnitTracker and the allocation/conversion services.

Invariants enforced:
    - Non-negativity: quantity >= 0 always.  ``adjust`` checks it inside the
      UPDATE itself and the table carries CHECK (quantity >= 0) as backstop.
    - Atomic read-modify-write: ``adjust`` is a single conditional
      ``UPDATE ... SET quantity = quantity + :delta`` statement.  The value
      is never computed client-side from an earlier read.
    - Zero rows are absent: rows that reach zero are kept, but every read
      filters them out and ``get_quantity`` returns 0 for missing rows.

Failure modes:
    - InvalidQuantityError: non-integer, boolean, or negative absolute value.
    - InsufficientStockError: debit larger than quantity on hand; state is
      unchanged.
    - LocationNotFoundError / InvalidLocationError: unknown location, or
      inactive location asked to receive stock.
    - ConflictError: the bounded retry loop lost every race.
    - Driver errors (OperationalError, timeouts) propagate unchanged.  The
      caller must treat them as an unknown outcome and re-read.

Concurrency:
    Under PostgreSQL READ COMMITTED the conditional UPDATE takes the row
    lock and re-evaluates its WHERE clause against the latest committed
    version, so concurrent debits serialize on the row and can never drive
    it negative.  Transfers on disjoint (item, location) pairs touch
    disjoint rows and never block each other.  The first credit for a pair
    races on the unique constraint; the loser's INSERT fails inside its own
    SAVEPOINT and it retries as an UPDATE.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_kernel.exceptions import (
    ConflictError,
    InsufficientStockError,
    InvalidQuantityError,
    LocationNotFoundError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.stock_entry import StockEntry
from stock_kernel.services.base import BaseService
from stock_kernel.services.location_registry import (
    LocationRegistry,
    coerce_location_id,
)

logger = get_logger("services.stock_ledger")

DEFAULT_MAX_CONFLICT_RETRIES = 3


def require_int(value: object, what: str = "quantity") -> int:
    """Reject anything that is not a plain integer (bool included)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQuantityError(value, f"{what} must be an integer")
    return value


def require_item_id(item_id: object) -> str:
    if not isinstance(item_id, str) or not item_id.strip():
        raise ValueError(f"item_id must be a non-empty string, got {item_id!r}")
    return item_id


class StockLedger(BaseService[StockEntry]):
    """
    Quantity-per-location record for every item.

    Contract:
        ``adjust`` is the only mutation safe for concurrent callers.
        ``set_quantity`` is an administrative upsert for seeding and
        migrations and must not be used to apply a computed change.

    Guarantees:
        - Every mutation bumps the row's ``version``.
        - A failed mutation leaves the row exactly as it was.

    Non-goals:
        - Does NOT write audit rows; TransferOrchestrator and
          StockAdjustmentService do.
        - Does NOT retry on InsufficientStockError.
    """

    def __init__(
        self,
        session: Session,
        registry: LocationRegistry | None = None,
        max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES,
    ):
        super().__init__(session)
        if max_conflict_retries < 1:
            raise ValueError("max_conflict_retries must be at least 1")
        self._registry = registry or LocationRegistry(session)
        self._max_attempts = max_conflict_retries

    @property
    def registry(self) -> LocationRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _current(self, item_id: str, location_id: UUID) -> int | None:
        """Quantity of the row, or None if no row exists."""
        return self.session.execute(
            select(StockEntry.quantity).where(
                StockEntry.item_id == item_id,
                StockEntry.location_id == location_id,
            )
        ).scalar_one_or_none()

    def get_quantity(self, item_id: str, location_id: UUID) -> int:
        """Quantity on hand; 0 if no entry exists.  Never fails on unknown ids."""
        try:
            location_id = coerce_location_id(location_id)
        except LocationNotFoundError:
            return 0
        return self._current(item_id, location_id) or 0

    def list_by_item(self, item_id: str) -> dict[UUID, int]:
        """All non-zero quantities of an item, keyed by location."""
        rows = self.session.execute(
            select(StockEntry.location_id, StockEntry.quantity)
            .where(StockEntry.item_id == item_id, StockEntry.quantity > 0)
            .order_by(StockEntry.quantity.desc(), StockEntry.location_id)
        )
        return {location_id: quantity for location_id, quantity in rows}

    def total_for_item(self, item_id: str) -> int:
        total = self.session.execute(
            select(func.coalesce(func.sum(StockEntry.quantity), 0)).where(
                StockEntry.item_id == item_id
            )
        ).scalar_one()
        return int(total)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _insert_entry(self, item_id: str, location_id: UUID, quantity: int) -> bool:
        """
        Create the row inside a SAVEPOINT.

        Returns False if a concurrent transaction created it first; the
        savepoint is rolled back and the caller's transaction is intact.
        """
        savepoint = self.session.begin_nested()
        try:
            self.session.execute(
                insert(StockEntry).values(
                    id=uuid4(),
                    item_id=item_id,
                    location_id=location_id,
                    quantity=quantity,
                    version=1,
                )
            )
            savepoint.commit()
            return True
        except IntegrityError:
            savepoint.rollback()
            logger.debug(
                "stock_entry_insert_race",
                extra={"item_id": item_id, "location_id": str(location_id)},
            )
            return False

    def adjust(
        self,
        item_id: str,
        location_id: UUID,
        delta: int,
        *,
        allow_inactive: bool = False,
    ) -> int:
        """
        Atomically apply ``quantity += delta``.

        Preconditions:
            - delta is an int.
            - The location exists; for delta > 0 it is also active unless
              allow_inactive is set (used to re-credit a drained source
              when a transfer is compensated).

        Postconditions:
            - Returns the new quantity (>= 0).
            - On any exception the stored quantity is unchanged.

        Raises:
            InvalidQuantityError, InsufficientStockError,
            LocationNotFoundError, InvalidLocationError, ConflictError.
        """
        require_int(delta, "delta")
        require_item_id(item_id)
        location_id = coerce_location_id(location_id)

        if delta > 0 and not allow_inactive:
            self._registry.require_active(location_id)
        else:
            # Debits from inactive locations are allowed so they can be drained
            self._registry.get(location_id)

        if delta == 0:
            return self.get_quantity(item_id, location_id)

        for attempt in range(1, self._max_attempts + 1):
            new_quantity = self.session.execute(
                update(StockEntry)
                .where(
                    StockEntry.item_id == item_id,
                    StockEntry.location_id == location_id,
                    StockEntry.quantity + delta >= 0,
                )
                .values(
                    quantity=StockEntry.quantity + delta,
                    version=StockEntry.version + 1,
                )
                .returning(StockEntry.quantity)
                .execution_options(synchronize_session=False)
            ).scalar_one_or_none()

            if new_quantity is not None:
                logger.info(
                    "stock_adjusted",
                    extra={
                        "item_id": item_id,
                        "location_id": str(location_id),
                        "delta": delta,
                        "new_quantity": new_quantity,
                    },
                )
                return new_quantity

            current = self._current(item_id, location_id)

            if current is None:
                if delta < 0:
                    self._reject(item_id, location_id, -delta, 0)
                if self._insert_entry(item_id, location_id, delta):
                    logger.info(
                        "stock_adjusted",
                        extra={
                            "item_id": item_id,
                            "location_id": str(location_id),
                            "delta": delta,
                            "new_quantity": delta,
                        },
                    )
                    return delta
                continue

            if current + delta < 0:
                self._reject(item_id, location_id, -delta, current)

            # Row changed between the UPDATE and the re-read
            logger.info(
                "stock_adjust_conflict_retry",
                extra={
                    "item_id": item_id,
                    "location_id": str(location_id),
                    "attempt": attempt,
                },
            )

        logger.warning(
            "stock_adjust_conflict_exhausted",
            extra={
                "item_id": item_id,
                "location_id": str(location_id),
                "attempts": self._max_attempts,
            },
        )
        raise ConflictError(item_id, str(location_id), self._max_attempts)

    def _reject(self, item_id: str, location_id: UUID, requested: int, available: int):
        logger.info(
            "stock_adjust_rejected",
            extra={
                "item_id": item_id,
                "location_id": str(location_id),
                "requested": requested,
                "available": available,
            },
        )
        raise InsufficientStockError(item_id, str(location_id), requested, available)

    def set_quantity(self, item_id: str, location_id: UUID, quantity: int) -> int:
        """
        Administrative upsert of an absolute quantity.

        Creates the entry if absent.  Not safe for applying a computed
        change under concurrency; use ``adjust`` for that.

        Raises:
            InvalidQuantityError: quantity is not a non-negative int.
            LocationNotFoundError / InvalidLocationError.
            ConflictError: lost every insert race (retry budget exhausted).
        """
        require_int(quantity)
        if quantity < 0:
            raise InvalidQuantityError(quantity, "quantity cannot be negative")
        require_item_id(item_id)
        location_id = coerce_location_id(location_id)
        self._registry.require_active(location_id)

        for _ in range(self._max_attempts):
            updated = self.session.execute(
                update(StockEntry)
                .where(
                    StockEntry.item_id == item_id,
                    StockEntry.location_id == location_id,
                )
                .values(quantity=quantity, version=StockEntry.version + 1)
                .returning(StockEntry.id)
                .execution_options(synchronize_session=False)
            ).scalar_one_or_none()

            if updated is not None or self._insert_entry(item_id, location_id, quantity):
                logger.info(
                    "stock_quantity_set",
                    extra={
                        "item_id": item_id,
                        "location_id": str(location_id),
                        "quantity": quantity,
                    },
                )
                return quantity

        raise ConflictError(item_id, str(location_id), self._max_attempts)

"""
BulkConversionService -- turn anonymous bulk stock into coded units.

Items that start out as a bulk count can later be tracked one by one.
Conversion creates units for stock that already exists, so the bulk
StockEntry is NOT incremented.  Only bulk not already represented by an
available tracked unit at the same location can be converted.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from stock_kernel.domain.dtos import UnitInfo
from stock_kernel.exceptions import InsufficientStockError, InvalidQuantityError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.individual_unit import UnitStatus
from stock_kernel.selectors.reconciliation_selector import ReconciliationSelector
from stock_kernel.services.code_sequence_service import (
    DEFAULT_CODE_CATEGORY,
    CodeSequenceService,
)
from stock_kernel.services.location_registry import coerce_location_id
from stock_kernel.services.stock_ledger import StockLedger, require_int
from stock_kernel.services.unit_tracker import IndividualUnitTracker

logger = get_logger("services.bulk_conversion")


class BulkConversionService:
    """Bulk-to-tracked migration for one item and location at a time."""

    def __init__(
        self,
        session: Session,
        ledger: StockLedger,
        tracker: IndividualUnitTracker,
        codes: CodeSequenceService | None = None,
        default_code_category: str = DEFAULT_CODE_CATEGORY,
    ) -> None:
        self._session = session
        self._ledger = ledger
        self._tracker = tracker
        self._codes = codes or CodeSequenceService(session)
        self._default_code_category = default_code_category

    def conversion_needs(self, item_id: str) -> dict[UUID, int]:
        """Per location, bulk quantity not yet covered by available units."""
        return ReconciliationSelector(self._session).conversion_needs(item_id)

    def convertible(self, item_id: str, location_id: UUID) -> int:
        location_id = coerce_location_id(location_id)
        bulk = self._ledger.get_quantity(item_id, location_id)
        tracked = len(
            self._tracker.list_units(item_id, location_id, status=UnitStatus.AVAILABLE)
        )
        return max(0, bulk - tracked)

    def convert(
        self,
        item_id: str,
        location_id: UUID,
        quantity: int,
        code_category: str | None = None,
    ) -> list[UnitInfo]:
        """
        Create ``quantity`` coded units for existing bulk stock.

        Raises:
            InvalidQuantityError: quantity is not a positive int.
            InsufficientStockError: fewer than ``quantity`` untracked bulk
                units at the location.
        """
        require_int(quantity)
        if quantity <= 0:
            raise InvalidQuantityError(quantity, "conversion quantity must be positive")
        location_id = coerce_location_id(location_id)
        category = code_category or self._default_code_category

        available = self.convertible(item_id, location_id)
        if quantity > available:
            raise InsufficientStockError(item_id, str(location_id), quantity, available)

        units = self._tracker.create_units(
            item_id,
            location_id,
            quantity,
            self._codes.code_generator(category),
            code_category=category,
            sync_stock=False,
        )
        logger.info(
            "bulk_converted_to_tracked",
            extra={
                "item_id": item_id,
                "location_id": str(location_id),
                "quantity": quantity,
                "code_category": category,
            },
        )
        return units

"""
Module: stock_kernel.selectors.reconciliation_selector
Responsibility: Compare the bulk stock count of an item with its
    individually tracked units, per location and per item.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only: divergence is reported, never corrected.
    - Soft invariant checked: available units at (item, L) should not
      exceed StockEntry(item, L).quantity.  Lines breaching it carry
      ``exceeds_bulk``.

Whether drift between the two representations is tolerated is a business
decision left to the caller; this selector only measures it.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    ItemStockSummary,
    ReconciliationLine,
    ReconciliationReport,
)
from stock_kernel.models.individual_unit import IndividualUnit, UnitStatus
from stock_kernel.models.stock_entry import StockEntry
from stock_kernel.selectors.base import BaseSelector


class ReconciliationSelector(BaseSelector[StockEntry]):
    """Bulk versus individually tracked stock."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _bulk(self, item_id: str | None) -> dict[tuple, int]:
        stmt = select(
            StockEntry.item_id, StockEntry.location_id, StockEntry.quantity
        ).where(StockEntry.quantity > 0)
        if item_id is not None:
            stmt = stmt.where(StockEntry.item_id == item_id)
        return {(i, loc): q for i, loc, q in self.session.execute(stmt)}

    def _available_units(self, item_id: str | None) -> dict[tuple, int]:
        stmt = (
            select(
                IndividualUnit.item_id,
                IndividualUnit.current_location_id,
                func.count(IndividualUnit.id),
            )
            .where(IndividualUnit.status == UnitStatus.AVAILABLE.value)
            .group_by(IndividualUnit.item_id, IndividualUnit.current_location_id)
        )
        if item_id is not None:
            stmt = stmt.where(IndividualUnit.item_id == item_id)
        return {(i, loc): n for i, loc, n in self.session.execute(stmt)}

    def report(
        self,
        item_id: str | None = None,
        tracked_only: bool = True,
    ) -> ReconciliationReport:
        """
        Per-(item, location) comparison.

        Args:
            item_id: Restrict to one item.
            tracked_only: Only items that have at least one tracked unit
                anywhere.  Pure bulk items have nothing to reconcile.
        """
        bulk = self._bulk(item_id)
        units = self._available_units(item_id)

        if tracked_only:
            tracked_items = set(
                self.session.execute(
                    select(IndividualUnit.item_id).distinct()
                ).scalars()
            )
            keys = {k for k in set(bulk) | set(units) if k[0] in tracked_items}
        else:
            keys = set(bulk) | set(units)

        lines = tuple(
            ReconciliationLine(
                item_id=key[0],
                location_id=key[1],
                bulk_quantity=bulk.get(key, 0),
                available_units=units.get(key, 0),
            )
            for key in sorted(keys, key=lambda k: (k[0], str(k[1])))
        )
        return ReconciliationReport(
            lines=lines,
            generated_at=self._clock.now(),
        )

    def item_summary(self, item_id: str) -> ItemStockSummary:
        """Bulk total, unit counts by status and the resulting tracking method."""
        bulk_total = self.session.execute(
            select(func.coalesce(func.sum(StockEntry.quantity), 0)).where(
                StockEntry.item_id == item_id
            )
        ).scalar_one()

        by_status = {
            status: count
            for status, count in self.session.execute(
                select(IndividualUnit.status, func.count(IndividualUnit.id))
                .where(IndividualUnit.item_id == item_id)
                .group_by(IndividualUnit.status)
            )
        }
        return ItemStockSummary(
            item_id=item_id,
            bulk_total=int(bulk_total),
            units_by_status=by_status,
        )

    def conversion_needs(self, item_id: str) -> dict:
        """
        Bulk units not yet represented by an available tracked unit, per location.

        Only locations with a positive shortfall are returned.
        """
        bulk = self._bulk(item_id)
        units = self._available_units(item_id)
        return {
            loc: qty - units.get((i, loc), 0)
            for (i, loc), qty in bulk.items()
            if qty - units.get((i, loc), 0) > 0
        }

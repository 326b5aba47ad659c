"""
Module: stock_kernel.selectors.stock_selector
Responsibility: Read-only queries over stock levels and transfer history,
    including low-stock alerts.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Zero-quantity rows never appear in results.
    - Results are fresh reads; nothing is cached across calls.
"""

from __future__ import annotations

from typing import Mapping
from uuid import UUID

from sqlalchemy import or_, select

from stock_kernel.domain.dtos import LowStockAlert, StockLevel, TransferRecordInfo
from stock_kernel.models.stock_entry import StockEntry
from stock_kernel.models.transfer_record import TransferRecord
from stock_kernel.selectors.base import BaseSelector

DEFAULT_REORDER_THRESHOLD = 5


def transfer_record_to_dto(record: TransferRecord) -> TransferRecordInfo:
    return TransferRecordInfo(
        id=record.id,
        item_id=record.item_id,
        from_location_id=record.from_location_id,
        to_location_id=record.to_location_id,
        quantity=record.quantity,
        occurred_at=record.occurred_at,
        notes=record.notes,
        actor_id=record.actor_id,
    )


class StockSelector(BaseSelector[StockEntry]):
    """Stock levels, transfer history and low-stock alerts."""

    def _levels(self, *criteria) -> list[StockLevel]:
        stmt = (
            select(StockEntry.item_id, StockEntry.location_id, StockEntry.quantity)
            .where(StockEntry.quantity > 0, *criteria)
            .order_by(StockEntry.item_id, StockEntry.location_id)
        )
        return [
            StockLevel(item_id=item_id, location_id=location_id, quantity=quantity)
            for item_id, location_id, quantity in self.session.execute(stmt)
        ]

    def levels_for_item(self, item_id: str) -> list[StockLevel]:
        return self._levels(StockEntry.item_id == item_id)

    def levels_at_location(self, location_id: UUID) -> list[StockLevel]:
        return self._levels(StockEntry.location_id == location_id)

    def all_levels(self) -> list[StockLevel]:
        return self._levels()

    def history(
        self,
        item_id: str,
        location_id: UUID | None = None,
        limit: int = 50,
    ) -> list[TransferRecordInfo]:
        """
        Transfers of an item, newest first.

        With ``location_id`` only transfers into or out of that location
        are returned.
        """
        stmt = select(TransferRecord).where(TransferRecord.item_id == item_id)
        if location_id is not None:
            stmt = stmt.where(
                or_(
                    TransferRecord.from_location_id == location_id,
                    TransferRecord.to_location_id == location_id,
                )
            )
        stmt = stmt.order_by(
            TransferRecord.occurred_at.desc(), TransferRecord.id
        ).limit(limit)
        return [transfer_record_to_dto(r) for r in self.session.execute(stmt).scalars()]

    def low_stock_alerts(
        self,
        thresholds: Mapping[str, int] | None = None,
        default_threshold: int = DEFAULT_REORDER_THRESHOLD,
        location_id: UUID | None = None,
    ) -> list[LowStockAlert]:
        """
        Entries at or below their item's reorder threshold.

        Args:
            thresholds: Per-item reorder thresholds.  Items not listed use
                ``default_threshold``.
            default_threshold: Threshold for items without their own.
            location_id: Restrict to one location.

        Returns:
            Alerts ordered critical first, then by largest shortage.
        """
        thresholds = thresholds or {}
        criteria = [StockEntry.location_id == location_id] if location_id else []

        alerts = []
        for level in self._levels(*criteria):
            threshold = thresholds.get(level.item_id, default_threshold)
            if level.quantity <= threshold:
                alerts.append(
                    LowStockAlert(
                        item_id=level.item_id,
                        location_id=level.location_id,
                        quantity=level.quantity,
                        threshold=threshold,
                    )
                )

        alerts.sort(key=lambda a: (not a.critical, -a.shortage, a.item_id))
        return alerts

"""
Module: stock_kernel.models.stock_adjustment
Responsibility: Append-only log of direct stock corrections (damage,
    write-off, physical count variance) with the reason given.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only (db/immutability.py, db/sql/02_stock_adjustment.sql).
    - new_quantity == previous_quantity + quantity_change.
    - quantity_change != 0.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UUID, UUIDString


class StockAdjustment(Base):
    """A recorded, reasoned change to one stock entry."""

    __tablename__ = "stock_adjustments"

    __table_args__ = (
        CheckConstraint("quantity_change <> 0", name="ck_stock_adjustment_nonzero"),
        CheckConstraint(
            "new_quantity = previous_quantity + quantity_change",
            name="ck_stock_adjustment_arithmetic",
        ),
        CheckConstraint("new_quantity >= 0", name="ck_stock_adjustment_new_non_negative"),
        Index("idx_stock_adjustment_item", "item_id", "occurred_at"),
        Index("idx_stock_adjustment_location", "location_id"),
    )

    item_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id"),
        nullable=False,
    )

    quantity_change: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    previous_quantity: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    new_quantity: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    reason: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    actor_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<StockAdjustment {self.item_id}@{self.location_id}: "
            f"{self.previous_quantity} -> {self.new_quantity} ({self.reason})>"
        )

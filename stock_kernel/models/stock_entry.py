"""
Module: stock_kernel.models.stock_entry
Responsibility: ORM persistence for the quantity of one item held at one
    location.  This is the authoritative bulk count.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per (item_id, location_id) (uq_stock_entry_item_location).
    - quantity >= 0 (ck_stock_entry_quantity_non_negative).  The database
      rejects any write that would go negative, whatever path it took.
    - version increases by one on every mutation.

Rows are mutated only through StockLedger.  A row whose quantity reaches
zero is kept; every read treats it as absent.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UUID, UUIDString


class StockEntry(Base):
    """Quantity of an item at a location."""

    __tablename__ = "stock_entries"

    __table_args__ = (
        UniqueConstraint("item_id", "location_id", name="uq_stock_entry_item_location"),
        CheckConstraint("quantity >= 0", name="ck_stock_entry_quantity_non_negative"),
        Index("idx_stock_entry_item", "item_id"),
        Index("idx_stock_entry_location", "location_id"),
    )

    # Opaque item identifier; callers namespace item types ("consumable:<id>")
    item_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    # Bumped on every mutation; lets readers detect a changed row
    version: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=1,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<StockEntry {self.item_id}@{self.location_id}: {self.quantity}>"

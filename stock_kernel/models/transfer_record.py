"""
Module: stock_kernel.models.transfer_record
Responsibility: Append-only audit row for one completed stock transfer.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: no UPDATE, no DELETE (ORM listeners in db/immutability.py,
      PostgreSQL triggers in db/sql/01_transfer_record.sql).
    - quantity > 0 (ck_transfer_record_quantity_positive).
    - from_location_id is NULL only for initial stocking.
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


class TransferRecord(Base):
    """
    One successful transfer, written exactly once.

    Guarantees:
        - Never mutated or deleted after insert.
        - quantity is the quantity actually moved.
    """

    __tablename__ = "transfer_records"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transfer_record_quantity_positive"),
        Index("idx_transfer_record_item", "item_id", "occurred_at"),
        Index("idx_transfer_record_from", "from_location_id"),
        Index("idx_transfer_record_to", "to_location_id"),
    )

    item_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # NULL for initial stocking
    from_location_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id"),
        nullable=True,
    )

    to_location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
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

    @property
    def is_initial_stocking(self) -> bool:
        return self.from_location_id is None

    def __repr__(self) -> str:
        return (
            f"<TransferRecord {self.item_id}: {self.from_location_id} -> "
            f"{self.to_location_id} x{self.quantity}>"
        )

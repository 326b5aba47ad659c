"""
Module: stock_kernel.models.location
Responsibility: ORM persistence for storage locations (warehouses, vans,
    fuel stations, job sites) that can hold stock.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - code is unique (uq_location_code).
    - Locations are never deleted by the ledger.  Retiring a location sets
      is_active to False so historical transfers keep their references.

Failure modes:
    - IntegrityError on duplicate code.
"""

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase


class Location(TrackedBase):
    """
    A place where stock can be held.

    Guarantees:
        - code is globally unique.
        - Inactive locations cannot receive stock; they can still be drained.
    """

    __tablename__ = "locations"

    __table_args__ = (
        UniqueConstraint("code", name="uq_location_code"),
        Index("idx_location_active", "is_active"),
    )

    # Short business identifier (e.g. "WH-MAIN", "VAN-07")
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        state = "active" if self.is_active else "inactive"
        return f"<Location {self.code}: {self.name} ({state})>"

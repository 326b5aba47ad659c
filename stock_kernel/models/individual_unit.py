"""
Module: stock_kernel.models.individual_unit
Responsibility: ORM persistence for individually coded physical units of an
    item (one row per unit) with status and current location.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (code_category, code) is unique (uq_individual_unit_code).  Codes are
      unique within their category namespace, not globally.
    - status is one of UnitStatus.

Status is a descriptive tag for reporting.  It never gates transfers.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UUID, UUIDString


class UnitStatus(str, Enum):
    """Descriptive status of a tracked unit.  Any transition is allowed."""

    AVAILABLE = "available"
    ASSIGNED = "assigned"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"


class IndividualUnit(Base):
    """One physical unit of an item, tracked by code."""

    __tablename__ = "individual_units"

    __table_args__ = (
        UniqueConstraint("code_category", "code", name="uq_individual_unit_code"),
        Index("idx_individual_unit_item_location", "item_id", "current_location_id"),
        Index("idx_individual_unit_status", "status"),
    )

    item_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Namespace the code is unique within (e.g. "1000")
    code_category: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    code: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UnitStatus.AVAILABLE.value,
    )

    current_location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def is_available(self) -> bool:
        return self.status == UnitStatus.AVAILABLE.value

    def __repr__(self) -> str:
        return f"<IndividualUnit {self.code_category}/{self.code} {self.item_id} ({self.status})>"

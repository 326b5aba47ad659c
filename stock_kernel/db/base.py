"""
Module: stock_kernel.db.base
Responsibility: Declarative bases shared by every stock table.
Architecture position: Kernel > DB.  Imported by every model; imports
    nothing from the rest of the kernel.

Conventions:
    - Primary keys are uuid4 values, stored as 36-character strings so the
      same schema runs on SQLite and PostgreSQL.
    - Quantities are whole units: ``int`` columns map to BigInteger.
    - Timestamps are timezone-aware.
    - Master data (locations) inherits TrackedBase and records who
      created it.  Ledger rows carry their own ``occurred_at``/``actor_id``.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

__all__ = ["UUID", "UUIDString", "Base", "TrackedBase"]


class UUIDString(TypeDecorator):
    """Python ``UUID`` in, ``UUID`` out; a plain string column underneath."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        # Accept the string form too; location ids arrive that way from callers
        return str(value if isinstance(value, UUID) else UUID(str(value)))

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Every table gets a uuid4 ``id``."""

    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        datetime: DateTime(timezone=True),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Adds creation/update timestamps and the creating actor."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

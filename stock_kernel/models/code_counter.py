"""
Module: stock_kernel.models.code_counter
Responsibility: Counter row per unit-code category.  The locked row is the
    sole source of truth for the next code in its category.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base


class CodeCounter(Base):
    """
    Code counter table.

    Each row holds the last code value issued in one category.
    Row-level locking keeps codes unique under concurrency.
    """

    __tablename__ = "code_counters"

    # Category name (e.g. "1000")
    category: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    # Last value issued
    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

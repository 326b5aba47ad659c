"""
CodeSequenceService -- unit codes via locked counter rows.

Responsibility:
    Issues human-readable unit codes that are unique within a category.
    Category "1000" yields "1001", "1002", ... : the category value is the
    base and each code is base + counter.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Feeds IndividualUnitTracker.create_units through ``code_generator``.

Invariants enforced:
    - Codes are issued from the locked counter row only.  The SQL
      aggregate-max-plus-one pattern is never used.
    - Transactional: a code is consumed only when the caller commits.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry).
    - ValueError: category is not a non-negative integer string.
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from stock_kernel.logging_config import get_logger
from stock_kernel.models.code_counter import CodeCounter
from stock_kernel.services.base import BaseService

logger = get_logger("services.code_sequence")

DEFAULT_CODE_CATEGORY = "1000"


def _category_base(category: str) -> int:
    if not isinstance(category, str) or not category.isdigit():
        raise ValueError(f"Code category must be a string of digits, got {category!r}")
    return int(category)


class CodeSequenceService(BaseService[CodeCounter]):
    """
    Locked-counter code allocation per category.

    Usage:
        codes = CodeSequenceService(session)
        tracker.create_units(item_id, loc, 3, codes.code_generator("1000"))
        # -> "1001", "1002", "1003"
    """

    def _lock_counter(self, category: str) -> CodeCounter | None:
        return self.session.execute(
            select(CodeCounter)
            .where(CodeCounter.category == category)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, category: str) -> int:
        """Next counter value for the category (1, 2, 3, ...)."""
        _category_base(category)

        counter = self._lock_counter(category)

        if counter is None:
            # First use; another transaction may be creating it too
            savepoint = self.session.begin_nested()
            try:
                counter = CodeCounter(category=category, current_value=1)
                self.session.add(counter)
                self.session.flush()
                savepoint.commit()
                logger.debug(
                    "code_allocated",
                    extra={"category": category, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "code_counter_race_retry",
                    extra={"category": category},
                )
                savepoint.rollback()
                counter = self._lock_counter(category)
                if counter is None:
                    raise

        counter.current_value += 1
        self.session.flush()
        logger.debug(
            "code_allocated",
            extra={"category": category, "value": counter.current_value},
        )
        return counter.current_value

    def next_code(self, category: str = DEFAULT_CODE_CATEGORY) -> str:
        """Next unit code in the category, e.g. "1001" for category "1000"."""
        return str(_category_base(category) + self.next_value(category))

    def peek_code(self, category: str = DEFAULT_CODE_CATEGORY) -> str:
        """The code ``next_code`` would return, without consuming it."""
        counter = self.session.execute(
            select(CodeCounter.current_value).where(CodeCounter.category == category)
        ).scalar_one_or_none()
        return str(_category_base(category) + (counter or 0) + 1)

    def code_generator(self, category: str = DEFAULT_CODE_CATEGORY) -> Callable[[], str]:
        """Zero-argument callable issuing successive codes of the category."""
        _category_base(category)
        return lambda: self.next_code(category)

"""
Typed ledger settings (``stock_config.settings``).

Every runtime knob of the stock ledger lives on one frozen dataclass.
Validation happens in ``__post_init__`` so an invalid combination can
never be constructed, whether it came from YAML, the environment, or code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields

ROLLBACK_MODES = ("savepoint", "compensate")

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"


@dataclass(frozen=True)
class LedgerSettings:
    """
    Runtime settings for the stock ledger.

    Raises:
        ValueError: On any out-of-range or unknown value.
    """

    database_url: str = DEFAULT_DATABASE_URL
    database_echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    max_conflict_retries: int = 3
    transfer_rollback_mode: str = "savepoint"
    default_code_category: str = "1000"
    default_reorder_threshold: int = 5
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url is required")
        for name in ("pool_size", "max_overflow", "pool_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        if (
            isinstance(self.max_conflict_retries, bool)
            or not isinstance(self.max_conflict_retries, int)
            or self.max_conflict_retries < 1
        ):
            raise ValueError(
                f"max_conflict_retries must be an integer >= 1, got {self.max_conflict_retries!r}"
            )
        if self.transfer_rollback_mode not in ROLLBACK_MODES:
            raise ValueError(
                f"transfer_rollback_mode must be one of {ROLLBACK_MODES}, "
                f"got {self.transfer_rollback_mode!r}"
            )
        if not str(self.default_code_category).isdigit():
            raise ValueError(
                f"default_code_category must be digits, got {self.default_code_category!r}"
            )
        if (
            isinstance(self.default_reorder_threshold, bool)
            or not isinstance(self.default_reorder_threshold, int)
            or self.default_reorder_threshold < 0
        ):
            raise ValueError(
                "default_reorder_threshold must be a non-negative integer, "
                f"got {self.default_reorder_threshold!r}"
            )
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ValueError(f"Unknown log_level: {self.log_level!r}")

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level.upper())

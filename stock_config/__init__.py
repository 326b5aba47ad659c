"""
stock_config -- single public entrypoint for ledger settings.

Responsibility:
    Provides the way to obtain settings at runtime through
    ``get_active_settings()``, and ``start_up()`` to apply the logging and
    engine settings once per process.  Services take their knobs as constructor
    arguments; only composition code (scripts, application start-up)
    reads settings and passes them down.

Architecture position:
    Configuration -- sits beside ``stock_kernel``.  The kernel MUST NEVER
    import from ``stock_config``.

Audit relevance:
    Every fresh load emits a ``STOCK_CONFIG_TRACE`` log entry with the
    settings fingerprint.
"""

from __future__ import annotations

import logging
import threading

from sqlalchemy.engine import Engine

from stock_config.loader import load_settings, settings_fingerprint
from stock_config.settings import LedgerSettings
from stock_kernel.db.engine import init_engine_from_url
from stock_kernel.logging_config import ROOT_LOGGER_NAME, configure_logging

_logger = logging.getLogger("stock_kernel.config")

_active: LedgerSettings | None = None
_lock = threading.Lock()


def get_active_settings() -> LedgerSettings:
    """Load settings once per process (file from $STOCK_LEDGER_CONFIG, then env)."""
    global _active
    with _lock:
        if _active is None:
            _active = load_settings()
            _logger.info(
                "STOCK_CONFIG_TRACE",
                extra={
                    "trace_type": "STOCK_CONFIG_TRACE",
                    "fingerprint": settings_fingerprint(_active),
                    "transfer_rollback_mode": _active.transfer_rollback_mode,
                    "max_conflict_retries": _active.max_conflict_retries,
                },
            )
        return _active


def reset_active_settings() -> None:
    """Forget the cached settings. FOR TESTING ONLY."""
    global _active
    with _lock:
        _active = None


def start_up(
    settings: LedgerSettings | None = None,
    database_url: str | None = None,
) -> Engine:
    """
    Apply the logging and database settings for a process.

    Sets the ``stock_kernel`` log level (also when logging was configured
    earlier) and initializes the engine with the configured echo and pool
    options.  ``database_url`` overrides ``settings.database_url``.
    """
    settings = settings or get_active_settings()
    configure_logging(level=settings.log_level_value)
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(settings.log_level_value)

    return init_engine_from_url(
        database_url or settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
    )


__all__ = [
    "LedgerSettings",
    "get_active_settings",
    "load_settings",
    "reset_active_settings",
    "settings_fingerprint",
    "start_up",
]

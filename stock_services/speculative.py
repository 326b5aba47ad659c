"""
SpeculativeStockView -- optimistic client-side view of stock quantities.

A consumer (a UI, an API client) shows the expected quantity immediately,
then reconciles with the confirmed value the ledger returns, or reverts if
the ledger rejects the change.  Invalidation is scoped to the
(item_id, location_id) keys actually touched.

This wraps ledger calls; it is not part of the ledger and holds no
authoritative state.  Never plan a transfer from these values: re-read
the ledger instead.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from uuid import UUID

from stock_kernel.logging_config import get_logger

logger = get_logger("services.speculative")

Key = tuple[str, UUID]


class SpeculativeStockView:
    """
    Cache of quantities keyed by (item_id, location_id) with speculative apply.

    Guarantees:
        - After a failed ``apply`` the key holds exactly what it held before.
        - Every change to a key bumps its version.
    """

    def __init__(self) -> None:
        self._values: dict[Key, int] = {}
        self._versions: dict[Key, int] = {}
        self._lock = threading.Lock()

    def _bump(self, key: Key) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def load(self, item_id: str, location_id: UUID, quantity: int) -> None:
        """Record a confirmed value read from the ledger."""
        key = (item_id, location_id)
        with self._lock:
            self._values[key] = quantity
            self._bump(key)

    def get(self, item_id: str, location_id: UUID) -> int | None:
        return self._values.get((item_id, location_id))

    def version(self, item_id: str, location_id: UUID) -> int:
        return self._versions.get((item_id, location_id), 0)

    def apply(
        self,
        item_id: str,
        location_id: UUID,
        delta: int,
        commit: Callable[[], int],
    ) -> int:
        """
        Show ``quantity + delta`` now, then confirm or revert.

        Args:
            commit: Performs the real mutation (e.g. ``lambda: ledger.adjust(...)``)
                and returns the confirmed quantity.

        Returns:
            The confirmed quantity.

        Raises:
            Whatever ``commit`` raises, after the key has been reverted.
        """
        key = (item_id, location_id)
        with self._lock:
            had_value = key in self._values
            prior = self._values.get(key)
            if had_value:
                self._values[key] = prior + delta
                self._bump(key)

        try:
            confirmed = commit()
        except Exception:
            with self._lock:
                if had_value:
                    self._values[key] = prior
                    self._bump(key)
            logger.info(
                "speculative_update_reverted",
                extra={
                    "item_id": item_id,
                    "location_id": str(location_id),
                    "delta": delta,
                },
            )
            raise

        with self._lock:
            self._values[key] = confirmed
            self._bump(key)
        return confirmed

    def invalidate(self, item_id: str, location_id: UUID | None = None) -> int:
        """
        Drop cached values for one item, or one (item, location).

        Returns:
            Number of keys dropped.
        """
        with self._lock:
            if location_id is not None:
                keys = [(item_id, location_id)] if (item_id, location_id) in self._values else []
            else:
                keys = [k for k in self._values if k[0] == item_id]
            for key in keys:
                del self._values[key]
                self._bump(key)
        return len(keys)

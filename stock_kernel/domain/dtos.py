"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable values that services and selectors hand back to
    callers.  ORM rows never leave the kernel; every public method returns
    one of these frozen dataclasses instead.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies.  Conversion from ORM rows happens in the
    service and selector layer (``_to_dto`` helpers).

Failure modes:
    - ValueError on negative quantities in CountLine / LowStockAlert.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping
from uuid import UUID

if TYPE_CHECKING:
    from stock_kernel.exceptions import AuditWriteFailedError


class TrackingMethod:
    """How an item's stock is represented."""

    INDIVIDUAL = "individual"
    BULK = "bulk"
    HYBRID = "hybrid"
    NONE = "none"


@dataclass(frozen=True)
class LocationInfo:
    """A storage location as seen by the ledger."""

    id: UUID
    code: str
    name: str
    is_active: bool


@dataclass(frozen=True)
class StockLevel:
    """Quantity of one item at one location."""

    item_id: str
    location_id: UUID
    quantity: int


@dataclass(frozen=True)
class TransferRecordInfo:
    """
    One transfer, as persisted or (when the audit write failed) as it
    would have been persisted.

    ``id`` is None for a synthetic record.
    """

    id: UUID | None
    item_id: str
    from_location_id: UUID | None
    to_location_id: UUID
    quantity: int
    occurred_at: datetime
    notes: str | None = None
    actor_id: UUID | None = None

    @property
    def is_synthetic(self) -> bool:
        return self.id is None

    @property
    def is_initial_stocking(self) -> bool:
        return self.from_location_id is None


@dataclass(frozen=True)
class TransferResult:
    """
    Outcome of a successful transfer.

    ``warning`` carries an AuditWriteFailedError when stock moved but the
    audit row could not be written.
    """

    record: TransferRecordInfo
    warning: AuditWriteFailedError | None = None

    @property
    def degraded(self) -> bool:
        return self.warning is not None


@dataclass(frozen=True)
class UnitInfo:
    """One individually tracked unit."""

    id: UUID
    item_id: str
    code_category: str
    code: str
    status: str
    current_location_id: UUID


@dataclass(frozen=True)
class AdjustmentRecordInfo:
    """A persisted stock adjustment."""

    id: UUID
    item_id: str
    location_id: UUID
    quantity_change: int
    previous_quantity: int
    new_quantity: int
    reason: str
    occurred_at: datetime
    notes: str | None = None
    actor_id: UUID | None = None


@dataclass(frozen=True)
class CountLine:
    """System versus counted quantity for one item at the counted location."""

    item_id: str
    system_quantity: int
    counted_quantity: int
    adjustment_id: UUID | None = None

    def __post_init__(self) -> None:
        if self.system_quantity < 0 or self.counted_quantity < 0:
            raise ValueError("Count quantities cannot be negative")

    @property
    def variance(self) -> int:
        return self.counted_quantity - self.system_quantity


@dataclass(frozen=True)
class CountResult:
    """Result of a physical stock count at one location."""

    location_id: UUID
    lines: tuple[CountLine, ...]
    counted_at: datetime
    applied: bool

    @property
    def total_absolute_variance(self) -> int:
        return sum(abs(line.variance) for line in self.lines)

    @property
    def items_with_variance(self) -> tuple[CountLine, ...]:
        return tuple(line for line in self.lines if line.variance != 0)


@dataclass(frozen=True)
class ReconciliationLine:
    """Bulk count versus available tracked units for one (item, location)."""

    item_id: str
    location_id: UUID
    bulk_quantity: int
    available_units: int

    @property
    def drift(self) -> int:
        return self.bulk_quantity - self.available_units

    @property
    def exceeds_bulk(self) -> bool:
        # More available units than the bulk count says exist
        return self.available_units > self.bulk_quantity


@dataclass(frozen=True)
class ReconciliationReport:
    """Per-(item, location) comparison of the two stock representations."""

    lines: tuple[ReconciliationLine, ...]
    generated_at: datetime

    @property
    def drifted(self) -> tuple[ReconciliationLine, ...]:
        return tuple(line for line in self.lines if line.drift != 0)

    @property
    def violations(self) -> tuple[ReconciliationLine, ...]:
        return tuple(line for line in self.lines if line.exceeds_bulk)

    @property
    def is_consistent(self) -> bool:
        return not self.drifted


@dataclass(frozen=True)
class LowStockAlert:
    """An (item, location) whose quantity is at or below its threshold."""

    item_id: str
    location_id: UUID
    quantity: int
    threshold: int

    def __post_init__(self) -> None:
        if self.threshold < 0:
            raise ValueError(f"Reorder threshold cannot be negative: {self.threshold}")

    @property
    def shortage(self) -> int:
        return max(0, self.threshold - self.quantity)

    @property
    def critical(self) -> bool:
        return self.quantity <= self.threshold / 2


@dataclass(frozen=True)
class ItemStockSummary:
    """Both stock representations of one item, side by side."""

    item_id: str
    bulk_total: int
    units_by_status: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "units_by_status", MappingProxyType(dict(self.units_by_status))
        )

    @property
    def tracked_total(self) -> int:
        return sum(self.units_by_status.values())

    @property
    def available_units(self) -> int:
        return self.units_by_status.get("available", 0)

    @property
    def tracking_method(self) -> str:
        if self.tracked_total and self.bulk_total:
            return TrackingMethod.HYBRID
        if self.tracked_total:
            return TrackingMethod.INDIVIDUAL
        if self.bulk_total:
            return TrackingMethod.BULK
        return TrackingMethod.NONE

    @property
    def has_inconsistency(self) -> bool:
        """Hybrid items whose available units disagree with the bulk total."""
        return (
            self.tracking_method == TrackingMethod.HYBRID
            and self.available_units != self.bulk_total
        )

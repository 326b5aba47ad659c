"""
IndividualUnitTracker -- per-unit traceability for coded items.

Responsibility:
    Creates individually coded units, moves them between locations and
    tags their status.  Optionally keeps the bulk StockEntry in step.

Architecture position:
    Kernel > Services -- imperative shell.
    Depends on LocationRegistry, StockLedger and TransferOrchestrator.

Invariants enforced:
    - (code_category, code) unique: duplicates raise DuplicateCodeError and
      nothing is created.
    - Status is one of UnitStatus; any transition between them is allowed
      and status never blocks a transfer.

Dual representation:
    With ``sync_stock=True`` unit creation increments the bulk entry and
    bulk unit moves issue one stock transfer per (item, source) group.  Unit
    rows and bulk quantities are then written inside one SAVEPOINT, so both
    views change together.  Single-unit moves (``transfer_unit``) and
    ``sync_stock=False`` calls touch unit rows only; any resulting drift is
    surfaced by ReconciliationSelector, never corrected here.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Callable, Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_kernel.domain.dtos import TransferResult, UnitInfo
from stock_kernel.exceptions import (
    DuplicateCodeError,
    InvalidQuantityError,
    InvalidUnitStatusError,
    UnitNotFoundError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.individual_unit import IndividualUnit, UnitStatus
from stock_kernel.services.base import BaseService
from stock_kernel.services.code_sequence_service import DEFAULT_CODE_CATEGORY
from stock_kernel.services.location_registry import (
    LocationRegistry,
    coerce_location_id,
)
from stock_kernel.services.stock_ledger import StockLedger, require_int, require_item_id
from stock_kernel.services.transfer_orchestrator import TransferOrchestrator

logger = get_logger("services.unit_tracker")

_STATUS_VALUES = frozenset(s.value for s in UnitStatus)


def _normalize_status(status: UnitStatus | str) -> str:
    value = status.value if isinstance(status, UnitStatus) else status
    if value not in _STATUS_VALUES:
        raise InvalidUnitStatusError(str(status))
    return value


class IndividualUnitTracker(BaseService[IndividualUnit]):
    """Create, move and tag individually tracked units."""

    def __init__(
        self,
        session: Session,
        ledger: StockLedger | None = None,
        registry: LocationRegistry | None = None,
        orchestrator: TransferOrchestrator | None = None,
        default_code_category: str = DEFAULT_CODE_CATEGORY,
    ):
        super().__init__(session)
        self._default_code_category = default_code_category
        self._registry = registry or (ledger.registry if ledger else LocationRegistry(session))
        self._ledger = ledger or StockLedger(session, self._registry)
        self._orchestrator = orchestrator or TransferOrchestrator(
            session, self._ledger, self._registry
        )

    def _to_dto(self, unit: IndividualUnit) -> UnitInfo:
        return UnitInfo(
            id=unit.id,
            item_id=unit.item_id,
            code_category=unit.code_category,
            code=unit.code,
            status=unit.status,
            current_location_id=unit.current_location_id,
        )

    def _get(self, unit_id: UUID) -> IndividualUnit:
        unit = self.session.get(IndividualUnit, unit_id)
        if unit is None:
            raise UnitNotFoundError(str(unit_id))
        return unit

    def get(self, unit_id: UUID) -> UnitInfo:
        """
        Raises:
            UnitNotFoundError: If the unit doesn't exist.
        """
        return self._to_dto(self._get(unit_id))

    def list_units(
        self,
        item_id: str,
        location_id: UUID | None = None,
        status: UnitStatus | str | None = None,
    ) -> list[UnitInfo]:
        stmt = select(IndividualUnit).where(IndividualUnit.item_id == item_id)
        if location_id is not None:
            stmt = stmt.where(IndividualUnit.current_location_id == location_id)
        if status is not None:
            stmt = stmt.where(IndividualUnit.status == _normalize_status(status))
        stmt = stmt.order_by(IndividualUnit.code_category, IndividualUnit.code)
        return [self._to_dto(u) for u in self.session.execute(stmt).scalars()]

    def _reject_taken_codes(self, code_category: str, codes: list[str]) -> None:
        seen: set[str] = set()
        for code in codes:
            if code in seen:
                raise DuplicateCodeError(code_category, code)
            seen.add(code)

        taken = self.session.execute(
            select(IndividualUnit.code).where(
                IndividualUnit.code_category == code_category,
                IndividualUnit.code.in_(codes),
            )
        ).scalars().first()
        if taken is not None:
            logger.info(
                "unit_code_duplicate_rejected",
                extra={"code_category": code_category, "code": taken},
            )
            raise DuplicateCodeError(code_category, taken)

    def create_units(
        self,
        item_id: str,
        location_id: UUID,
        count: int,
        code_generator: Callable[[], str],
        code_category: str | None = None,
        sync_stock: bool = True,
    ) -> list[UnitInfo]:
        """
        Create ``count`` available units at a location.

        Args:
            code_generator: Zero-argument callable returning the next code.
            code_category: Namespace the codes must be unique within.
                Defaults to the tracker's configured category.
            sync_stock: Also increment StockEntry(item, location) by count.

        Raises:
            InvalidQuantityError: count is not a positive int.
            DuplicateCodeError: a generated code is already used in the
                category (or repeats within the batch).  Nothing is created,
                and codes drawn from a counter-backed generator are given back.
            LocationNotFoundError / InvalidLocationError.
        """
        require_int(count, "count")
        if count <= 0:
            raise InvalidQuantityError(count, "unit count must be positive")
        require_item_id(item_id)
        location_id = coerce_location_id(location_id)
        self._registry.require_active(location_id)
        if code_category is None:
            code_category = self._default_code_category

        # A rejected batch also rolls back counter rows the generator advanced
        savepoint = self.session.begin_nested()
        try:
            codes = [str(code_generator()) for _ in range(count)]
            self._reject_taken_codes(code_category, codes)
            units = [
                IndividualUnit(
                    item_id=item_id,
                    code_category=code_category,
                    code=code,
                    status=UnitStatus.AVAILABLE.value,
                    current_location_id=location_id,
                )
                for code in codes
            ]
            self.session.add_all(units)
            try:
                self.session.flush()
            except IntegrityError:
                # A concurrent transaction took one of the codes
                raise DuplicateCodeError(code_category, ",".join(codes)) from None
            if sync_stock:
                self._ledger.adjust(item_id, location_id, count)
        except Exception:
            savepoint.rollback()
            raise
        savepoint.commit()

        logger.info(
            "units_created",
            extra={
                "item_id": item_id,
                "location_id": str(location_id),
                "count": count,
                "code_category": code_category,
                "first_code": codes[0],
                "sync_stock": sync_stock,
            },
        )
        return [self._to_dto(u) for u in units]

    def transfer_unit(self, unit_id: UUID, to_location_id: UUID) -> UnitInfo:
        """
        Move one unit.  The bulk StockEntry is NOT touched.

        Raises:
            UnitNotFoundError: unknown unit.
            LocationNotFoundError / InvalidLocationError: destination unknown
                or inactive.
        """
        unit = self._get(unit_id)
        to_location_id = coerce_location_id(to_location_id)
        self._registry.require_active(to_location_id)

        from_location_id = unit.current_location_id
        unit.current_location_id = to_location_id
        self.session.flush()

        logger.info(
            "unit_transferred",
            extra={
                "unit_id": str(unit.id),
                "item_id": unit.item_id,
                "from_location_id": str(from_location_id),
                "to_location_id": str(to_location_id),
            },
        )
        return self._to_dto(unit)

    def transfer_units(
        self,
        unit_ids: Iterable[UUID],
        to_location_id: UUID,
        sync_stock: bool = True,
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> tuple[list[UnitInfo], list[TransferResult]]:
        """
        Move several units to one destination.

        With ``sync_stock`` one bulk transfer is issued per (item, source
        location) group, sized to the group.  Units already at the
        destination are left alone.  Everything happens in one SAVEPOINT.

        Returns:
            The moved units and the stock transfers issued.

        Raises:
            UnitNotFoundError, LocationNotFoundError, InvalidLocationError,
            InsufficientStockError (bulk at a source is short).
        """
        to_location_id = coerce_location_id(to_location_id)
        self._registry.require_active(to_location_id)

        units = [self._get(unit_id) for unit_id in dict.fromkeys(unit_ids)]
        groups: OrderedDict[tuple[str, UUID], list[IndividualUnit]] = OrderedDict()
        for unit in units:
            if unit.current_location_id == to_location_id:
                continue
            groups.setdefault((unit.item_id, unit.current_location_id), []).append(unit)

        moved: list[IndividualUnit] = []
        transfers: list[TransferResult] = []
        savepoint = self.session.begin_nested()
        try:
            for (item_id, from_location_id), group in groups.items():
                if sync_stock:
                    transfers.append(
                        self._orchestrator.transfer(
                            item_id,
                            from_location_id,
                            to_location_id,
                            len(group),
                            notes=notes,
                            actor_id=actor_id,
                        )
                    )
                for unit in group:
                    unit.current_location_id = to_location_id
                    moved.append(unit)
            self.session.flush()
        except Exception:
            savepoint.rollback()
            raise
        savepoint.commit()

        logger.info(
            "units_transferred",
            extra={
                "to_location_id": str(to_location_id),
                "count": len(moved),
                "groups": len(groups),
                "sync_stock": sync_stock,
            },
        )
        return [self._to_dto(u) for u in moved], transfers

    def set_status(self, unit_id: UUID, new_status: UnitStatus | str) -> UnitInfo:
        """
        Tag a unit with a new status.  Any transition is allowed.

        Raises:
            UnitNotFoundError, InvalidUnitStatusError.
        """
        value = _normalize_status(new_status)
        unit = self._get(unit_id)
        previous = unit.status
        unit.status = value
        self.session.flush()

        logger.info(
            "unit_status_changed",
            extra={
                "unit_id": str(unit.id),
                "from_status": previous,
                "to_status": value,
            },
        )
        return self._to_dto(unit)

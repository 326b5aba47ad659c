"""
Service layer for storage locations.

Locations are created and retired by an external location-management flow;
the ledger only asks whether an id exists and whether it may receive stock.
Returns LocationInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import LocationInfo
from stock_kernel.exceptions import InvalidLocationError, LocationNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.location import Location
from stock_kernel.services.base import BaseService

logger = get_logger("services.location_registry")


def coerce_location_id(location_id: UUID | str) -> UUID:
    """Accept a UUID or its string form; anything else is an unknown location."""
    if isinstance(location_id, UUID):
        return location_id
    try:
        return UUID(str(location_id))
    except ValueError:
        raise LocationNotFoundError(str(location_id)) from None


class LocationRegistry(BaseService[Location]):
    """
    Lookup and lifecycle of storage locations.

    All public methods return LocationInfo DTOs, not ORM Location entities.
    """

    def _to_dto(self, location: Location) -> LocationInfo:
        return LocationInfo(
            id=location.id,
            code=location.code,
            name=location.name,
            is_active=location.is_active,
        )

    def _get(self, location_id: UUID | str) -> Location:
        location = self.session.get(Location, coerce_location_id(location_id))
        if location is None:
            raise LocationNotFoundError(str(location_id))
        return location

    def create_location(
        self,
        code: str,
        name: str,
        actor_id: UUID,
        is_active: bool = True,
    ) -> LocationInfo:
        """
        Create a location.

        Raises:
            ValueError: If code or name is blank.
            IntegrityError: If the code is already taken (at flush).
        """
        if not code or not code.strip():
            raise ValueError("Location code is required")
        if not name or not name.strip():
            raise ValueError("Location name is required")

        location = Location(
            code=code.strip(),
            name=name.strip(),
            is_active=is_active,
            created_by_id=actor_id,
        )
        self.session.add(location)
        self.session.flush()

        logger.info(
            "location_created",
            extra={
                "location_id": str(location.id),
                "code": location.code,
                "is_active": is_active,
            },
        )
        return self._to_dto(location)

    def deactivate(self, location_id: UUID) -> LocationInfo:
        """Stop the location from receiving stock.  Existing stock can still leave."""
        location = self._get(location_id)
        location.is_active = False
        self.session.flush()
        logger.info("location_deactivated", extra={"location_id": str(location.id)})
        return self._to_dto(location)

    def reactivate(self, location_id: UUID) -> LocationInfo:
        location = self._get(location_id)
        location.is_active = True
        self.session.flush()
        logger.info("location_reactivated", extra={"location_id": str(location.id)})
        return self._to_dto(location)

    def get(self, location_id: UUID) -> LocationInfo:
        """
        Raises:
            LocationNotFoundError: If the location doesn't exist.
        """
        return self._to_dto(self._get(location_id))

    def exists(self, location_id: UUID) -> bool:
        try:
            self._get(location_id)
        except LocationNotFoundError:
            return False
        return True

    def is_active(self, location_id: UUID) -> bool:
        """False for inactive and for unknown locations."""
        try:
            return self._get(location_id).is_active
        except LocationNotFoundError:
            return False

    def require_active(self, location_id: UUID) -> LocationInfo:
        """
        Return the location if it can receive stock.

        Raises:
            LocationNotFoundError: If the location doesn't exist.
            InvalidLocationError: If the location is inactive.
        """
        location = self._get(location_id)
        if not location.is_active:
            raise InvalidLocationError(str(location.id))
        return self._to_dto(location)

    def list_locations(self, active_only: bool = True) -> list[LocationInfo]:
        """List locations ordered by code."""
        stmt = select(Location).order_by(Location.code)
        if active_only:
            stmt = stmt.where(Location.is_active.is_(True))
        return [self._to_dto(loc) for loc in self.session.execute(stmt).scalars()]

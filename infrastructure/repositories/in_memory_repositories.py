"""In-Memory Repository Implementations"""
from typing import Optional, List, Dict
from datetime import datetime

from application.bucketing import parse_timestamp
from domain.repositories import (
    ReservationRepository, WalkInRepository, LocationRepository, LocationMetricsSource
)
from domain.entities import Reservation, WalkIn, Location, LocationMetrics
from domain.exceptions import FetchError, InvalidTimestampError


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self):
        self._storage: Dict[str, Reservation] = {}

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        self._storage[reservation.id] = reservation
        return reservation

    async def find_by_id(self, reservation_id: str) -> Optional[Reservation]:
        """Find reservation by ID"""
        return self._storage.get(reservation_id)

    async def find_by_location(self, location_id: str) -> List[Reservation]:
        """Find reservations by location"""
        return [r for r in self._storage.values() if r.location_id == location_id]

    async def find_by_guest_id(self, guest_id: str) -> List[Reservation]:
        """Find reservations by guest ID"""
        return [r for r in self._storage.values() if r.guest_id == guest_id]

    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        if reservation.id in self._storage:
            self._storage[reservation.id] = reservation
            return reservation
        raise ValueError("Reservation not found")


class InMemoryWalkInRepository(WalkInRepository):
    """In-memory implementation of WalkInRepository"""

    def __init__(self):
        self._storage: Dict[str, WalkIn] = {}

    async def save(self, walk_in: WalkIn) -> WalkIn:
        self._storage[walk_in.id] = walk_in
        return walk_in

    async def find_by_location(self, location_id: str) -> List[WalkIn]:
        return [w for w in self._storage.values() if w.location_id == location_id]


class InMemoryLocationRepository(LocationRepository):
    """In-memory implementation of LocationRepository"""

    def __init__(self):
        self._storage: Dict[str, Location] = {}

    async def save(self, location: Location) -> Location:
        self._storage[location.id] = location
        return location

    async def find_by_id(self, location_id: str) -> Optional[Location]:
        return self._storage.get(location_id)

    async def find_all(self) -> List[Location]:
        return list(self._storage.values())


def _in_window(raw, start: datetime, end: datetime) -> bool:
    """Unparseable timestamps stay in so aggregation can report them"""
    try:
        instant = parse_timestamp(raw)
    except InvalidTimestampError:
        return True
    return start <= instant < end


class RepositoryLocationMetricsSource(LocationMetricsSource):
    """Builds location payloads from the in-memory repositories"""

    def __init__(self,
                 location_repo: LocationRepository,
                 reservation_repo: ReservationRepository,
                 walk_in_repo: WalkInRepository):
        self.location_repo = location_repo
        self.reservation_repo = reservation_repo
        self.walk_in_repo = walk_in_repo

    async def fetch_location_metrics(
        self,
        location_id: str,
        start: datetime,
        end: datetime
    ) -> LocationMetrics:
        location = await self.location_repo.find_by_id(location_id)
        if not location:
            raise FetchError(f"Location {location_id} not found", location_id=location_id)

        start, end = parse_timestamp(start), parse_timestamp(end)
        reservations = await self.reservation_repo.find_by_location(location_id)
        walk_ins = await self.walk_in_repo.find_by_location(location_id)

        return LocationMetrics(
            id=location.id,
            name=location.name,
            timezone=location.timezone,
            reservations=[r.model_copy() for r in reservations if _in_window(r.timestamp, start, end)],
            walk_ins=[w.model_copy() for w in walk_ins if _in_window(w.timestamp, start, end)],
        )

"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List
from datetime import datetime

from domain.entities import Reservation, WalkIn, Location, LocationMetrics


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: str) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_by_location(self, location_id: str) -> List[Reservation]:
        """Find all reservations recorded by a location"""
        pass

    @abstractmethod
    async def find_by_guest_id(self, guest_id: str) -> List[Reservation]:
        """Find reservations by guest ID"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass


class WalkInRepository(ABC):
    """Repository interface for walk-ins"""

    @abstractmethod
    async def save(self, walk_in: WalkIn) -> WalkIn:
        """Save walk-in"""
        pass

    @abstractmethod
    async def find_by_location(self, location_id: str) -> List[WalkIn]:
        """Find all walk-ins recorded by a location"""
        pass


class LocationRepository(ABC):
    """Repository interface for Location Aggregate"""

    @abstractmethod
    async def save(self, location: Location) -> Location:
        """Save location"""
        pass

    @abstractmethod
    async def find_by_id(self, location_id: str) -> Optional[Location]:
        """Find location by ID"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Location]:
        """Find all locations"""
        pass


class LocationMetricsSource(ABC):
    """Supplies one location's raw records for a UTC window"""

    @abstractmethod
    async def fetch_location_metrics(
        self,
        location_id: str,
        start: datetime,
        end: datetime
    ) -> LocationMetrics:
        """Fetch reservations and walk-ins stamped in [start, end)"""
        pass

"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field, validator
from uuid import uuid4
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union
from decimal import Decimal

from domain.enums import ReservationStatus
from domain.value_objects import (
    DailyBucket, Diagnostic, LocationContext, MigrationRoute, validate_timezone_name
)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity

    The timestamp is kept exactly as the source supplied it; parsing happens
    during aggregation so that a malformed value can be reported instead of
    rejecting the whole location payload.
    """

    # Identity
    id: str = Field(default_factory=lambda: _new_id("res"))

    # References to other contexts
    guest_id: str
    location_id: str
    table_id: Optional[str] = None
    previous_location_id: Optional[str] = None

    # Visit
    timestamp: Union[datetime, str]
    party_size: int = Field(ge=1)
    estimated_revenue: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None

    # Enums/Status
    status: ReservationStatus = ReservationStatus.PENDING

    # Metadata
    modified_at: datetime = Field(default_factory=_utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        guest_id: str,
        location_id: str,
        timestamp: datetime,
        party_size: int,
        table_id: Optional[str] = None,
        estimated_revenue: Optional[Decimal] = None,
        previous_location_id: Optional[str] = None,
        notes: Optional[str] = None,
        max_party_size: Optional[int] = None
    ) -> "Reservation":
        """Create new pending reservation with validation"""
        Reservation._validate_party_size(party_size, max_party_size)

        return Reservation(
            guest_id=guest_id,
            location_id=location_id,
            table_id=table_id,
            timestamp=timestamp,
            party_size=party_size,
            estimated_revenue=estimated_revenue,
            previous_location_id=previous_location_id,
            notes=notes,
            status=ReservationStatus.PENDING
        )

    # ==================== STATE TRANSITION METHODS ====================
    def change_status(self, new_status: ReservationStatus) -> None:
        """Move the reservation to another status"""
        if self.status.is_terminal and new_status != self.status:
            raise ValueError(
                f"Cannot change status of a {self.status.value} reservation"
            )

        self.status = new_status
        self.modified_at = _utcnow()
        self.version += 1

    def cancel(self) -> None:
        """Cancel reservation"""
        if self.status.is_terminal:
            raise ValueError(
                f"Cannot cancel reservation with status {self.status.value}"
            )
        self.change_status(ReservationStatus.CANCELLED)

    # ==================== QUERY METHODS ====================
    @property
    def is_no_show(self) -> bool:
        return self.status == ReservationStatus.NO_SHOW

    @property
    def is_migration(self) -> bool:
        """Guest's previous visit was at a different location"""
        return bool(self.previous_location_id) and self.previous_location_id != self.location_id

    # ==================== PRIVATE VALIDATION METHODS ====================
    @staticmethod
    def _validate_party_size(party_size: int, max_party_size: Optional[int]) -> None:
        if party_size < 1:
            raise ValueError("Party size must be at least 1")
        if max_party_size and party_size > max_party_size:
            raise ValueError(f"Party size exceeds maximum of {max_party_size}")


class WalkIn(BaseModel):
    """Walk-in Entity - an unbooked, already realized visit"""
    id: str = Field(default_factory=lambda: _new_id("walkin"))
    location_id: str
    table_id: Optional[str] = None
    guest_id: Optional[str] = None
    timestamp: Union[datetime, str]
    party_size: int = Field(ge=1)

    class Config:
        from_attributes = True


class Location(BaseModel):
    """Location Aggregate Root Entity"""
    id: str = Field(default_factory=lambda: _new_id("loc"))
    name: str
    timezone: str
    address: Optional[str] = None

    # Settings
    max_party_size: int = Field(default=20, ge=1)
    accept_walk_ins: bool = True

    @validator('timezone')
    def timezone_must_exist(cls, v):
        return validate_timezone_name(v)

    class Config:
        from_attributes = True

    @property
    def context(self) -> LocationContext:
        return LocationContext(id=self.id, name=self.name, timezone=self.timezone)


class LocationMetrics(BaseModel):
    """One location's raw records for a query window"""
    id: str
    name: str
    timezone: str
    reservations: List[Reservation] = []
    walk_ins: List[WalkIn] = []

    @validator('timezone')
    def timezone_must_exist(cls, v):
        return validate_timezone_name(v)

    @property
    def context(self) -> LocationContext:
        return LocationContext(id=self.id, name=self.name, timezone=self.timezone)


class AggregatedMetrics(BaseModel):
    """Cross-location rollup handed to the dashboard"""
    total_reservations: int = 0
    average_party_size: float = 0.0
    peak_hour: str
    no_show_rate: float = 0.0
    no_show_change: float = 0.0
    reservation_growth: float = 0.0
    daily_data: List[DailyBucket] = []
    cross_location_guests: int = 0
    top_migration: MigrationRoute = Field(default_factory=MigrationRoute.none)
    location_names: Dict[str, str] = {}
    diagnostics: List[Diagnostic] = []
    generated_at: datetime = Field(default_factory=_utcnow)

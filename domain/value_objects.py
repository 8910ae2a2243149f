"""Domain Value Objects"""
from pydantic import BaseModel, Field, validator
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

import pytz

from domain.enums import RecordType


def validate_timezone_name(name: str) -> str:
    """Reject anything pytz does not know as an IANA zone"""
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValueError(f"Unknown timezone: {name}")
    return name


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LocationContext(BaseModel):
    """Value Object identifying one location and the zone it lives in"""
    id: str
    name: str
    timezone: str

    @validator('timezone')
    def timezone_must_exist(cls, v):
        return validate_timezone_name(v)

    class Config:
        frozen = True


class DailyBucket(BaseModel):
    """Counts for one civil date as observed in one timezone.

    Buckets are immutable; folding an event in returns a new bucket so a
    bucket held by one location's map can never be altered through another.
    """
    date: str
    timezone: str
    reservations: int = Field(default=0, ge=0)
    walk_ins: int = Field(default=0, ge=0)
    covers: int = Field(default=0, ge=0)
    revenue: Decimal = Field(default=Decimal("0"), ge=0)

    class Config:
        frozen = True

    @classmethod
    def empty(cls, date: str, timezone: str) -> "DailyBucket":
        return cls(date=date, timezone=timezone)

    def with_reservation(self, party_size: int, revenue: Optional[Decimal] = None) -> "DailyBucket":
        return self.copy_with(
            reservations=self.reservations + 1,
            covers=self.covers + party_size,
            revenue=self.revenue + (revenue or Decimal("0")),
        )

    def with_walk_in(self, party_size: int) -> "DailyBucket":
        return self.copy_with(
            walk_ins=self.walk_ins + 1,
            covers=self.covers + party_size,
        )

    def combine(self, other: "DailyBucket") -> "DailyBucket":
        """Sum another bucket for the same date into this one, keeping this timezone"""
        if other.date != self.date:
            raise ValueError(f"Cannot combine buckets for {self.date} and {other.date}")
        return self.copy_with(
            reservations=self.reservations + other.reservations,
            walk_ins=self.walk_ins + other.walk_ins,
            covers=self.covers + other.covers,
            revenue=self.revenue + other.revenue,
        )

    def copy_with(self, **changes) -> "DailyBucket":
        return self.model_copy(update=changes)


class MigrationRoute(BaseModel):
    """Most travelled previous-location -> current-location pair"""
    from_location: str
    to_location: str
    count: int = Field(default=0, ge=0)

    class Config:
        frozen = True

    @classmethod
    def none(cls) -> "MigrationRoute":
        return cls(from_location=NO_ROUTE, to_location=NO_ROUTE, count=0)

    @property
    def is_none(self) -> bool:
        return self.count == 0


NO_ROUTE = "N/A"


class Diagnostic(BaseModel):
    """A record that was skipped during aggregation and why"""
    record_type: RecordType
    record_id: str
    location_id: str
    raw_value: str
    message: str

    class Config:
        frozen = True


class AggregationQuery(BaseModel):
    """Value Object describing what to aggregate"""
    location_ids: List[str]
    start_date: datetime
    end_date: datetime

    @validator('location_ids')
    def drop_duplicate_locations(cls, v):
        seen = []
        for location_id in v:
            if location_id not in seen:
                seen.append(location_id)
        return seen

    @validator('start_date', 'end_date')
    def normalize_to_utc(cls, v):
        return ensure_utc(v)

    @validator('end_date')
    def end_after_start(cls, v, values):
        if 'start_date' in values and v <= values['start_date']:
            raise ValueError('End date must be after start date')
        return v

    class Config:
        frozen = True

    def cache_key(self) -> Tuple[Tuple[str, ...], str, str]:
        """Identical for any ordering of the same location set"""
        return (
            tuple(sorted(self.location_ids)),
            self.start_date.isoformat(),
            self.end_date.isoformat(),
        )

    def previous_period(self) -> "AggregationQuery":
        """Same locations over the window of equal length ending at start_date"""
        length = self.end_date - self.start_date
        return AggregationQuery(
            location_ids=self.location_ids,
            start_date=self.start_date - length,
            end_date=self.start_date,
        )

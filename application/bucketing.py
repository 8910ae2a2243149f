"""
Per-location civil-date bucketing.

Every location reports instants in UTC, but its business day is the
calendar day on the wall clock of the location itself. A reservation at
2025-02-11T04:30Z in America/New_York is 23:30 on Feb 10 there, so it
belongs to the Feb 10 bucket of that location, not Feb 11.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Union

import pytz
from dateutil.parser import isoparse

from domain.entities import LocationMetrics, Reservation, WalkIn
from domain.enums import RecordType
from domain.exceptions import InvalidTimestampError
from domain.value_objects import DailyBucket, Diagnostic

logger = logging.getLogger("metrics.application.bucketing")

DATE_FORMAT = "%Y-%m-%d"


def parse_timestamp(value: Union[datetime, str, None]) -> datetime:
    """
    Parse a record timestamp into an aware UTC instant.

    Args:
        value: ISO-8601 string (``Z`` or numeric offset) or a datetime.
               Naive values are taken to be UTC.

    Raises:
        InvalidTimestampError: value is empty, not an ISO-8601 instant, or
            outside the range datetime can represent in UTC
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = isoparse(value.strip())
        except (ValueError, OverflowError):
            raise InvalidTimestampError(value)
    else:
        raise InvalidTimestampError(value)

    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    try:
        return dt.astimezone(pytz.UTC)
    except (ValueError, OverflowError):
        raise InvalidTimestampError(value)


def to_location_time(instant: datetime, timezone_name: str) -> datetime:
    """
    Wall-clock time at the location for a UTC instant.

    Raises:
        InvalidTimestampError: the local time falls outside year 1..9999
    """
    tz = pytz.timezone(timezone_name)
    try:
        return instant.astimezone(tz)
    except (ValueError, OverflowError):
        raise InvalidTimestampError(instant)


def civil_date(instant: datetime, timezone_name: str) -> str:
    """YYYY-MM-DD of the instant as experienced in the given zone"""
    return to_location_time(instant, timezone_name).strftime(DATE_FORMAT)


def local_hour(instant: datetime, timezone_name: str) -> int:
    return to_location_time(instant, timezone_name).hour


@dataclass
class LocationBuckets:
    """Result of bucketing one location's records"""
    location_id: str
    timezone: str
    daily: Dict[str, DailyBucket] = field(default_factory=dict)
    reservations: List[Reservation] = field(default_factory=list)
    walk_ins: List[WalkIn] = field(default_factory=list)

    def screened(self, location: LocationMetrics) -> LocationMetrics:
        """The location's payload restricted to records that were bucketed"""
        return location.model_copy(update={
            "reservations": list(self.reservations),
            "walk_ins": list(self.walk_ins),
        })


class TimezoneBucketer:
    """Folds one location's records into its own civil-date buckets"""

    def __init__(self, diagnostics: Optional[List[Diagnostic]] = None):
        self.diagnostics = diagnostics if diagnostics is not None else []

    def bucket_location(self, location: LocationMetrics) -> LocationBuckets:
        result = LocationBuckets(location_id=location.id, timezone=location.timezone)

        for reservation in location.reservations:
            date_key = self._date_or_report(location, RecordType.RESERVATION, reservation.id, reservation.timestamp)
            if date_key is None:
                continue
            bucket = self._bucket_for(result, date_key)
            result.daily[date_key] = bucket.with_reservation(
                reservation.party_size, reservation.estimated_revenue
            )
            result.reservations.append(reservation)

        for walk_in in location.walk_ins:
            date_key = self._date_or_report(location, RecordType.WALK_IN, walk_in.id, walk_in.timestamp)
            if date_key is None:
                continue
            bucket = self._bucket_for(result, date_key)
            result.daily[date_key] = bucket.with_walk_in(walk_in.party_size)
            result.walk_ins.append(walk_in)

        return result

    def _bucket_for(self, result: LocationBuckets, date_key: str) -> DailyBucket:
        return result.daily.get(date_key) or DailyBucket.empty(date_key, result.timezone)

    def _date_or_report(self,
                        location: LocationMetrics,
                        record_type: RecordType,
                        record_id: str,
                        raw) -> Optional[str]:
        """Civil date of the record at the location, or None once reported"""
        try:
            return civil_date(parse_timestamp(raw), location.timezone)
        except InvalidTimestampError:
            label = "walk-in" if record_type == RecordType.WALK_IN else "reservation"
            logger.warning(f"Invalid timestamp for {label} {record_id}: {raw}")
            self.diagnostics.append(Diagnostic(
                record_type=record_type,
                record_id=record_id,
                location_id=location.id,
                raw_value=str(raw),
                message=f"Invalid timestamp for {label} {record_id}",
            ))
            return None

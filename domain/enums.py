"""Domain Enums"""
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ReservationStatus.COMPLETED, ReservationStatus.NO_SHOW, ReservationStatus.CANCELLED)


class RecordType(str, Enum):
    RESERVATION = "reservation"
    WALK_IN = "walk_in"


class AggregationState(str, Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    BUCKETING = "BUCKETING"
    MERGING = "MERGING"
    DERIVING = "DERIVING"
    DONE = "DONE"
    FAILED = "FAILED"

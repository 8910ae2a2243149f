"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from domain.enums import ReservationStatus


# ============================================================================
# LOCATION SCHEMAS
# ============================================================================

class CreateLocationRequest(BaseModel):
    """Create location request DTO"""
    id: Optional[str] = None
    name: str
    timezone: str = Field(description="IANA timezone, e.g. America/New_York")
    address: Optional[str] = None
    max_party_size: int = Field(ge=1, default=20)
    accept_walk_ins: bool = True


class LocationResponse(BaseModel):
    """Location response DTO"""
    id: str
    name: str
    timezone: str
    address: Optional[str] = None
    max_party_size: int
    accept_walk_ins: bool


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    guest_id: str
    location_id: str
    timestamp: datetime
    party_size: int = Field(ge=1)
    table_id: Optional[str] = None
    estimated_revenue: Optional[Decimal] = Field(None, ge=0)
    previous_location_id: Optional[str] = None
    notes: Optional[str] = None


class UpdateReservationStatusRequest(BaseModel):
    """Update reservation status request DTO"""
    status: ReservationStatus


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    id: str
    guest_id: str
    location_id: str
    table_id: Optional[str] = None
    timestamp: str
    party_size: int
    status: str
    estimated_revenue: Optional[Decimal] = None
    previous_location_id: Optional[str] = None
    notes: Optional[str] = None
    modified_at: datetime
    version: int


class CreateWalkInRequest(BaseModel):
    """Record walk-in request DTO"""
    location_id: str
    timestamp: datetime
    party_size: int = Field(ge=1)
    table_id: Optional[str] = None
    guest_id: Optional[str] = None


class WalkInResponse(BaseModel):
    """Walk-in response DTO"""
    id: str
    location_id: str
    table_id: Optional[str] = None
    guest_id: Optional[str] = None
    timestamp: str
    party_size: int


class LocationMetricsResponse(BaseModel):
    """Raw records of one location for a window"""
    id: str
    name: str
    timezone: str
    reservations: List[ReservationResponse]
    walk_ins: List[WalkInResponse]


# ============================================================================
# ANALYTICS SCHEMAS
# ============================================================================

class AggregateMetricsRequest(BaseModel):
    """Aggregation query DTO"""
    location_ids: List[str]
    start_date: datetime
    end_date: datetime


class DailyBucketResponse(BaseModel):
    """One merged day"""
    date: str
    timezone: str
    reservations: int
    walk_ins: int
    covers: int
    revenue: Decimal


class MigrationRouteResponse(BaseModel):
    from_location: str
    to_location: str
    count: int


class DiagnosticResponse(BaseModel):
    record_type: str
    record_id: str
    location_id: str
    raw_value: str
    message: str


class AggregatedMetricsResponse(BaseModel):
    """Aggregated metrics response DTO"""
    total_reservations: int
    average_party_size: float
    peak_hour: str
    no_show_rate: float
    no_show_change: float
    reservation_growth: float
    daily_data: List[DailyBucketResponse]
    cross_location_guests: int
    top_migration: MigrationRouteResponse
    location_names: Dict[str, str]
    diagnostics: List[DiagnosticResponse]
    generated_at: datetime

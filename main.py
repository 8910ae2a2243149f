from fastapi import FastAPI, HTTPException, Depends, Query
from datetime import date, datetime
from typing import List

from api.schemas import (
    # Locations
    CreateLocationRequest, LocationResponse, LocationMetricsResponse,
    # Reservations
    CreateReservationRequest, UpdateReservationStatusRequest, ReservationResponse,
    CreateWalkInRequest, WalkInResponse,
    # Analytics
    AggregateMetricsRequest, AggregatedMetricsResponse, DailyBucketResponse,
    MigrationRouteResponse, DiagnosticResponse
)
from api.dependencies import (
    get_aggregation_service, get_location_service, get_metrics_source, get_reservation_service
)
from application.services import AggregationService, LocationService, ReservationService
from domain.enums import ReservationStatus
from domain.repositories import LocationMetricsSource
from domain.exceptions import AggregationTimeoutError, FetchError
from domain.value_objects import AggregationQuery
from infrastructure.config import settings
from infrastructure.logging_config import setup_logging

logger = setup_logging()

app = FastAPI(
    title=settings.app_name,
    description="Cross-location reservation metrics with timezone-correct daily rollups",
    version="1.0.0"
)

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus enum values"""
    return {
        "values": [item.value for item in ReservationStatus],
        "description": "Reservation status values: pending, confirmed, seated, completed, no_show, cancelled"
    }

# ============================================================================
# ANALYTICS ENDPOINTS
# ============================================================================

@app.post("/api/analytics/aggregate", response_model=AggregatedMetricsResponse, tags=["Analytics"])
async def aggregate_metrics(
    request: AggregateMetricsRequest,
    service: AggregationService = Depends(get_aggregation_service)
):
    """Aggregate metrics across locations"""
    try:
        query = AggregationQuery(
            location_ids=request.location_ids,
            start_date=request.start_date,
            end_date=request.end_date
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        metrics = await service.aggregate(query)
    except FetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except AggregationTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    return _metrics_to_response(metrics)

@app.post("/api/analytics/cache/invalidate", tags=["Analytics"])
async def invalidate_metrics_cache(
    service: AggregationService = Depends(get_aggregation_service)
):
    """Drop every cached aggregation"""
    service.invalidate_cache()
    return {"success": True, "message": "Aggregation cache cleared"}

# ============================================================================
# LOCATION ENDPOINTS
# ============================================================================

@app.post("/api/locations", response_model=LocationResponse, status_code=201, tags=["Locations"])
async def create_location(
    request: CreateLocationRequest,
    service: LocationService = Depends(get_location_service)
):
    """Register a location"""
    try:
        location = await service.create_location(
            name=request.name,
            timezone=request.timezone,
            address=request.address,
            max_party_size=request.max_party_size,
            accept_walk_ins=request.accept_walk_ins,
            location_id=request.id
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _location_to_response(location)

@app.get("/api/locations", response_model=List[LocationResponse], tags=["Locations"])
async def get_locations(service: LocationService = Depends(get_location_service)):
    """Get all locations"""
    return [_location_to_response(l) for l in await service.get_all_locations()]

@app.get("/api/locations/{location_id}/metrics", response_model=LocationMetricsResponse, tags=["Locations"])
async def get_location_metrics(
    location_id: str,
    start: datetime,
    end: datetime,
    source: LocationMetricsSource = Depends(get_metrics_source)
):
    """Raw reservations and walk-ins of one location for [start, end)"""
    try:
        location = await source.fetch_location_metrics(location_id, start, end)
    except FetchError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return LocationMetricsResponse(
        id=location.id,
        name=location.name,
        timezone=location.timezone,
        reservations=[_reservation_to_response(r) for r in location.reservations],
        walk_ins=[_walk_in_to_response(w) for w in location.walk_ins]
    )

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Create new reservation"""
    try:
        reservation = await service.create_reservation(
            guest_id=request.guest_id,
            location_id=request.location_id,
            timestamp=request.timestamp,
            party_size=request.party_size,
            table_id=request.table_id,
            estimated_revenue=request.estimated_revenue,
            previous_location_id=request.previous_location_id,
            notes=request.notes
        )
        return _reservation_to_response(reservation)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_reservations(
    location_id: str,
    on_date: date = Query(alias="date"),
    service: ReservationService = Depends(get_reservation_service)
):
    """Get reservations of a location on a local calendar date"""
    reservations = await service.get_reservations(location_id, on_date)
    return [_reservation_to_response(r) for r in reservations]

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: str,
    service: ReservationService = Depends(get_reservation_service)
):
    """Get reservation by ID"""
    reservation = await service.get_reservation(reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)

@app.put("/api/reservations/{reservation_id}/status", response_model=ReservationResponse, tags=["Reservations"])
async def update_reservation_status(
    reservation_id: str,
    request: UpdateReservationStatusRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Change reservation status"""
    try:
        reservation = await service.update_reservation_status(reservation_id, request.status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/cancel", response_model=ReservationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: str,
    service: ReservationService = Depends(get_reservation_service)
):
    """Cancel reservation"""
    try:
        reservation = await service.cancel_reservation(reservation_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)

@app.post("/api/walk-ins", response_model=WalkInResponse, status_code=201, tags=["Walk-ins"])
async def record_walk_in(
    request: CreateWalkInRequest,
    service: ReservationService = Depends(get_reservation_service)
):
    """Record a walk-in"""
    try:
        walk_in = await service.record_walk_in(
            location_id=request.location_id,
            timestamp=request.timestamp,
            party_size=request.party_size,
            table_id=request.table_id,
            guest_id=request.guest_id
        )
        return _walk_in_to_response(walk_in)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _timestamp_text(value) -> str:
    return value.isoformat() if isinstance(value, datetime) else str(value)

def _location_to_response(location) -> LocationResponse:
    """Convert Location entity to LocationResponse"""
    return LocationResponse(
        id=location.id,
        name=location.name,
        timezone=location.timezone,
        address=location.address,
        max_party_size=location.max_party_size,
        accept_walk_ins=location.accept_walk_ins
    )

def _reservation_to_response(reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        id=reservation.id,
        guest_id=reservation.guest_id,
        location_id=reservation.location_id,
        table_id=reservation.table_id,
        timestamp=_timestamp_text(reservation.timestamp),
        party_size=reservation.party_size,
        status=reservation.status.value,
        estimated_revenue=reservation.estimated_revenue,
        previous_location_id=reservation.previous_location_id,
        notes=reservation.notes,
        modified_at=reservation.modified_at,
        version=reservation.version
    )

def _walk_in_to_response(walk_in) -> WalkInResponse:
    """Convert WalkIn entity to WalkInResponse"""
    return WalkInResponse(
        id=walk_in.id,
        location_id=walk_in.location_id,
        table_id=walk_in.table_id,
        guest_id=walk_in.guest_id,
        timestamp=_timestamp_text(walk_in.timestamp),
        party_size=walk_in.party_size
    )

def _metrics_to_response(metrics) -> AggregatedMetricsResponse:
    """Convert AggregatedMetrics to AggregatedMetricsResponse"""
    return AggregatedMetricsResponse(
        total_reservations=metrics.total_reservations,
        average_party_size=metrics.average_party_size,
        peak_hour=metrics.peak_hour,
        no_show_rate=metrics.no_show_rate,
        no_show_change=metrics.no_show_change,
        reservation_growth=metrics.reservation_growth,
        daily_data=[
            DailyBucketResponse(
                date=b.date,
                timezone=b.timezone,
                reservations=b.reservations,
                walk_ins=b.walk_ins,
                covers=b.covers,
                revenue=b.revenue
            )
            for b in metrics.daily_data
        ],
        cross_location_guests=metrics.cross_location_guests,
        top_migration=MigrationRouteResponse(
            from_location=metrics.top_migration.from_location,
            to_location=metrics.top_migration.to_location,
            count=metrics.top_migration.count
        ),
        location_names=metrics.location_names,
        diagnostics=[
            DiagnosticResponse(
                record_type=d.record_type.value,
                record_id=d.record_id,
                location_id=d.location_id,
                raw_value=d.raw_value,
                message=d.message
            )
            for d in metrics.diagnostics
        ],
        generated_at=metrics.generated_at
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

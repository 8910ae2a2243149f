"""Application Services - Business use cases"""
import asyncio
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Awaitable, List, Optional, Sequence, Tuple

from application.bucketing import TimezoneBucketer, civil_date, parse_timestamp
from application.insights import (
    calculate_average_party_size, calculate_no_show_rate, compare_periods,
    count_cross_location_guests, count_reservations, find_peak_hour,
    find_top_migration_route
)
from application.merging import merge_daily_metrics, sorted_series
from domain.entities import AggregatedMetrics, Location, LocationMetrics, Reservation, WalkIn
from domain.enums import AggregationState, ReservationStatus
from domain.exceptions import AggregationError, AggregationTimeoutError, FetchError, InvalidTimestampError
from domain.repositories import (
    LocationMetricsSource, LocationRepository, ReservationRepository, WalkInRepository
)
from domain.value_objects import AggregationQuery, Diagnostic
from infrastructure.cache import ResultCache

logger = logging.getLogger("metrics.application.services")


async def _gather_or_cancel(*aws: Awaitable) -> list:
    """Await all; on the first failure cancel whatever is still running.

    The cancelled and failed siblings are awaited before the failure
    propagates, so no fetch outlives the query and every exception is
    retrieved.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class AggregationService:
    """Cross-location metrics aggregation.

    Flow per query: cache lookup, concurrent fetch of every location for the
    current and previous window, then bucketing, merging and deriving as
    plain synchronous computation. Any failed or missing location fails the
    whole query; nothing partial is ever returned or cached.
    """

    def __init__(self,
                 source: LocationMetricsSource,
                 cache: ResultCache,
                 timeout_seconds: float = 30.0,
                 display_timezone: Optional[str] = None,
                 compare_previous_period: bool = True):
        self.source = source
        self.cache = cache
        self.timeout_seconds = timeout_seconds
        self.display_timezone = display_timezone
        self.compare_previous_period = compare_previous_period

    async def aggregate(self, query: AggregationQuery) -> AggregatedMetrics:
        """Aggregate metrics for the query, served from cache within the TTL"""
        key = query.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Aggregation cache hit for {key}")
            return cached

        generation = self.cache.generation
        self._transition(key, AggregationState.FETCHING)
        try:
            current, previous = await asyncio.wait_for(
                self._fetch_periods(query), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            self._transition(key, AggregationState.FAILED)
            logger.error(f"Aggregation timed out after {self.timeout_seconds}s for {key}")
            raise AggregationTimeoutError(
                f"Aggregation did not complete within {self.timeout_seconds} seconds"
            )
        except AggregationError as e:
            self._transition(key, AggregationState.FAILED)
            logger.error(f"Aggregation failed for {key}: {e}")
            raise

        result = self._build(key, current, previous)
        self.cache.set(key, result, generation)
        self._transition(key, AggregationState.DONE)
        return result

    def invalidate_cache(self) -> None:
        self.cache.invalidate()

    # ==================== FETCHING ====================
    async def _fetch_periods(
        self, query: AggregationQuery
    ) -> Tuple[List[LocationMetrics], Optional[List[LocationMetrics]]]:
        if not self.compare_previous_period:
            return await self._fetch_all(query), None

        current, previous = await _gather_or_cancel(
            self._fetch_all(query),
            self._fetch_all(query.previous_period())
        )
        return current, previous

    async def _fetch_all(self, query: AggregationQuery) -> List[LocationMetrics]:
        return await _gather_or_cancel(*[
            self._fetch_one(location_id, query.start_date, query.end_date)
            for location_id in query.location_ids
        ])

    async def _fetch_one(self, location_id: str, start: datetime, end: datetime) -> LocationMetrics:
        try:
            location = await self.source.fetch_location_metrics(location_id, start, end)
        except AggregationError:
            raise
        except Exception as e:
            raise FetchError(
                f"Failed to fetch metrics for location {location_id}: {e}",
                location_id=location_id
            ) from e

        if location is None:
            raise FetchError(f"No metrics returned for location {location_id}", location_id=location_id)
        if location.id != location_id:
            raise FetchError(
                f"Requested location {location_id} but received {location.id}",
                location_id=location_id
            )
        return location

    # ==================== PURE COMPUTATION ====================
    def _build(self,
               key,
               current: Sequence[LocationMetrics],
               previous: Optional[Sequence[LocationMetrics]]) -> AggregatedMetrics:
        # Canonical order, so every ordering of the same location set yields the same result
        locations = sorted(current, key=lambda l: l.id)

        self._transition(key, AggregationState.BUCKETING)
        diagnostics: List[Diagnostic] = []
        bucketer = TimezoneBucketer(diagnostics)
        bucketed = [bucketer.bucket_location(location) for location in locations]
        screened = [b.screened(location) for b, location in zip(bucketed, locations)]

        self._transition(key, AggregationState.MERGING)
        merged = merge_daily_metrics((b.daily for b in bucketed), self.display_timezone)

        self._transition(key, AggregationState.DERIVING)
        location_names = {location.id: location.name for location in locations}
        total = count_reservations(screened)
        no_show_rate = calculate_no_show_rate(screened)

        trends = {}
        if previous is not None:
            prior = self._screen(sorted(previous, key=lambda l: l.id))
            comparison = compare_periods(
                total, no_show_rate,
                count_reservations(prior), calculate_no_show_rate(prior)
            )
            trends = dict(
                no_show_change=comparison.no_show_change,
                reservation_growth=comparison.reservation_growth
            )

        return AggregatedMetrics(
            total_reservations=total,
            average_party_size=calculate_average_party_size(screened),
            peak_hour=find_peak_hour(screened),
            no_show_rate=no_show_rate,
            daily_data=sorted_series(merged),
            cross_location_guests=count_cross_location_guests(screened),
            top_migration=find_top_migration_route(screened, location_names),
            location_names=location_names,
            diagnostics=diagnostics,
            **trends
        )

    @staticmethod
    def _screen(locations: Sequence[LocationMetrics]) -> List[LocationMetrics]:
        bucketer = TimezoneBucketer()
        return [bucketer.bucket_location(location).screened(location) for location in locations]

    @staticmethod
    def _transition(key, state: AggregationState) -> None:
        logger.debug(f"Aggregation {key}: {state.value}")


class ReservationService:
    """Service for Reservation and walk-in use cases.

    Every write drops the aggregation cache, since any new record or status
    change can alter a cached rollup.
    """

    def __init__(self,
                 repository: ReservationRepository,
                 walk_in_repo: WalkInRepository,
                 location_repo: LocationRepository,
                 cache: Optional[ResultCache] = None):
        self.repository = repository
        self.walk_in_repo = walk_in_repo
        self.location_repo = location_repo
        self.cache = cache

    async def create_reservation(
        self,
        guest_id: str,
        location_id: str,
        timestamp: datetime,
        party_size: int,
        table_id: Optional[str] = None,
        estimated_revenue: Optional[Decimal] = None,
        previous_location_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Reservation:
        """Create new pending reservation"""
        location = await self._require_location(location_id)

        reservation = Reservation.create(
            guest_id=guest_id,
            location_id=location_id,
            timestamp=parse_timestamp(timestamp),
            party_size=party_size,
            table_id=table_id,
            estimated_revenue=estimated_revenue,
            previous_location_id=previous_location_id,
            notes=notes,
            max_party_size=location.max_party_size
        )

        saved = await self.repository.save(reservation)
        self._invalidate()
        return saved

    async def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        """Get reservation by ID"""
        return await self.repository.find_by_id(reservation_id)

    async def get_reservations(self, location_id: str, on_date: date) -> List[Reservation]:
        """Reservations falling on a civil date at the location"""
        location = await self.location_repo.find_by_id(location_id)
        if not location:
            return []

        wanted = on_date.isoformat()
        matches = []
        for reservation in await self.repository.find_by_location(location_id):
            try:
                local_date = civil_date(parse_timestamp(reservation.timestamp), location.timezone)
            except InvalidTimestampError:
                continue
            if local_date == wanted:
                matches.append(reservation)
        return sorted(matches, key=lambda r: parse_timestamp(r.timestamp))

    async def update_reservation_status(
        self,
        reservation_id: str,
        status: ReservationStatus
    ) -> Optional[Reservation]:
        """Move reservation to a new status"""
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            return None

        try:
            reservation.change_status(status)
        except ValueError as e:
            raise ValueError(f"Cannot update reservation status: {str(e)}")

        updated = await self.repository.update(reservation)
        self._invalidate()
        return updated

    async def cancel_reservation(self, reservation_id: str) -> Optional[Reservation]:
        """Cancel reservation"""
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            return None

        try:
            reservation.cancel()
        except ValueError as e:
            raise ValueError(f"Cannot cancel reservation: {str(e)}")

        updated = await self.repository.update(reservation)
        self._invalidate()
        return updated

    async def record_walk_in(
        self,
        location_id: str,
        timestamp: datetime,
        party_size: int,
        table_id: Optional[str] = None,
        guest_id: Optional[str] = None
    ) -> WalkIn:
        """Record an unbooked party that was seated"""
        location = await self._require_location(location_id)
        if not location.accept_walk_ins:
            raise ValueError(f"Location {location.name} does not accept walk-ins")
        if party_size > location.max_party_size:
            raise ValueError(f"Party size exceeds maximum of {location.max_party_size}")

        walk_in = WalkIn(
            location_id=location_id,
            timestamp=parse_timestamp(timestamp),
            party_size=party_size,
            table_id=table_id,
            guest_id=guest_id
        )
        saved = await self.walk_in_repo.save(walk_in)
        self._invalidate()
        return saved

    async def _require_location(self, location_id: str) -> Location:
        location = await self.location_repo.find_by_id(location_id)
        if not location:
            raise ValueError(f"Location {location_id} not found")
        return location

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.invalidate()


class LocationService:
    """Service for Location use cases"""

    def __init__(self, repository: LocationRepository):
        self.repository = repository

    async def create_location(
        self,
        name: str,
        timezone: str,
        address: Optional[str] = None,
        max_party_size: int = 20,
        accept_walk_ins: bool = True,
        location_id: Optional[str] = None
    ) -> Location:
        """Register a location"""
        fields = dict(
            name=name,
            timezone=timezone,
            address=address,
            max_party_size=max_party_size,
            accept_walk_ins=accept_walk_ins
        )
        if location_id:
            if await self.repository.find_by_id(location_id):
                raise ValueError(f"Location {location_id} already exists")
            fields["id"] = location_id
        return await self.repository.save(Location(**fields))

    async def get_location(self, location_id: str) -> Optional[Location]:
        return await self.repository.find_by_id(location_id)

    async def get_all_locations(self) -> List[Location]:
        return await self.repository.find_all()

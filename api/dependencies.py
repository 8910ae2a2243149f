"""API Dependencies - process-wide wiring"""
from application.services import AggregationService, LocationService, ReservationService
from infrastructure.cache import ResultCache
from infrastructure.config import settings
from infrastructure.repositories.in_memory_repositories import (
    InMemoryLocationRepository, InMemoryReservationRepository, InMemoryWalkInRepository,
    RepositoryLocationMetricsSource
)

# Initialize repositories
location_repo = InMemoryLocationRepository()
reservation_repo = InMemoryReservationRepository()
walk_in_repo = InMemoryWalkInRepository()

metrics_source = RepositoryLocationMetricsSource(location_repo, reservation_repo, walk_in_repo)

# One cache per process, shared by the aggregation and write paths
result_cache = ResultCache(
    ttl_seconds=settings.cache_ttl_seconds,
    max_entries=settings.cache_max_entries
)


def get_aggregation_service() -> AggregationService:
    return AggregationService(
        metrics_source,
        result_cache,
        timeout_seconds=settings.aggregation_timeout_seconds,
        display_timezone=settings.display_timezone
    )


def get_reservation_service() -> ReservationService:
    return ReservationService(reservation_repo, walk_in_repo, location_repo, result_cache)


def get_location_service() -> LocationService:
    return LocationService(location_repo)


def get_metrics_source() -> RepositoryLocationMetricsSource:
    return metrics_source

"""
Derived insights over raw per-location records.

Each calculator is a pure function of the location payloads; none of them
looks at bucketing output, and all of them return a defined zero or
sentinel value when there is nothing to measure.
"""
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from application.bucketing import local_hour, parse_timestamp
from domain.entities import LocationMetrics
from domain.exceptions import InvalidTimestampError
from domain.value_objects import MigrationRoute

NO_PEAK_HOUR = "N/A"


def count_reservations(locations: Iterable[LocationMetrics]) -> int:
    return sum(len(location.reservations) for location in locations)


def calculate_average_party_size(locations: Iterable[LocationMetrics]) -> float:
    """Mean party size over all reservations, 0 when there are none"""
    total = 0
    count = 0
    for location in locations:
        for reservation in location.reservations:
            total += reservation.party_size
            count += 1
    return total / count if count > 0 else 0.0


def calculate_no_show_rate(locations: Iterable[LocationMetrics]) -> float:
    """Fraction of reservations marked no_show, 0 when there are none"""
    no_shows = 0
    total = 0
    for location in locations:
        for reservation in location.reservations:
            total += 1
            if reservation.is_no_show:
                no_shows += 1
    return no_shows / total if total > 0 else 0.0


def format_hour_label(hour: int) -> str:
    """19 -> '7:00 PM', 0 -> '12:00 AM'"""
    if not 0 <= hour <= 23:
        raise ValueError(f"Hour out of range: {hour}")
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:00 {suffix}"


def tally_local_hours(locations: Iterable[LocationMetrics]) -> Dict[int, int]:
    """Reservations per local hour of day, each in its own location's zone"""
    counts: Dict[int, int] = {}
    for location in locations:
        for reservation in location.reservations:
            try:
                hour = local_hour(parse_timestamp(reservation.timestamp), location.timezone)
            except InvalidTimestampError:
                continue
            counts[hour] = counts.get(hour, 0) + 1
    return counts


def find_peak_hour(locations: Iterable[LocationMetrics]) -> str:
    """Busiest local hour as a 12-hour label; the earliest hour wins a tie"""
    counts = tally_local_hours(locations)
    if not counts:
        return NO_PEAK_HOUR
    peak = min(counts, key=lambda hour: (-counts[hour], hour))
    return format_hour_label(peak)


def build_guest_location_map(locations: Iterable[LocationMetrics]) -> Dict[str, Set[str]]:
    guest_locations: Dict[str, Set[str]] = {}
    for location in locations:
        for reservation in location.reservations:
            guest_locations.setdefault(reservation.guest_id, set()).add(location.id)
    return guest_locations


def count_cross_location_guests(locations: Iterable[LocationMetrics]) -> int:
    """Guests holding reservations at more than one location"""
    guest_locations = build_guest_location_map(locations)
    return sum(1 for location_ids in guest_locations.values() if len(location_ids) > 1)


def tally_migrations(locations: Iterable[LocationMetrics]) -> Counter:
    """(previous_location_id, location_id) -> count, in first-seen order"""
    routes: Counter = Counter()
    for location in locations:
        for reservation in location.reservations:
            previous = reservation.previous_location_id
            if previous and previous != location.id:
                routes[(previous, location.id)] += 1
    return routes


def find_top_migration_route(
    locations: List[LocationMetrics],
    location_names: Optional[Dict[str, str]] = None
) -> MigrationRoute:
    """
    Most frequent previous -> current location move.

    Ties go to the route seen first. Ids are resolved to display names,
    falling back to the raw id for locations outside the query.
    """
    routes = tally_migrations(locations)
    if not routes:
        return MigrationRoute.none()

    names = location_names if location_names is not None else {l.id: l.name for l in locations}

    top: Optional[Tuple[str, str]] = None
    for route, count in routes.items():
        if top is None or count > routes[top]:
            top = route

    from_id, to_id = top
    return MigrationRoute(
        from_location=names.get(from_id, from_id),
        to_location=names.get(to_id, to_id),
        count=routes[top],
    )


@dataclass(frozen=True)
class PeriodComparison:
    no_show_change: float
    reservation_growth: float


def compare_periods(
    current_total: int,
    current_no_show_rate: float,
    previous_total: int,
    previous_no_show_rate: float
) -> PeriodComparison:
    """
    Period-over-period deltas.

    no_show_change is in percentage points; reservation_growth is percent
    change of the reservation count and 0 when the previous period was empty.
    """
    no_show_change = round((current_no_show_rate - previous_no_show_rate) * 100, 1)
    if previous_total > 0:
        growth = round((current_total - previous_total) / previous_total * 100, 1)
    else:
        growth = 0.0
    return PeriodComparison(no_show_change=no_show_change, reservation_growth=growth)

"""Cross-location daily merge"""
from typing import Dict, Iterable, List, Mapping, Optional

from domain.value_objects import DailyBucket


def merge_daily_metrics(
    location_daily_maps: Iterable[Mapping[str, DailyBucket]],
    display_timezone: Optional[str] = None
) -> Dict[str, DailyBucket]:
    """
    Sum per-location buckets that share a date string.

    Counts are added field by field, so no location's totals can replace
    another's. The timezone on a merged bucket is presentation only: the
    display zone when one is given, otherwise the zone of the first
    location that contributed to that date.
    """
    merged: Dict[str, DailyBucket] = {}

    for daily in location_daily_maps:
        for date_key, bucket in daily.items():
            existing = merged.get(date_key)
            if existing is None:
                merged[date_key] = bucket.copy_with(timezone=display_timezone or bucket.timezone)
            else:
                merged[date_key] = existing.combine(bucket)

    return merged


def sorted_series(merged: Mapping[str, DailyBucket]) -> List[DailyBucket]:
    """Merged buckets in ascending date order"""
    return [merged[date_key] for date_key in sorted(merged)]

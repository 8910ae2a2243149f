"""Domain Exceptions"""
from typing import Optional


class AggregationError(Exception):
    """Failure that aborts a whole aggregation query"""
    pass


class FetchError(AggregationError):
    """A queried location's records could not be fetched"""

    def __init__(self, message: str, location_id: Optional[str] = None):
        super().__init__(message)
        self.location_id = location_id


class AggregationTimeoutError(AggregationError):
    """The per-query time budget elapsed before all fetches completed"""
    pass


class InvalidTimestampError(ValueError):
    """A single record's timestamp does not parse to an instant"""

    def __init__(self, raw_value):
        super().__init__(f"Invalid timestamp: {raw_value!r}")
        self.raw_value = raw_value

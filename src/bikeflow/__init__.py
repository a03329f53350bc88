"""Time-of-day windowed station traffic for bike-share trip data."""

from .core import (
    DEFAULT_HALF_WIDTH,
    MINUTES_PER_DAY,
    NO_FILTER,
    EventBucketer,
    InvalidArgument,
    Location,
    MinuteBucketSet,
    ParseError,
    StationTraffic,
    TripEvent,
    aggregate,
    select,
)
from .service import TrafficQueryService, TrafficSnapshot, query

__all__ = [
    "DEFAULT_HALF_WIDTH",
    "EventBucketer",
    "InvalidArgument",
    "Location",
    "MINUTES_PER_DAY",
    "MinuteBucketSet",
    "NO_FILTER",
    "ParseError",
    "StationTraffic",
    "TrafficQueryService",
    "TrafficSnapshot",
    "TripEvent",
    "aggregate",
    "query",
    "select",
]

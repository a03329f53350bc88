"""Core traffic engine exports."""

from .aggregator import aggregate, count_orphans, rollup
from .bucketer import EventBucketer, IngestReport, MinuteBucketSet, build_bucket_set
from .domain_types import Location, StationTraffic, TripEvent, canonical_id
from .errors import InvalidArgument, ParseError
from .minute_clock import (
    DEFAULT_HALF_WIDTH,
    MINUTES_PER_DAY,
    NO_FILTER,
    minute_of_day,
    parse_timestamp,
)
from .prefix_index import MinutePrefixIndex
from .window_selector import select, window_minutes, window_segments

__all__ = [
    "DEFAULT_HALF_WIDTH",
    "EventBucketer",
    "IngestReport",
    "InvalidArgument",
    "Location",
    "MINUTES_PER_DAY",
    "MinuteBucketSet",
    "MinutePrefixIndex",
    "NO_FILTER",
    "ParseError",
    "StationTraffic",
    "TripEvent",
    "aggregate",
    "build_bucket_set",
    "canonical_id",
    "count_orphans",
    "minute_of_day",
    "parse_timestamp",
    "rollup",
    "select",
    "window_minutes",
    "window_segments",
]

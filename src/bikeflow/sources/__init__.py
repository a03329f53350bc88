"""Adapters, loaders and configuration at the ingestion boundary."""

from .adapters import StationAdapter, TripAdapter
from .config import TrafficConfig
from .loaders import count_trip_rows, iter_trip_rows, load_station_rows

__all__ = [
    "StationAdapter",
    "TrafficConfig",
    "TripAdapter",
    "count_trip_rows",
    "iter_trip_rows",
    "load_station_rows",
]

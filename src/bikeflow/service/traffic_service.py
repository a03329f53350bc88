"""Query façade that turns minute buckets into annotated station traffic.

This module provides :func:`query`, the one-shot composition of the circular
window selector and the station aggregator, and :class:`TrafficQueryService`,
which owns one session's stations and bucket set and answers repeated
time-of-day filter changes.

Inputs
------
1. **Stations**: canonical :class:`~bikeflow.core.domain_types.Location`
   records, or raw feed rows passed through
   :class:`~bikeflow.sources.adapters.StationAdapter`.
2. **Trips**: canonical trip mappings bulk-loaded by
   :class:`~bikeflow.core.bucketer.EventBucketer` into a
   :class:`~bikeflow.core.bucketer.MinuteBucketSet`.
3. **center_minute**: minute of day in ``[0, 1439]`` or ``-1`` for no filter.

Outputs
-------
A :class:`TrafficSnapshot` holding one fresh
:class:`~bikeflow.core.domain_types.StationTraffic` per station (departures,
arrivals, total), plus counts of selected trips that reference unknown
stations.

Example Usage
-------------
.. code-block:: python

    from bikeflow.service.traffic_service import TrafficQueryService
    from bikeflow.sources import TrafficConfig, iter_trip_rows, load_station_rows

    service = TrafficQueryService.from_records(
        load_station_rows("data/stations.json"),
        iter_trip_rows("data/trips.csv"),
        config=TrafficConfig.from_yaml("config/traffic.yaml"),
    )
    initial = service.query(-1)
    ticket = service.request(8 * 60)  # slider moved to 08:00
    snapshot = service.resolve(ticket)
    if snapshot is not None:
        print(snapshot.to_dataframe().head())

Notes
-----
- Every query recomputes from the read-only bucket set; no partial results
  are carried between calls.
- ``request``/``resolve`` implement latest-wins: a ticket superseded by a
  newer request resolves to ``None``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from bikeflow.core.aggregator import aggregate, check_unique_ids, count_orphans
from bikeflow.core.bucketer import EventBucketer, IngestReport, MinuteBucketSet
from bikeflow.core.domain_types import Location, StationTraffic
from bikeflow.core.minute_clock import (
    DEFAULT_HALF_WIDTH,
    NO_FILTER,
    format_minute,
    validate_center_minute,
    validate_half_width,
)
from bikeflow.core.prefix_index import MinutePrefixIndex
from bikeflow.core.window_selector import select
from bikeflow.sources.adapters import StationAdapter, TripAdapter
from bikeflow.sources.config import TrafficConfig

logger = logging.getLogger(__name__)

SNAPSHOT_COLUMNS: Sequence[str] = (
    "id",
    "name",
    "longitude",
    "latitude",
    "departures",
    "arrivals",
    "total_traffic",
)


def query(
    locations: Sequence[Location],
    bucket_set: MinuteBucketSet,
    center_minute: int,
    half_width: int = DEFAULT_HALF_WIDTH,
) -> List[StationTraffic]:
    """Select the window's departures and arrivals and count them per station."""
    validate_center_minute(center_minute)
    validate_half_width(half_width)
    departures = select(bucket_set.departures, center_minute, half_width)
    arrivals = select(bucket_set.arrivals, center_minute, half_width)
    return aggregate(locations, departures, arrivals)


@dataclass(frozen=True)
class TrafficSnapshot:
    """Structured payload returned by :meth:`TrafficQueryService.query`."""

    center_minute: int
    half_width: int
    stations: Tuple[StationTraffic, ...]
    orphan_departures: int = 0
    orphan_arrivals: int = 0

    @property
    def is_filtered(self) -> bool:
        return self.center_minute != NO_FILTER

    @property
    def total_departures(self) -> int:
        return sum(station.departures for station in self.stations)

    @property
    def total_arrivals(self) -> int:
        return sum(station.arrivals for station in self.stations)

    def by_id(self) -> dict[str, StationTraffic]:
        return {station.id: station for station in self.stations}

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            [station.to_dict() for station in self.stations],
            columns=list(SNAPSHOT_COLUMNS),
        )


class TrafficQueryService:
    """Owns one session's stations and bucket set and answers window queries.

    The bucket set is built before the service exists and is only read
    afterwards. Queries are synchronous and each one is computed from scratch.
    """

    def __init__(
        self,
        locations: Sequence[Location],
        bucket_set: MinuteBucketSet,
        *,
        half_width: int = DEFAULT_HALF_WIDTH,
        prefix_index: MinutePrefixIndex | None = None,
    ) -> None:
        check_unique_ids(locations)
        self._locations: Tuple[Location, ...] = tuple(locations)
        self._bucket_set = bucket_set
        self._half_width = validate_half_width(half_width)
        if prefix_index is not None and prefix_index.locations != self._locations:
            raise ValueError("Prefix index was built for a different station list.")
        self._prefix_index = prefix_index
        self._latest_ticket = 0
        self._pending: dict[int, int] = {}
        self.ingest_report: IngestReport | None = None

    @classmethod
    def from_records(
        cls,
        station_rows: Iterable[Mapping[str, object]],
        trip_rows: Iterable[Mapping[str, object]],
        *,
        config: TrafficConfig | None = None,
    ) -> "TrafficQueryService":
        """Normalize raw rows, bulk-load the buckets, and build the service."""
        config = config or TrafficConfig()
        locations = StationAdapter.from_config(config).normalize_all(station_rows)
        bucketer = EventBucketer()
        report = bucketer.ingest_many(TripAdapter.from_config(config).iter_normalized(trip_rows))
        bucket_set = bucketer.build()
        prefix_index = None
        if config.use_prefix_index:
            prefix_index = MinutePrefixIndex.build(locations, bucket_set)
            logger.debug("Built prefix index for %d stations", prefix_index.num_locations)
        service = cls(
            locations,
            bucket_set,
            half_width=config.half_width_minutes,
            prefix_index=prefix_index,
        )
        service.ingest_report = report
        return service

    # ---------------------------------------------------------------- properties
    @property
    def locations(self) -> Tuple[Location, ...]:
        return self._locations

    @property
    def bucket_set(self) -> MinuteBucketSet:
        return self._bucket_set

    @property
    def half_width(self) -> int:
        return self._half_width

    @property
    def pending_requests(self) -> int:
        """Requests issued but not yet resolved; at most one."""
        return len(self._pending)

    # ------------------------------------------------------------------ queries
    def query(self, center_minute: int) -> TrafficSnapshot:
        center = validate_center_minute(center_minute)
        if self._prefix_index is not None:
            stations = self._prefix_index.query(center, self._half_width)
            total_dep, total_arr = self._prefix_index.window_totals(center, self._half_width)
            orphan_dep = total_dep - sum(station.departures for station in stations)
            orphan_arr = total_arr - sum(station.arrivals for station in stations)
        else:
            departures = select(self._bucket_set.departures, center, self._half_width)
            arrivals = select(self._bucket_set.arrivals, center, self._half_width)
            stations = aggregate(self._locations, departures, arrivals)
            orphan_dep, orphan_arr = count_orphans(self._locations, departures, arrivals)
        if orphan_dep or orphan_arr:
            logger.debug(
                "Window %s: %d departures and %d arrivals reference unknown stations",
                format_minute(center),
                orphan_dep,
                orphan_arr,
            )
        return TrafficSnapshot(
            center_minute=center,
            half_width=self._half_width,
            stations=tuple(stations),
            orphan_departures=orphan_dep,
            orphan_arrivals=orphan_arr,
        )

    def request(self, center_minute: int) -> int:
        """Register a filter change and return its ticket.

        Invalid values are rejected here, before a ticket is issued.
        """
        center = validate_center_minute(center_minute)
        self._latest_ticket += 1
        # Only the newest request can still be resolved.
        self._pending.clear()
        self._pending[self._latest_ticket] = center
        return self._latest_ticket

    def resolve(self, ticket: int) -> Optional[TrafficSnapshot]:
        """Compute the snapshot for ``ticket`` unless a newer request exists."""
        if 0 < ticket < self._latest_ticket:
            logger.debug("Dropping superseded query (ticket %d < %d)", ticket, self._latest_ticket)
            return None
        try:
            center = self._pending.pop(ticket)
        except KeyError as exc:
            raise KeyError(f"Unknown or already resolved ticket {ticket}") from exc
        return self.query(center)


__all__ = ["SNAPSHOT_COLUMNS", "TrafficQueryService", "TrafficSnapshot", "query"]

"""Rollup of selected trip events into per-station traffic counts."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from .domain_types import Location, StationTraffic, TripEvent
from .errors import InvalidArgument

logger = logging.getLogger(__name__)


def departure_key(event: TripEvent) -> str:
    return event.start_location_id


def arrival_key(event: TripEvent) -> str:
    return event.end_location_id


def rollup(events: Iterable[TripEvent], key: Callable[[TripEvent], str]) -> Dict[str, int]:
    """Count events per location id."""
    counts: Dict[str, int] = {}
    for event in events:
        location_id = key(event)
        counts[location_id] = counts.get(location_id, 0) + 1
    return counts


def aggregate(
    locations: Sequence[Location],
    selected_departures: Iterable[TripEvent],
    selected_arrivals: Iterable[TripEvent],
) -> List[StationTraffic]:
    """Left-join departure/arrival counts onto every location.

    Output order follows ``locations``. Stations without trips are kept
    with zero counts; trips pointing at unknown stations count nowhere.
    """
    check_unique_ids(locations)
    departures = rollup(selected_departures, departure_key)
    arrivals = rollup(selected_arrivals, arrival_key)
    stations = annotate(locations, departures, arrivals)

    if logger.isEnabledFor(logging.DEBUG):
        known = {location.id for location in locations}
        orphan_dep = sum(n for loc_id, n in departures.items() if loc_id not in known)
        orphan_arr = sum(n for loc_id, n in arrivals.items() if loc_id not in known)
        if orphan_dep or orphan_arr:
            logger.debug(
                "Ignored %d departures and %d arrivals referencing unknown stations",
                orphan_dep,
                orphan_arr,
            )
    return stations


def annotate(
    locations: Sequence[Location],
    departure_counts: Dict[str, int],
    arrival_counts: Dict[str, int],
) -> List[StationTraffic]:
    return [
        StationTraffic(
            location=location,
            departures=int(departure_counts.get(location.id, 0)),
            arrivals=int(arrival_counts.get(location.id, 0)),
        )
        for location in locations
    ]


def count_orphans(
    locations: Sequence[Location],
    selected_departures: Iterable[TripEvent],
    selected_arrivals: Iterable[TripEvent],
) -> Tuple[int, int]:
    """Return ``(departures, arrivals)`` that reference no known station."""
    known = {location.id for location in locations}
    orphan_dep = sum(1 for event in selected_departures if event.start_location_id not in known)
    orphan_arr = sum(1 for event in selected_arrivals if event.end_location_id not in known)
    return orphan_dep, orphan_arr


def check_unique_ids(locations: Sequence[Location]) -> None:
    seen = set()
    for location in locations:
        if location.id in seen:
            raise InvalidArgument(f"Duplicate station id {location.id!r}")
        seen.add(location.id)


__all__ = [
    "aggregate",
    "annotate",
    "arrival_key",
    "check_unique_ids",
    "count_orphans",
    "departure_key",
    "rollup",
]

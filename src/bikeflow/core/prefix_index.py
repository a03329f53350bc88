"""Prefix-sum index that answers windowed station counts without rescanning."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from .aggregator import check_unique_ids
from .bucketer import Bucket, MinuteBucketSet
from .domain_types import Location, StationTraffic
from .minute_clock import DEFAULT_HALF_WIDTH, MINUTES_PER_DAY
from .window_selector import window_segments


@dataclass(eq=False)
class MinutePrefixIndex:
    """Cumulative per-station counts over the minutes of the day.

    ``departure_prefix[i, m]`` holds the number of departures from station
    ``i`` in minutes ``[0, m)``; likewise for arrivals. Shape is
    ``(num_locations, 1441)``. The ``*_total_prefix`` vectors count every
    event, including those referencing unknown stations.
    """

    locations: Tuple[Location, ...]
    departure_prefix: np.ndarray
    arrival_prefix: np.ndarray
    departure_total_prefix: np.ndarray
    arrival_total_prefix: np.ndarray
    _row_by_id: Dict[str, int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        expected = (len(self.locations), MINUTES_PER_DAY + 1)
        if self.departure_prefix.shape != expected or self.arrival_prefix.shape != expected:
            raise ValueError(f"Prefix arrays must have shape {expected}")
        totals = (MINUTES_PER_DAY + 1,)
        if self.departure_total_prefix.shape != totals or self.arrival_total_prefix.shape != totals:
            raise ValueError(f"Total prefix vectors must have shape {totals}")
        self._row_by_id = {location.id: idx for idx, location in enumerate(self.locations)}

    @classmethod
    def build(cls, locations: Sequence[Location], buckets: MinuteBucketSet) -> "MinutePrefixIndex":
        check_unique_ids(locations)
        row_by_id = {location.id: idx for idx, location in enumerate(locations)}
        departures = _minute_counts(buckets.departures, row_by_id, use_start=True)
        arrivals = _minute_counts(buckets.arrivals, row_by_id, use_start=False)
        return cls(
            locations=tuple(locations),
            departure_prefix=_cumulate(departures),
            arrival_prefix=_cumulate(arrivals),
            departure_total_prefix=_cumulate_totals(buckets.departures),
            arrival_total_prefix=_cumulate_totals(buckets.arrivals),
        )

    @property
    def num_locations(self) -> int:
        return len(self.locations)

    def window_counts(
        self, center_minute: int, half_width: int = DEFAULT_HALF_WIDTH
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Return per-station ``(departures, arrivals)`` arrays for a window."""
        departures = np.zeros(self.num_locations, dtype=np.int64)
        arrivals = np.zeros(self.num_locations, dtype=np.int64)
        for start, stop in window_segments(center_minute, half_width):
            departures += self.departure_prefix[:, stop] - self.departure_prefix[:, start]
            arrivals += self.arrival_prefix[:, stop] - self.arrival_prefix[:, start]
        return departures, arrivals

    def window_totals(
        self, center_minute: int, half_width: int = DEFAULT_HALF_WIDTH
    ) -> Tuple[int, int]:
        """Return ``(departures, arrivals)`` for the window across all events."""
        departures = 0
        arrivals = 0
        for start, stop in window_segments(center_minute, half_width):
            departures += int(self.departure_total_prefix[stop] - self.departure_total_prefix[start])
            arrivals += int(self.arrival_total_prefix[stop] - self.arrival_total_prefix[start])
        return departures, arrivals

    def station_counts(
        self, location_id: str, center_minute: int, half_width: int = DEFAULT_HALF_WIDTH
    ) -> Tuple[int, int]:
        """Return ``(departures, arrivals)`` for one station."""
        try:
            row = self._row_by_id[str(location_id)]
        except KeyError as exc:
            raise KeyError(f"Unknown station id '{location_id}'") from exc
        departures = 0
        arrivals = 0
        for start, stop in window_segments(center_minute, half_width):
            departures += int(self.departure_prefix[row, stop] - self.departure_prefix[row, start])
            arrivals += int(self.arrival_prefix[row, stop] - self.arrival_prefix[row, start])
        return departures, arrivals

    def query(self, center_minute: int, half_width: int = DEFAULT_HALF_WIDTH) -> List[StationTraffic]:
        departures, arrivals = self.window_counts(center_minute, half_width)
        return [
            StationTraffic(
                location=location,
                departures=int(departures[idx]),
                arrivals=int(arrivals[idx]),
            )
            for idx, location in enumerate(self.locations)
        ]


def _minute_counts(
    buckets: Sequence[Bucket], row_by_id: Dict[str, int], *, use_start: bool
) -> np.ndarray:
    counts = np.zeros((len(row_by_id), MINUTES_PER_DAY), dtype=np.int64)
    for minute, bucket in enumerate(buckets):
        for event in bucket:
            location_id = event.start_location_id if use_start else event.end_location_id
            row = row_by_id.get(location_id)
            if row is None:
                continue
            counts[row, minute] += 1
    return counts


def _cumulate(counts: np.ndarray) -> np.ndarray:
    prefix = np.zeros((counts.shape[0], MINUTES_PER_DAY + 1), dtype=np.int64)
    prefix[:, 1:] = np.cumsum(counts, axis=1)
    return prefix


def _cumulate_totals(buckets: Sequence[Bucket]) -> np.ndarray:
    prefix = np.zeros(MINUTES_PER_DAY + 1, dtype=np.int64)
    prefix[1:] = np.cumsum([len(bucket) for bucket in buckets])
    return prefix


__all__ = ["MinutePrefixIndex"]

"""Minute-of-day bucketing of trip events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Sequence, Tuple

import pandas as pd

from .domain_types import TripEvent, canonical_id
from .errors import ParseError
from .minute_clock import MINUTES_PER_DAY, minute_of_day, parse_timestamp

logger = logging.getLogger(__name__)

Bucket = Tuple[TripEvent, ...]

TRIP_FIELDS: Sequence[str] = (
    "start_station_id",
    "end_station_id",
    "started_at",
    "ended_at",
)


@dataclass(frozen=True)
class MinuteBucketSet:
    """Read-only departure and arrival buckets, one per minute of the day."""

    departures: Tuple[Bucket, ...]
    arrivals: Tuple[Bucket, ...]

    def __post_init__(self) -> None:
        if len(self.departures) != MINUTES_PER_DAY or len(self.arrivals) != MINUTES_PER_DAY:
            raise ValueError(f"Bucket sets must hold exactly {MINUTES_PER_DAY} buckets per side")

    @classmethod
    def empty(cls) -> "MinuteBucketSet":
        blank: Tuple[Bucket, ...] = tuple(() for _ in range(MINUTES_PER_DAY))
        return cls(departures=blank, arrivals=blank)

    @property
    def event_count(self) -> int:
        return self.departure_total()

    def departure_total(self) -> int:
        return sum(len(bucket) for bucket in self.departures)

    def arrival_total(self) -> int:
        return sum(len(bucket) for bucket in self.arrivals)

    def histogram(self) -> pd.DataFrame:
        """Per-minute departure/arrival counts, one row per minute of day."""
        return pd.DataFrame(
            {
                "minute": range(MINUTES_PER_DAY),
                "departures": [len(bucket) for bucket in self.departures],
                "arrivals": [len(bucket) for bucket in self.arrivals],
            }
        )


@dataclass(frozen=True)
class IngestReport:
    ingested: int
    skipped: int

    @property
    def total(self) -> int:
        return self.ingested + self.skipped


class EventBucketer:
    """Bulk-loads trip records into per-minute departure and arrival buckets.

    Records are canonical mappings keyed by ``TRIP_FIELDS``; adapting source
    schemas happens before this point. Call :meth:`build` once loading is
    finished to obtain the immutable :class:`MinuteBucketSet`.
    """

    def __init__(self) -> None:
        self._departures: List[List[TripEvent]] = [[] for _ in range(MINUTES_PER_DAY)]
        self._arrivals: List[List[TripEvent]] = [[] for _ in range(MINUTES_PER_DAY)]
        self._ingested = 0
        self._sealed = False

    @property
    def ingested_count(self) -> int:
        return self._ingested

    def ingest(self, raw: Mapping[str, object]) -> TripEvent:
        """Parse one record and file it under its start and end minutes.

        Raises ``ParseError`` without touching any bucket when the record is
        malformed.
        """
        if self._sealed:
            raise RuntimeError("Bucket set already built; no further ingestion allowed")
        event = parse_trip(raw)
        self._departures[event.start_minute].append(event)
        self._arrivals[event.end_minute].append(event)
        self._ingested += 1
        return event

    def ingest_many(self, rows: Iterable[Mapping[str, object]]) -> IngestReport:
        """Ingest every parseable row, skipping malformed ones."""
        ingested = 0
        skipped = 0
        for row in rows:
            try:
                self.ingest(row)
            except ParseError as exc:
                skipped += 1
                logger.debug("Skipping malformed trip record (%s): %s", exc, row)
                continue
            ingested += 1

        if skipped:
            logger.warning("Skipped %d malformed trip records", skipped)
        logger.info("Ingested %d trip events into minute buckets", ingested)
        return IngestReport(ingested=ingested, skipped=skipped)

    def build(self) -> MinuteBucketSet:
        """Seal the bucketer and return the read-only bucket set."""
        self._sealed = True
        return MinuteBucketSet(
            departures=tuple(tuple(bucket) for bucket in self._departures),
            arrivals=tuple(tuple(bucket) for bucket in self._arrivals),
        )


def parse_trip(raw: Mapping[str, object]) -> TripEvent:
    """Build a :class:`TripEvent` from a canonical trip mapping."""
    start_id = _location_token(raw.get("start_station_id"), "start_station_id")
    end_id = _location_token(raw.get("end_station_id"), "end_station_id")
    started_at = parse_timestamp(raw.get("started_at"))
    ended_at = parse_timestamp(raw.get("ended_at"))
    return TripEvent(
        start_location_id=start_id,
        end_location_id=end_id,
        started_at=started_at,
        ended_at=ended_at,
        start_minute=minute_of_day(started_at),
        end_minute=minute_of_day(ended_at),
    )


def build_bucket_set(rows: Iterable[Mapping[str, object]]) -> Tuple[MinuteBucketSet, IngestReport]:
    bucketer = EventBucketer()
    report = bucketer.ingest_many(rows)
    return bucketer.build(), report


def _location_token(value: object, label: str) -> str:
    token = canonical_id(value)
    if token is None:
        raise ParseError(f"Trip record missing {label}")
    return token


__all__ = [
    "EventBucketer",
    "IngestReport",
    "MinuteBucketSet",
    "TRIP_FIELDS",
    "build_bucket_set",
    "parse_trip",
]

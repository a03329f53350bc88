"""Core dataclasses shared across the traffic engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional


def canonical_id(value: object) -> Optional[str]:
    """Normalize a station identifier to its string form, or None when blank."""
    if value is None:
        return None
    if isinstance(value, float):
        if value != value:
            return None
        if value.is_integer():
            value = int(value)
    token = str(value).strip()
    return token or None


@dataclass(frozen=True)
class TripEvent:
    """Single trip between two stations, immutable once ingested."""

    start_location_id: str
    end_location_id: str
    started_at: datetime
    ended_at: datetime
    start_minute: int
    end_minute: int


@dataclass(frozen=True)
class Location:
    """Station metadata in canonical form."""

    id: str
    longitude: float
    latitude: float
    name: Optional[str] = None


@dataclass(frozen=True)
class StationTraffic:
    """Snapshot of a station annotated with windowed traffic counts."""

    location: Location
    departures: int = 0
    arrivals: int = 0

    @property
    def id(self) -> str:
        return self.location.id

    @property
    def total_traffic(self) -> int:
        return self.departures + self.arrivals

    @property
    def departure_ratio(self) -> float:
        """Share of traffic that departs here; 0.5 when the station is idle."""
        total = self.total_traffic
        if total == 0:
            return 0.5
        return self.departures / total

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.location.id,
            "name": self.location.name,
            "longitude": self.location.longitude,
            "latitude": self.location.latitude,
            "departures": self.departures,
            "arrivals": self.arrivals,
            "total_traffic": self.total_traffic,
        }


__all__ = ["Location", "StationTraffic", "TripEvent", "canonical_id"]

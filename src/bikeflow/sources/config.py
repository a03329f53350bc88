from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import yaml

from bikeflow.core.minute_clock import DEFAULT_HALF_WIDTH, MINUTES_PER_DAY

logger = logging.getLogger(__name__)


"""
YAML configuration for station/trip field mapping and window settings.

Example file:

    half_width_minutes: 60
    use_prefix_index: true
    stations:
      id: [short_name, Number]
      longitude: [lon, Long]
      latitude: [lat, Lat]
      name: [name, NAME]
    trips:
      start_station_id: start_station_id
      end_station_id: end_station_id
      started_at: started_at
      ended_at: ended_at

Station fields list aliases in priority order; the first one present in a
record wins. Trip fields name the single source column for each canonical key.
"""


DEFAULT_STATION_FIELDS: Dict[str, List[str]] = {
    "id": ["short_name", "Number", "station_id", "id"],
    "longitude": ["lon", "Long", "longitude", "lng"],
    "latitude": ["lat", "Lat", "latitude"],
    "name": ["name", "NAME", "Name", "station_name"],
}

DEFAULT_TRIP_FIELDS: Dict[str, str] = {
    "start_station_id": "start_station_id",
    "end_station_id": "end_station_id",
    "started_at": "started_at",
    "ended_at": "ended_at",
}


@dataclass
class TrafficConfig:
    half_width_minutes: int = DEFAULT_HALF_WIDTH
    use_prefix_index: bool = False
    station_fields: Dict[str, List[str]] = field(
        default_factory=lambda: {key: list(values) for key, values in DEFAULT_STATION_FIELDS.items()}
    )
    trip_fields: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TRIP_FIELDS))

    def __post_init__(self) -> None:
        if isinstance(self.half_width_minutes, bool) or not isinstance(self.half_width_minutes, int):
            raise TypeError("half_width_minutes must be an integer")
        if self.half_width_minutes <= 0:
            raise ValueError("half_width_minutes must be positive")
        if 2 * self.half_width_minutes > MINUTES_PER_DAY:
            logger.warning(
                "half_width_minutes=%d spans the whole day; time filtering will have no effect",
                self.half_width_minutes,
            )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "TrafficConfig":
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Traffic config YAML not found at {config_path}")
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, Mapping):
            raise TypeError("Traffic config YAML must contain a mapping at the top level")
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "TrafficConfig":
        unknown = set(data.keys()) - {"half_width_minutes", "use_prefix_index", "stations", "trips"}
        if unknown:
            logger.warning("Ignoring unknown traffic config keys: %s", ", ".join(sorted(map(str, unknown))))
        half_width = data.get("half_width_minutes", DEFAULT_HALF_WIDTH)
        use_prefix = data.get("use_prefix_index", False)
        if not isinstance(use_prefix, bool):
            raise TypeError("use_prefix_index must be a boolean")
        return cls(
            half_width_minutes=half_width,
            use_prefix_index=use_prefix,
            station_fields=_parse_station_fields(data.get("stations")),
            trip_fields=_parse_trip_fields(data.get("trips")),
        )

    def to_yaml(self, path: str | Path) -> None:
        output: Dict[str, object] = {
            "half_width_minutes": int(self.half_width_minutes),
            "use_prefix_index": bool(self.use_prefix_index),
            "stations": {key: list(values) for key, values in self.station_fields.items()},
            "trips": dict(self.trip_fields),
        }
        dest = Path(path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        with dest.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(output, handle, sort_keys=True)


def _parse_station_fields(section: object) -> Dict[str, List[str]]:
    fields = {key: list(values) for key, values in DEFAULT_STATION_FIELDS.items()}
    if section is None:
        return fields
    if not isinstance(section, Mapping):
        raise TypeError("'stations' must be a mapping of canonical field names to alias lists")
    for key, aliases in section.items():
        if key not in DEFAULT_STATION_FIELDS:
            raise ValueError(f"Unknown station field {key!r}")
        if isinstance(aliases, str):
            aliases = [aliases]
        if not isinstance(aliases, Sequence) or not aliases:
            raise ValueError(f"Station field {key!r} needs at least one source alias")
        fields[key] = [str(alias) for alias in aliases]
    return fields


def _parse_trip_fields(section: object) -> Dict[str, str]:
    fields = dict(DEFAULT_TRIP_FIELDS)
    if section is None:
        return fields
    if not isinstance(section, Mapping):
        raise TypeError("'trips' must be a mapping of canonical field names to source columns")
    for key, source in section.items():
        if key not in DEFAULT_TRIP_FIELDS:
            raise ValueError(f"Unknown trip field {key!r}")
        if not isinstance(source, str) or not source.strip():
            raise ValueError(f"Trip field {key!r} must name a source column")
        fields[key] = source.strip()
    return fields


__all__ = ["DEFAULT_STATION_FIELDS", "DEFAULT_TRIP_FIELDS", "TrafficConfig"]

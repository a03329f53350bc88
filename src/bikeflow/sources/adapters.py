"""Map source-specific station and trip schemas onto canonical records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from bikeflow.core.domain_types import Location, canonical_id

from .config import DEFAULT_STATION_FIELDS, DEFAULT_TRIP_FIELDS, TrafficConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationAdapter:
    """Resolves station ids and coordinates from whichever alias a feed uses."""

    id_fields: Sequence[str] = tuple(DEFAULT_STATION_FIELDS["id"])
    longitude_fields: Sequence[str] = tuple(DEFAULT_STATION_FIELDS["longitude"])
    latitude_fields: Sequence[str] = tuple(DEFAULT_STATION_FIELDS["latitude"])
    name_fields: Sequence[str] = tuple(DEFAULT_STATION_FIELDS["name"])

    @classmethod
    def from_config(cls, config: TrafficConfig) -> "StationAdapter":
        fields = config.station_fields
        return cls(
            id_fields=tuple(fields["id"]),
            longitude_fields=tuple(fields["longitude"]),
            latitude_fields=tuple(fields["latitude"]),
            name_fields=tuple(fields["name"]),
        )

    def normalize(self, row: Mapping[str, object]) -> Location:
        station_id = canonical_id(_first_present(row, self.id_fields))
        if station_id is None:
            raise ValueError(f"Station record has none of the id fields {list(self.id_fields)}")
        longitude = _coerce_coordinate(_first_present(row, self.longitude_fields), "longitude", station_id)
        latitude = _coerce_coordinate(_first_present(row, self.latitude_fields), "latitude", station_id)
        name = _first_present(row, self.name_fields)
        return Location(
            id=station_id,
            longitude=longitude,
            latitude=latitude,
            name=str(name).strip() if name is not None else None,
        )

    def normalize_all(self, rows: Iterable[Mapping[str, object]]) -> List[Location]:
        """Normalize every station row, dropping repeated ids after the first."""
        locations: List[Location] = []
        seen = set()
        duplicates = 0
        for row in rows:
            location = self.normalize(row)
            if location.id in seen:
                duplicates += 1
                continue
            seen.add(location.id)
            locations.append(location)
        if duplicates:
            logger.warning("Dropped %d station records with repeated ids", duplicates)
        logger.info("Normalized %d stations", len(locations))
        return locations


@dataclass(frozen=True)
class TripAdapter:
    """Renames source trip columns to the canonical trip keys."""

    field_map: Optional[Mapping[str, str]] = None  # canonical key -> source column

    def __post_init__(self) -> None:
        if self.field_map is None:
            object.__setattr__(self, "field_map", dict(DEFAULT_TRIP_FIELDS))
        missing = set(DEFAULT_TRIP_FIELDS) - set(self.field_map)
        if missing:
            raise ValueError(f"Trip field map missing keys: {', '.join(sorted(missing))}")

    @classmethod
    def from_config(cls, config: TrafficConfig) -> "TripAdapter":
        return cls(field_map=dict(config.trip_fields))

    def normalize(self, row: Mapping[str, object]) -> Dict[str, Optional[object]]:
        # Missing columns become None so the bucketer reports them as malformed.
        return {canonical: row.get(source) for canonical, source in self.field_map.items()}

    def iter_normalized(self, rows: Iterable[Mapping[str, object]]) -> Iterator[Dict[str, Optional[object]]]:
        for row in rows:
            yield self.normalize(row)


def _first_present(row: Mapping[str, object], aliases: Sequence[str]) -> Optional[object]:
    for alias in aliases:
        value = row.get(alias)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _coerce_coordinate(value: object, label: str, station_id: str) -> float:
    if value is None:
        raise ValueError(f"Station {station_id!r} missing {label}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Station {station_id!r} has invalid {label} {value!r}") from exc


__all__ = ["StationAdapter", "TripAdapter"]

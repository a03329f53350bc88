"""File readers for station feeds and trip exports."""

from __future__ import annotations

import csv
import gzip
import json
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Mapping

logger = logging.getLogger(__name__)


def load_station_rows(path: str | Path) -> List[Mapping[str, object]]:
    """
    Read raw station records from CSV or JSON.

    JSON files may hold a plain list of records or the GBFS-style payload
    ``{"data": {"stations": [...]}}`` published by bike-share systems.
    """
    station_path = Path(path)
    if not station_path.exists():
        raise FileNotFoundError(f"Station file not found at {station_path}")

    if station_path.suffix.lower() == ".json":
        with station_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        rows = _extract_station_list(payload)
    else:
        with station_path.open("r", encoding="utf-8-sig", newline="") as handle:
            reader = csv.DictReader(handle)
            if reader.fieldnames is None:
                raise ValueError(f"Station CSV {station_path} missing header row")
            rows = list(reader)

    for row in rows:
        if not isinstance(row, Mapping):
            raise TypeError(f"Station entries in {station_path} must be mappings")
    logger.info("Read %d station records from %s", len(rows), station_path)
    return rows


def iter_trip_rows(path: str | Path) -> Iterator[Dict[str, str]]:
    """Stream trip rows from a CSV file, optionally gzip-compressed."""
    trip_path = Path(path)
    if not trip_path.exists():
        raise FileNotFoundError(f"Trip file not found at {trip_path}")

    opener = gzip.open if trip_path.suffix == ".gz" else open
    with opener(trip_path, "rt", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if reader.fieldnames is None:
            raise ValueError(f"Trip CSV {trip_path} missing header row")
        for row in reader:
            yield row


def count_trip_rows(path: str | Path) -> int:
    """Number of data rows in a trip CSV; used to size progress bars."""
    return sum(1 for _ in iter_trip_rows(path))


def _extract_station_list(payload: object) -> List[Mapping[str, object]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        data = payload.get("data")
        if isinstance(data, Mapping) and isinstance(data.get("stations"), list):
            return data["stations"]
        if isinstance(payload.get("stations"), list):
            return payload["stations"]
    raise ValueError("Station JSON must be a list or contain a 'data.stations' list")


__all__ = ["count_trip_rows", "iter_trip_rows", "load_station_rows"]

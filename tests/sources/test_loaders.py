from __future__ import annotations

import gzip
import json

import pytest

from bikeflow.sources.adapters import StationAdapter
from bikeflow.sources.loaders import count_trip_rows, iter_trip_rows, load_station_rows

TRIP_CSV = (
    "start_station_id,end_station_id,started_at,ended_at\n"
    "A,B,2024-05-01 08:00:00,2024-05-01 08:20:00\n"
    "B,A,2024-05-01 23:58:00,2024-05-02 00:02:00\n"
)


def test_load_station_rows_from_gbfs_json(tmp_path):
    path = tmp_path / "stations.json"
    payload = {"data": {"stations": [{"short_name": "A", "lon": 1, "lat": 2, "name": "Alpha"}]}}
    path.write_text(json.dumps(payload), encoding="utf-8")

    rows = load_station_rows(path)
    assert rows == [{"short_name": "A", "lon": 1, "lat": 2, "name": "Alpha"}]


def test_load_station_rows_from_list_json_and_csv(tmp_path):
    json_path = tmp_path / "stations.json"
    json_path.write_text(json.dumps([{"Number": 1}]), encoding="utf-8")
    csv_path = tmp_path / "stations.csv"
    csv_path.write_text("Number,NAME,Lat,Long\n1,Alpha,42.3,-71.1\n", encoding="utf-8")

    assert load_station_rows(json_path) == [{"Number": 1}]
    assert load_station_rows(csv_path) == [{"Number": "1", "NAME": "Alpha", "Lat": "42.3", "Long": "-71.1"}]


def test_load_station_rows_rejects_unknown_json_shape(tmp_path):
    path = tmp_path / "stations.json"
    path.write_text(json.dumps({"stations": "nope"}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_station_rows(path)


def test_missing_files_raise(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_station_rows(tmp_path / "absent.json")
    with pytest.raises(FileNotFoundError):
        list(iter_trip_rows(tmp_path / "absent.csv"))


def test_iter_trip_rows_plain_and_gzip(tmp_path):
    plain = tmp_path / "trips.csv"
    plain.write_text(TRIP_CSV, encoding="utf-8")
    packed = tmp_path / "trips.csv.gz"
    with gzip.open(packed, "wt", encoding="utf-8") as handle:
        handle.write(TRIP_CSV)

    rows = list(iter_trip_rows(plain))
    assert rows == list(iter_trip_rows(packed))
    assert rows[1]["started_at"] == "2024-05-01 23:58:00"
    assert count_trip_rows(packed) == 2


def test_csv_readers_strip_byte_order_mark(tmp_path):
    stations = tmp_path / "stations.csv"
    stations.write_bytes(b"\xef\xbb\xbfNumber,NAME,Lat,Long\n1,Alpha,42.3,-71.1\n")
    trips = tmp_path / "trips.csv"
    trips.write_bytes(b"\xef\xbb\xbf" + TRIP_CSV.encode("utf-8"))

    station_rows = load_station_rows(stations)
    assert station_rows[0]["Number"] == "1"
    assert StationAdapter().normalize(station_rows[0]).id == "1"
    assert next(iter_trip_rows(trips))["start_station_id"] == "A"

from __future__ import annotations

import numpy as np
import pytest

from bikeflow.core.bucketer import EventBucketer, build_bucket_set
from bikeflow.core.domain_types import Location
from bikeflow.core.errors import InvalidArgument
from bikeflow.core.prefix_index import MinutePrefixIndex
from bikeflow.service.traffic_service import TrafficQueryService, query
from bikeflow.sources.config import TrafficConfig

STATIONS = [Location(id="1", longitude=-71.09, latitude=42.36, name="A"),
            Location(id="2", longitude=-71.10, latitude=42.35, name="B")]

TRIPS = [
    {"start_station_id": 1, "end_station_id": 2,
     "started_at": "2024-05-01 00:05:00", "ended_at": "2024-05-01 00:10:00"},
    {"start_station_id": 2, "end_station_id": 1,
     "started_at": "2024-05-01 23:58:00", "ended_at": "2024-05-02 00:02:00"},
]


def _counts(stations):
    return {station.id: (station.departures, station.arrivals, station.total_traffic) for station in stations}


@pytest.fixture
def bucket_set():
    buckets, report = build_bucket_set(TRIPS)
    assert report.ingested == 2
    return buckets


def test_unfiltered_query_counts_every_trip(bucket_set):
    assert _counts(query(STATIONS, bucket_set, -1)) == {"1": (1, 1, 2), "2": (1, 1, 2)}


def test_midnight_window_includes_wrapped_trips(bucket_set):
    assert _counts(query(STATIONS, bucket_set, 0, 60)) == {"1": (1, 1, 2), "2": (1, 1, 2)}


def test_noon_window_is_empty(bucket_set):
    assert _counts(query(STATIONS, bucket_set, 720, 60)) == {"1": (0, 0, 0), "2": (0, 0, 0)}


def test_query_rejects_invalid_filter(bucket_set):
    with pytest.raises(InvalidArgument):
        query(STATIONS, bucket_set, 1440)
    with pytest.raises(InvalidArgument):
        query(STATIONS, bucket_set, -2)


def test_repeated_queries_are_idempotent(bucket_set):
    first = query(STATIONS, bucket_set, 0)
    second = query(STATIONS, bucket_set, 0)
    assert first == second
    assert first is not second


@pytest.mark.parametrize("use_prefix_index", [False, True])
def test_service_from_records(use_prefix_index):
    station_rows = [
        {"Number": 1, "Long": -71.09, "Lat": 42.36, "NAME": "A"},
        {"Number": 2, "Long": -71.10, "Lat": 42.35, "NAME": "B"},
        {"Number": 3, "Long": -71.11, "Lat": 42.34, "NAME": "Idle"},
    ]
    trip_rows = TRIPS + [
        {"start_station_id": 99, "end_station_id": 1,
         "started_at": "2024-05-01 00:20:00", "ended_at": "2024-05-01 00:30:00"},
        {"start_station_id": 1, "end_station_id": 2,
         "started_at": "broken", "ended_at": "2024-05-01 00:30:00"},
    ]
    service = TrafficQueryService.from_records(
        station_rows,
        trip_rows,
        config=TrafficConfig(use_prefix_index=use_prefix_index),
    )

    assert service.ingest_report.ingested == 3
    assert service.ingest_report.skipped == 1

    snapshot = service.query(0)
    assert _counts(snapshot.stations) == {"1": (1, 2, 3), "2": (1, 1, 2), "3": (0, 0, 0)}
    assert snapshot.orphan_departures == 1
    assert snapshot.orphan_arrivals == 0
    assert snapshot.is_filtered
    assert snapshot.total_departures == 2
    assert snapshot.total_arrivals == 3

    noon = service.query(720)
    assert all(station.total_traffic == 0 for station in noon.stations)
    assert noon.orphan_departures == 0


def test_snapshot_dataframe(bucket_set):
    snapshot = TrafficQueryService(STATIONS, bucket_set).query(-1)
    frame = snapshot.to_dataframe()

    assert list(frame["id"]) == ["1", "2"]
    assert list(frame["total_traffic"]) == [2, 2]
    assert not snapshot.is_filtered
    assert snapshot.by_id()["2"].arrivals == 1


def test_latest_request_wins(bucket_set):
    service = TrafficQueryService(STATIONS, bucket_set)
    stale = service.request(720)
    latest = service.request(0)

    assert service.resolve(stale) is None
    snapshot = service.resolve(latest)
    assert snapshot is not None
    assert snapshot.center_minute == 0
    assert _counts(snapshot.stations)["1"] == (1, 1, 2)
    with pytest.raises(KeyError):
        service.resolve(latest)


def test_request_validates_before_issuing_ticket(bucket_set):
    service = TrafficQueryService(STATIONS, bucket_set)
    with pytest.raises(InvalidArgument):
        service.request(5000)
    ticket = service.request(10)
    assert service.resolve(ticket) is not None


def test_service_does_not_alter_bucket_set(bucket_set):
    service = TrafficQueryService(STATIONS, bucket_set)
    before = bucket_set.histogram()
    for minute in (-1, 0, 30, 720, 1439):
        service.query(minute)
    assert service.bucket_set is bucket_set
    assert before.equals(bucket_set.histogram())


def test_prefix_index_must_match_locations(bucket_set):
    index = MinutePrefixIndex.build(STATIONS[:1], bucket_set)
    with pytest.raises(ValueError):
        TrafficQueryService(STATIONS, bucket_set, prefix_index=index)


def test_empty_trip_set_reports_zero():
    service = TrafficQueryService(STATIONS, EventBucketer().build())
    snapshot = service.query(-1)
    assert all(station.total_traffic == 0 for station in snapshot.stations)
    assert all(station.departure_ratio == pytest.approx(0.5) for station in snapshot.stations)


def test_query_accepts_numpy_filter_values(bucket_set):
    assert _counts(query(STATIONS, bucket_set, np.int64(0), np.int64(60))) == {"1": (1, 1, 2), "2": (1, 1, 2)}
    snapshot = TrafficQueryService(STATIONS, bucket_set).query(np.int64(720))
    assert snapshot.center_minute == 720
    assert type(snapshot.center_minute) is int


def test_superseded_requests_are_not_retained(bucket_set):
    service = TrafficQueryService(STATIONS, bucket_set)
    tickets = [service.request(minute % 1440) for minute in range(1000)]

    assert service.pending_requests == 1
    assert service.resolve(tickets[-1]) is not None
    assert service.pending_requests == 0
    assert service.resolve(tickets[0]) is None
    assert service.resolve(tickets[500]) is None
    with pytest.raises(KeyError):
        service.resolve(tickets[-1] + 1)

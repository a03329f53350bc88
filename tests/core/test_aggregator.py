from __future__ import annotations

import random
from datetime import datetime

import pytest

from bikeflow.core.aggregator import aggregate, count_orphans, rollup, departure_key
from bikeflow.core.domain_types import Location, StationTraffic, TripEvent
from bikeflow.core.errors import InvalidArgument


def _loc(loc_id: str) -> Location:
    return Location(id=loc_id, longitude=-71.09, latitude=42.36, name=f"Station {loc_id}")


def _trip(start: str, end: str) -> TripEvent:
    stamp = datetime(2024, 5, 1, 12, 0)
    return TripEvent(
        start_location_id=start,
        end_location_id=end,
        started_at=stamp,
        ended_at=stamp,
        start_minute=720,
        end_minute=720,
    )


def test_counts_departures_and_arrivals_per_station():
    locations = [_loc("A"), _loc("B"), _loc("C")]
    trips = [_trip("A", "B"), _trip("A", "C"), _trip("B", "A")]

    result = {station.id: station for station in aggregate(locations, trips, trips)}

    assert (result["A"].departures, result["A"].arrivals, result["A"].total_traffic) == (2, 1, 3)
    assert (result["B"].departures, result["B"].arrivals, result["B"].total_traffic) == (1, 1, 2)
    assert (result["C"].departures, result["C"].arrivals, result["C"].total_traffic) == (0, 1, 1)


def test_left_join_keeps_idle_stations_and_drops_orphans():
    locations = [_loc("A"), _loc("IDLE")]
    trips = [_trip("A", "GHOST"), _trip("GHOST", "A")]

    result = aggregate(locations, trips, trips)

    assert [station.id for station in result] == ["A", "IDLE"]
    idle = result[1]
    assert idle.departures == idle.arrivals == idle.total_traffic == 0
    assert result[0].departures == 1
    assert result[0].arrivals == 1
    assert count_orphans(locations, trips, trips) == (1, 1)


def test_empty_selection_yields_zero_counts():
    result = aggregate([_loc("A"), _loc("B")], [], [])
    assert all(station.total_traffic == 0 for station in result)
    assert all(station.departure_ratio == pytest.approx(0.5) for station in result)


def test_result_is_independent_of_event_order():
    locations = [_loc(str(i)) for i in range(5)]
    rng = random.Random(7)
    trips = [_trip(str(rng.randrange(6)), str(rng.randrange(6))) for _ in range(200)]
    shuffled = list(trips)
    rng.shuffle(shuffled)

    assert aggregate(locations, trips, trips) == aggregate(locations, shuffled, shuffled)


def test_returns_fresh_snapshots_and_leaves_locations_untouched():
    locations = [_loc("A")]
    first = aggregate(locations, [_trip("A", "A")], [])
    second = aggregate(locations, [], [])

    assert first[0].departures == 1
    assert second[0].departures == 0
    assert first[0] is not second[0]
    assert locations == [_loc("A")]


def test_duplicate_station_ids_rejected():
    with pytest.raises(InvalidArgument):
        aggregate([_loc("A"), _loc("A")], [], [])


def test_rollup_counts_by_key():
    trips = [_trip("A", "B"), _trip("A", "B"), _trip("C", "B")]
    assert rollup(trips, departure_key) == {"A": 2, "C": 1}


def test_departure_ratio_and_total():
    station = StationTraffic(location=_loc("A"), departures=3, arrivals=1)
    assert station.total_traffic == 4
    assert station.departure_ratio == pytest.approx(0.75)
    assert station.to_dict()["total_traffic"] == 4

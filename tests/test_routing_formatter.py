import csv
import io

import pytest

from fieldroute.services.outputs.routing_formatter import (
    format_clock,
    format_distance,
    format_duration,
    route_to_csv,
    route_to_json,
)
from fieldroute.services.routing.models import (
    QUALITY_DEGRADED,
    OptimizedRoute,
    RouteSegment,
    Stop,
    UnresolvedLeg,
)


@pytest.mark.parametrize(
    "meters, expected",
    [
        (0, "0.0 mi"),
        (1609.344, "1.0 mi"),
        (8047, "5.0 mi"),
        (12500, "7.8 mi"),
    ],
)
def test_format_distance(meters, expected):
    assert format_distance(meters) == expected


@pytest.mark.parametrize(
    "minutes, expected",
    [
        (0, "0 mins"),
        (12.4, "12 mins"),
        (45, "45 mins"),
        (59.6, "1h"),
        (119.6, "2h"),
        (89.5, "1h 30m"),
        (60, "1h"),
        (90, "1h 30m"),
        (120, "2h"),
        (125.5, "2h 6m"),
    ],
)
def test_format_duration(minutes, expected):
    assert format_duration(minutes) == expected


def test_format_clock():
    assert format_clock(300) == "5:00"
    assert format_clock(5 * 60 + 72.5) == "6:13"
    assert format_clock(13 * 60 + 5) == "13:05"


def _degraded_route() -> OptimizedRoute:
    return OptimizedRoute(
        stops=[Stop(id="J1", address="105 Main St"), Stop(id="J2", address="500 Elm St")],
        segments=[
            RouteSegment(
                from_address="100 Main St",
                to_address="105 Main St",
                from_stop_id=None,
                to_stop_id="J1",
                duration_minutes=4.0,
                distance_meters=800.0,
                duration_text="4 mins",
                distance_text="0.5 mi",
            )
        ],
        total_duration_minutes=4.0,
        total_distance_meters=800.0,
        total_duration_text="4 mins",
        total_distance_text="0.5 mi",
        quality=QUALITY_DEGRADED,
        unresolved_legs=[
            UnresolvedLeg(from_address="105 Main St", to_address="500 Elm St", from_stop_id="J1", to_stop_id="J2")
        ],
    )


def test_route_to_json_numbers_stops_from_one():
    payload = route_to_json(_degraded_route())

    assert [stop["order"] for stop in payload["stops"]] == [1, 2]
    assert payload["quality"] == QUALITY_DEGRADED
    assert payload["segments"][0]["to_stop_id"] == "J1"
    assert payload["unresolved_legs"][0]["to_stop_id"] == "J2"


def test_route_to_csv_marks_unresolved_legs():
    rows = list(csv.DictReader(io.StringIO(route_to_csv(_degraded_route()))))

    assert [row["stop_id"] for row in rows] == ["J1", "J2"]
    assert rows[0]["resolved"] == "True"
    assert rows[0]["drive_minutes"] == "4.0"
    assert rows[1]["resolved"] == "False"
    assert rows[1]["drive_minutes"] == ""

"""
Tests for nearby-segment bounds and explore payload shaping.
"""
import pytest

from services.segment_explore import format_explore_segments, to_bounds


def _parse(bounds):
    return [float(v) for v in bounds.split(",")]


def test_bounds_at_equator_are_square_in_degrees():
    south, west, north, east = _parse(to_bounds(0.0, 0.0, 11.1))
    assert south == pytest.approx(-0.1)
    assert north == pytest.approx(0.1)
    assert west == pytest.approx(-0.1)
    assert east == pytest.approx(0.1)


def test_longitude_span_widens_away_from_equator():
    south, west, north, east = _parse(to_bounds(60.0, 10.0, 11.1))
    assert north - south == pytest.approx(0.2)
    # cos(60) = 0.5
    assert east - west == pytest.approx(0.4)


def test_bounds_at_pole_stay_finite():
    values = _parse(to_bounds(90.0, 0.0, 5))
    assert all(abs(v) < float("inf") for v in values)


def test_format_explore_segments():
    payload = {
        "segments": [
            {
                "id": 1,
                "name": "Seawall Sprint",
                "climb_category": 0,
                "avg_grade": 0.4,
                "elevation_high": 6.0,
                "elevation_low": 2.0,
                "start_latlng": [49.3, -123.1],
                "end_latlng": [49.31, -123.12],
                "points": "encoded",
                "distance": 612.3,
            },
            {"id": 2, "name": "Grouse Grind", "average_grade": 30.1, "city": "North Vancouver", "state": "BC"},
        ]
    }
    segments = format_explore_segments(payload)

    assert [s["id"] for s in segments] == [1, 2]
    first = segments[0]
    assert first["distance_m"] == 612.3
    assert first["avg_grade"] == 0.4
    assert first["climb_category"] == 0
    assert first["points"] == "encoded"
    assert first["location"] == ""
    assert segments[1]["avg_grade"] == 30.1
    assert segments[1]["location"] == "North Vancouver, BC"


@pytest.mark.parametrize("payload", [None, {}, {"segments": None}])
def test_format_empty_payload(payload):
    assert format_explore_segments(payload) == []

from datetime import datetime, timedelta, timezone

import pytest
import requests

from app.models.inspection import BarcodeType, Location, RoutePoint
from app.services import geo
from app.services.barcode import classify_barcode, find_vin, is_valid_vin

T0 = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def test_route_distance_one_degree_of_latitude():
    route = [
        RoutePoint(latitude=0.0, longitude=0.0, timestamp=T0),
        RoutePoint(latitude=1.0, longitude=0.0, timestamp=T0),
    ]
    assert geo.route_distance_km(route) == pytest.approx(111.195, rel=1e-3)


def test_route_distance_needs_two_points():
    assert geo.route_distance_km([]) == 0.0
    assert geo.route_distance_km([RoutePoint(latitude=1, longitude=1, timestamp=T0)]) == 0.0


def test_points_are_ignored_outside_an_active_road_test():
    location = Location()
    assert geo.add_route_point(location, 1.0, 1.0, T0) is location

    started = geo.start_road_test(location, 0.0, 0.0, at=T0)
    stopped = geo.stop_road_test(started, 0.0, 1.0, at=T0 + timedelta(minutes=30))
    assert geo.add_route_point(stopped, 5.0, 5.0) is stopped
    assert stopped.road_test.duration == 30.0
    assert stopped.end.longitude == 1.0


def test_stop_without_start_is_a_no_op():
    location = Location()
    assert geo.stop_road_test(location, 1.0, 1.0) is location


def test_reverse_geocode(monkeypatch):
    class Response:
        def raise_for_status(self):
            pass

        def json(self):
            return {"display_name": "1 George St, Sydney"}

    monkeypatch.setattr(geo.requests, "get", lambda *args, **kwargs: Response())
    assert geo.reverse_geocode(-33.86, 151.2) == "1 George St, Sydney"


def test_reverse_geocode_failure_returns_none(monkeypatch):
    def fail(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(geo.requests, "get", fail)
    assert geo.reverse_geocode(-33.86, 151.2) is None


@pytest.mark.parametrize("code, expected", [
    ("JTEBU5JR2A5012345", BarcodeType.VIN),
    ("jtebu5jr2a5012345", BarcodeType.VIN),
    ("ABC1234567", BarcodeType.COMPLIANCE),
    ("COMP42", BarcodeType.COMPLIANCE),
    ("PLATE7", BarcodeType.COMPLIANCE),
    ("hello", BarcodeType.OTHER),
    ("", BarcodeType.OTHER),
])
def test_classify_barcode(code, expected):
    assert classify_barcode(code) == expected


def test_vin_never_contains_i_o_q():
    assert not is_valid_vin("JTEBU5JR2A501234O")
    assert not is_valid_vin("JTEBU5JR2A50123")


def test_find_vin_in_ocr_text():
    assert find_vin("VIN: jtebu5jr2a5012345 MADE IN JAPAN") == "JTEBU5JR2A5012345"
    assert find_vin("no identifiers here") is None

"""Tests for the station directory."""

import httpx

from src.rail_alerts.models import Station
from src.rail_alerts.stations import MAX_FILTER_RESULTS, StationDirectory
from tests.helpers import run

STATIONS_JSON = [
    {"stationName": "London Waterloo", "crsCode": "WAT"},
    {"stationName": "Bristol Temple Meads", "crsCode": "BRI"},
    {"stationName": "Manchester Piccadilly", "crsCode": "MAN"},
]


def make_directory(handler):
    return StationDirectory(url="https://example.com/stations.json", transport=httpx.MockTransport(handler))


def test_load_populates_directory():
    directory = make_directory(lambda request: httpx.Response(200, json=STATIONS_JSON))

    count = run(directory.load())

    assert count == 3
    assert directory.stations[0] == Station(name="London Waterloo", crs="WAT")
    assert directory.get("bri").name == "Bristol Temple Meads"


def test_failed_load_keeps_previous_list():
    directory = StationDirectory(
        stations=[Station(name="Ely", crs="ELY")],
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )

    assert run(directory.load()) == 1
    assert directory.get("ELY") is not None


def test_malformed_payload_is_ignored():
    directory = make_directory(lambda request: httpx.Response(200, json=[{"name": "Nope"}]))

    assert run(directory.load()) == 0
    assert len(directory) == 0


class TestFilter:
    def setup_method(self):
        self.directory = StationDirectory(stations=[
            Station(name=s["stationName"], crs=s["crsCode"]) for s in STATIONS_JSON
        ])

    def test_matches_name_case_insensitively(self):
        assert [s.crs for s in self.directory.filter("LONDON")] == ["WAT"]

    def test_matches_crs_code(self):
        assert [s.crs for s in self.directory.filter("bri")] == ["BRI"]

    def test_substring_in_middle_of_name(self):
        assert [s.crs for s in self.directory.filter("temple")] == ["BRI"]

    def test_no_match(self):
        assert self.directory.filter("zzz") == []

    def test_result_limit(self):
        many = StationDirectory(stations=[
            Station(name=f"Halt {i}", crs=f"H{i:02d}") for i in range(150)
        ])
        assert len(many.filter("halt")) == MAX_FILTER_RESULTS
        assert len(many.filter("halt", limit=5)) == 5


def test_station_slug():
    assert Station(name="London Waterloo", crs="WAT").slug == "london-waterloo"

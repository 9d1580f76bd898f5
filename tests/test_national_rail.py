"""Tests for the National Rail incident feed client (no network)."""

import httpx
import pytest

from src.rail_alerts.exceptions import IncidentSourceError
from src.rail_alerts.models import Incident, Station
from src.rail_alerts.national_rail import (
    NationalRailClient,
    filter_for_station,
    parse_nsi_incidents,
)
from src.rail_alerts.stations import StationDirectory
from tests.helpers import run

API_URL = "https://api.nationalrail.co.uk/incidents"

NSI_XML = """
<NSI>
  <TOC>
    <TocName>Test Operator</TocName>
    <Status>Service Disruption</Status>
    <StatusDescription>Delays expected at Test Station</StatusDescription>
    <ServiceGroup>
      <CustomURL>http://example.com/incident-test-station</CustomURL>
    </ServiceGroup>
  </TOC>
  <TOC>
    <TocName>Southern</TocName>
    <Status>Custom</Status>
    <StatusDescription>Engineering works this weekend</StatusDescription>
    <ServiceGroup>
      <CustomURL>http://example.com/london-victoria-closure</CustomURL>
    </ServiceGroup>
    <ServiceGroup>
      <GroupName>No link here</GroupName>
    </ServiceGroup>
  </TOC>
  <TOC>
    <TocName>Happy Trains</TocName>
    <Status>Good service</Status>
    <StatusDescription>Test Station is fine</StatusDescription>
    <ServiceGroup>
      <CustomURL>http://example.com/test-station-happy</CustomURL>
    </ServiceGroup>
  </TOC>
</NSI>
"""

STATIONS = StationDirectory(stations=[
    Station(name="Test Station", crs="TST"),
    Station(name="London Victoria", crs="VIC"),
    Station(name="Ely", crs="ELY"),
])


def make_client(handler, stations=STATIONS):
    return NationalRailClient(
        api_url=API_URL,
        stations=stations,
        api_key="test-api-key",
        transport=httpx.MockTransport(handler),
    )


class TestParsing:
    def test_parses_disrupted_service_groups(self):
        incidents = parse_nsi_incidents(NSI_XML)

        assert incidents == [
            Incident(
                title="Test Operator: Service Disruption",
                summary="Delays expected at Test Station",
                url="http://example.com/incident-test-station",
            ),
            Incident(
                title="Southern",
                summary="Engineering works this weekend",
                url="http://example.com/london-victoria-closure",
            ),
        ]

    def test_namespaced_document(self):
        xml = (
            '<ns:NSI xmlns:ns="http://nationalrail.co.uk/nsi">'
            "<ns:TOC><ns:TocName>GWR</ns:TocName><ns:Status>Minor delays</ns:Status>"
            "<ns:StatusDescription>Flooding</ns:StatusDescription>"
            "<ns:ServiceGroup><ns:CustomURL>http://x/reading</ns:CustomURL></ns:ServiceGroup>"
            "</ns:TOC></ns:NSI>"
        )
        assert parse_nsi_incidents(xml)[0].title == "GWR: Minor delays"

    def test_empty_feed(self):
        assert parse_nsi_incidents("<NSI></NSI>") == []

    def test_invalid_xml_raises(self):
        with pytest.raises(IncidentSourceError):
            parse_nsi_incidents("<NSI><TOC>")


def test_filter_matches_url_slug_or_summary():
    incidents = [
        Incident(title="a", summary="nothing", url="http://x/london-victoria-works"),
        Incident(title="b", summary="Trains at London Victoria are delayed", url="http://x/1"),
        Incident(title="c", summary="elsewhere", url="http://x/2"),
    ]
    station = Station(name="London Victoria", crs="VIC")

    assert [i.title for i in filter_for_station(incidents, station)] == ["a", "b"]


def test_fetch_sends_api_key_and_filters_by_station():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text=NSI_XML)

    incidents = run(make_client(handler).fetch_incidents("TST"))

    assert seen[0].headers["x-apikey"] == "test-api-key"
    assert str(seen[0].url) == API_URL
    assert [i.url for i in incidents] == ["http://example.com/incident-test-station"]


def test_good_service_station_has_no_incidents():
    incidents = run(make_client(lambda request: httpx.Response(200, text=NSI_XML)).fetch_incidents("ELY"))
    assert incidents == []


def test_unknown_station_skips_request():
    def handler(request):
        raise AssertionError("feed should not be requested")

    assert run(make_client(handler).fetch_incidents("XYZ")) == []


def test_network_error_returns_empty_list():
    def handler(request):
        raise httpx.ConnectError("API Error", request=request)

    assert run(make_client(handler).fetch_incidents("TST")) == []


def test_http_error_status_returns_empty_list():
    assert run(make_client(lambda request: httpx.Response(503, text="down")).fetch_incidents("TST")) == []


def test_malformed_feed_returns_empty_list():
    assert run(make_client(lambda request: httpx.Response(200, text="<html>")).fetch_incidents("TST")) == []

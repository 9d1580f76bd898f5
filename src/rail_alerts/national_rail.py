"""
National Rail incident feed client.

Fetches the National Service Indicator (NSI) XML feed and turns the
disrupted operator entries into incidents relevant to one station.
Any fetch or parse failure yields an empty list.
"""

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx

from src.rail_alerts.exceptions import IncidentSourceError
from src.rail_alerts.models import Incident, Station
from src.rail_alerts.stations import StationDirectory
from src.utils.logger import get_logger

logger = get_logger()

GOOD_SERVICE = "Good service"
CUSTOM_STATUS = "Custom"


def _local_name(tag: str) -> str:
    """Strip any XML namespace from a tag."""
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _child_text(element: ET.Element, name: str) -> str:
    for child in _children(element, name):
        return (child.text or "").strip()
    return ""


def parse_nsi_incidents(xml_text: str) -> List[Incident]:
    """
    Parse every disrupted service group in an NSI document.

    Args:
        xml_text: Raw NSI XML

    Returns:
        All incidents in the feed, unfiltered

    Raises:
        IncidentSourceError: If the document is not valid XML
    """
    try:
        root = ET.fromstring(xml_text.strip())
    except ET.ParseError as e:
        raise IncidentSourceError(f"Invalid NSI XML: {e}") from e

    incidents: List[Incident] = []

    for toc in _children(root, "TOC"):
        status = _child_text(toc, "Status")
        if status == GOOD_SERVICE:
            continue

        toc_name = _child_text(toc, "TocName")
        title = toc_name if status == CUSTOM_STATUS else f"{toc_name}: {status}"
        summary = _child_text(toc, "StatusDescription")

        for group in _children(toc, "ServiceGroup"):
            url = _child_text(group, "CustomURL")
            if url:
                incidents.append(Incident(title=title, summary=summary, url=url))

    return incidents


def filter_for_station(incidents: List[Incident], station: Station) -> List[Incident]:
    """Keep incidents that mention the station in their URL slug or summary."""
    slug = station.slug
    name = station.name.lower()
    return [
        incident for incident in incidents
        if slug in incident.url.lower() or name in incident.summary.lower()
    ]


class IncidentSource(ABC):
    """Anything that can report the active incidents for a station."""

    @abstractmethod
    async def fetch_incidents(self, station_crs: str) -> List[Incident]:
        """
        Get the active incidents for a station.

        Implementations return an empty list on failure rather than raising.
        """
        pass


class NationalRailClient(IncidentSource):
    """Client for the National Rail incident feed."""

    def __init__(
        self,
        api_url: str,
        stations: StationDirectory,
        api_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize client.

        Args:
            api_url: NSI feed URL
            stations: Directory used to resolve CRS codes to names
            api_key: Value of the x-apikey header
            timeout: Network timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_url = api_url
        self.api_key = api_key
        self.stations = stations
        self.timeout = timeout
        self._transport = transport

        if not self.api_key:
            logger.warning("National Rail API key not configured")

    async def _fetch_feed(self) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.api_url, headers={"x-apikey": self.api_key})
        except httpx.HTTPError as e:
            raise IncidentSourceError(f"Request to {self.api_url} failed: {e}") from e

        if response.status_code != 200:
            raise IncidentSourceError(
                f"Incident feed returned status {response.status_code}: {response.text[:200]}"
            )
        return response.text

    async def fetch_incidents(self, station_crs: str) -> List[Incident]:
        """
        Get the active incidents for a station.

        Args:
            station_crs: Station CRS code

        Returns:
            Incidents for the station; empty on unknown station or any error
        """
        station = self.stations.get(station_crs)
        if station is None:
            logger.warning(f"Station with CRS code {station_crs} not found.")
            return []

        logger.debug(f"Filtering incidents for station: {station.name} (slug: {station.slug})")

        try:
            all_incidents = parse_nsi_incidents(await self._fetch_feed())
        except IncidentSourceError as e:
            logger.warning(f"Could not read incidents for {station_crs}: {e}")
            return []

        logger.debug(f"Found {len(all_incidents)} total incidents before filtering.")
        incidents = filter_for_station(all_incidents, station)
        logger.debug(f"Found {len(incidents)} incidents for {station.name}.")
        return incidents

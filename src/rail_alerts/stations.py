"""
Station directory.

Loads the list of UK stations (name + CRS code) from a public JSON
document and offers lookup by code and substring search for pickers.
"""

from typing import Dict, List, Optional

import httpx

from src.rail_alerts.models import Station
from src.utils.logger import get_logger

logger = get_logger()

DEFAULT_STATIONS_URL = (
    "https://raw.githubusercontent.com/davwheat/uk-railway-stations/main/stations.json"
)

# Slack external selects accept at most 100 options
MAX_FILTER_RESULTS = 100


class StationDirectory:
    """In-memory directory of monitorable stations."""

    def __init__(
        self,
        stations: Optional[List[Station]] = None,
        url: str = DEFAULT_STATIONS_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize directory.

        Args:
            stations: Preloaded stations (skips the network fetch)
            url: Location of the stations JSON document
            transport: Optional httpx transport (used by tests)
        """
        self.url = url
        self._transport = transport
        self._stations: List[Station] = []
        self._by_crs: Dict[str, Station] = {}
        if stations:
            self._set_stations(stations)

    def _set_stations(self, stations: List[Station]) -> None:
        self._stations = list(stations)
        self._by_crs = {station.crs.upper(): station for station in self._stations}

    async def load(self) -> int:
        """
        Fetch the station list.

        A failed fetch is logged and leaves the current list untouched.

        Returns:
            Number of stations now in the directory
        """
        logger.info(f"Fetching stations from {self.url}")
        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                data = response.json()

            stations = [
                Station(name=entry["stationName"], crs=entry["crsCode"])
                for entry in data
            ]
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Initial station load failed: {e}")
            return len(self._stations)

        self._set_stations(stations)
        logger.info(f"Loaded {len(stations)} stations")
        return len(stations)

    @property
    def stations(self) -> List[Station]:
        return list(self._stations)

    def get(self, crs: str) -> Optional[Station]:
        """Look up a station by CRS code (case-insensitive)."""
        return self._by_crs.get(crs.upper())

    def filter(self, search_term: str, limit: int = MAX_FILTER_RESULTS) -> List[Station]:
        """
        Find stations whose name or CRS code contains the search term.

        Args:
            search_term: Case-insensitive substring
            limit: Maximum number of results

        Returns:
            Matching stations in directory order
        """
        term = search_term.lower()
        matches = [
            station for station in self._stations
            if term in station.name.lower() or term in station.crs.lower()
        ]
        return matches[:limit]

    def __len__(self) -> int:
        return len(self._stations)

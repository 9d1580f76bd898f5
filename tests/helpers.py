"""Fakes and helpers shared by the Rail Alerts tests."""

import asyncio
from typing import Dict, List, Optional

from src.rail_alerts.exceptions import NotificationError
from src.rail_alerts.models import Incident
from src.rail_alerts.national_rail import IncidentSource
from src.rail_alerts.notifier import BaseNotifier


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


def make_incident(url: str = "http://incident/1", title: str = "Delay", summary: str = "Broken train") -> Incident:
    return Incident(title=title, summary=summary, url=url)


class RecordingNotifier(BaseNotifier):
    """Notifier that records every message instead of sending it."""

    def __init__(self, failing_destinations: Optional[set] = None, failing_urls: Optional[set] = None):
        self.sent: List[Dict] = []
        self.failing_destinations = failing_destinations or set()
        self.failing_urls = failing_urls or set()

    async def send(self, destination_id, text, blocks=None):
        if destination_id in self.failing_destinations:
            raise NotificationError(f"channel_not_found: {destination_id}")
        if blocks and any(url in str(blocks) for url in self.failing_urls):
            raise NotificationError("rate_limited")
        self.sent.append({"channel": destination_id, "text": text, "blocks": blocks})

    def texts_for(self, destination_id: str) -> List[str]:
        return [m["text"] for m in self.sent if m["channel"] == destination_id]


class FakeIncidentSource(IncidentSource):
    """Incident source returning canned incidents per station."""

    def __init__(self, incidents: Optional[Dict[str, List[Incident]]] = None, failing: Optional[set] = None):
        self.incidents = incidents or {}
        self.failing = failing or set()
        self.calls: List[str] = []

    async def fetch_incidents(self, station_crs):
        self.calls.append(station_crs)
        if station_crs in self.failing:
            raise ConnectionError(f"feed unavailable for {station_crs}")
        return list(self.incidents.get(station_crs, []))

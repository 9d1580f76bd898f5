"""
Delivery Ledger for tracking what has already been announced.

Two independent namespaces:
- posted incidents, keyed by the encoded incident URL and shared by
  every destination;
- station status, keyed by destination and station, holding the
  "good service already announced" flag.

Every operation is independently consistent, so overlapping polls may
interleave writes without corrupting state.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote

from pydantic import ValidationError

from src.rail_alerts.exceptions import LedgerError
from src.rail_alerts.models import PostedIncidentRecord, ServiceStatusRecord
from src.utils.logger import get_logger

logger = get_logger()


def encode_incident_key(url: str) -> str:
    """Encode an incident URL into a flat document key."""
    return quote(url, safe="!~*'()")


def station_status_key(destination_id: str, station_crs: str) -> str:
    """Composite key for a (destination, station) status record."""
    return f"{destination_id}_{station_crs}"


class DeliveryLedger(ABC):
    """Abstract store of delivery state."""

    @abstractmethod
    async def has_posted(self, url: str) -> bool:
        """Return True if this incident URL was ever announced."""
        pass

    @abstractmethod
    async def mark_posted(self, url: str) -> None:
        """Record the incident URL as announced. Calling twice is harmless."""
        pass

    @abstractmethod
    async def has_good_service_posted(self, destination_id: str, station_crs: str) -> bool:
        """Return True if good service was announced since the last incident."""
        pass

    @abstractmethod
    async def mark_good_service_posted(self, destination_id: str, station_crs: str) -> None:
        """Record that good service was announced to the destination."""
        pass

    @abstractmethod
    async def clear_good_service_posted(self, destination_id: str, station_crs: str) -> None:
        """Forget the good-service flag. Clearing an absent record is a no-op."""
        pass


class InMemoryLedger(DeliveryLedger):
    """Ledger kept in process memory. Lost on restart."""

    def __init__(self):
        self.posted_incidents: Dict[str, PostedIncidentRecord] = {}
        self.station_status: Dict[str, ServiceStatusRecord] = {}

    async def has_posted(self, url: str) -> bool:
        return encode_incident_key(url) in self.posted_incidents

    async def mark_posted(self, url: str) -> None:
        self.posted_incidents[encode_incident_key(url)] = PostedIncidentRecord()

    async def has_good_service_posted(self, destination_id: str, station_crs: str) -> bool:
        return station_status_key(destination_id, station_crs) in self.station_status

    async def mark_good_service_posted(self, destination_id: str, station_crs: str) -> None:
        self.station_status[station_status_key(destination_id, station_crs)] = ServiceStatusRecord()

    async def clear_good_service_posted(self, destination_id: str, station_crs: str) -> None:
        self.station_status.pop(station_status_key(destination_id, station_crs), None)


class JsonFileLedger(DeliveryLedger):
    """
    Ledger persisted to a single JSON document on disk.

    State is loaded lazily on first access and rewritten atomically
    (temp file + rename) after every mutation, so the store survives
    container restarts.
    """

    FILE_NAME = "ledger.json"

    def __init__(self, state_dir: Path):
        """
        Initialize file ledger.

        Args:
            state_dir: Directory holding the ledger file (created if missing)
        """
        self._state_dir = Path(state_dir)
        self._path = self._state_dir / self.FILE_NAME
        self._posted: Optional[Dict[str, PostedIncidentRecord]] = None
        self._status: Optional[Dict[str, ServiceStatusRecord]] = None

        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LedgerError(f"Cannot create ledger directory {self._state_dir}: {e}") from e

        logger.info(f"Ledger persistence enabled: {self._path}")

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if self._posted is not None:
            return

        if not self._path.exists():
            logger.debug(f"No ledger file at {self._path}, starting empty")
            self._posted, self._status = {}, {}
            return

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)

            posted = {
                key: PostedIncidentRecord.model_validate(value)
                for key, value in data.get("posted_incidents", {}).items()
            }
            status = {
                key: ServiceStatusRecord.model_validate(value)
                for key, value in data.get("station_status", {}).items()
            }
        except (OSError, ValueError, ValidationError) as e:
            raise LedgerError(f"Failed to load ledger from {self._path}: {e}") from e

        self._posted, self._status = posted, status
        logger.info(
            f"Loaded ledger from disk "
            f"({len(posted)} posted incident(s), {len(status)} status record(s))"
        )

    def _save(self) -> None:
        data = {
            "posted_incidents": {
                key: record.model_dump(mode="json") for key, record in self._posted.items()
            },
            "station_status": {
                key: record.model_dump(mode="json") for key, record in self._status.items()
            },
        }

        temp_file = self._path.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            temp_file.replace(self._path)
        except OSError as e:
            raise LedgerError(f"Failed to save ledger to {self._path}: {e}") from e

    async def has_posted(self, url: str) -> bool:
        self._load()
        return encode_incident_key(url) in self._posted

    async def mark_posted(self, url: str) -> None:
        self._load()
        self._posted[encode_incident_key(url)] = PostedIncidentRecord()
        self._save()

    async def has_good_service_posted(self, destination_id: str, station_crs: str) -> bool:
        self._load()
        return station_status_key(destination_id, station_crs) in self._status

    async def mark_good_service_posted(self, destination_id: str, station_crs: str) -> None:
        self._load()
        self._status[station_status_key(destination_id, station_crs)] = ServiceStatusRecord()
        self._save()

    async def clear_good_service_posted(self, destination_id: str, station_crs: str) -> None:
        self._load()
        if self._status.pop(station_status_key(destination_id, station_crs), None) is not None:
            self._save()

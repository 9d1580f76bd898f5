"""Pydantic models for Rail Alerts."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TargetKind(str, Enum):
    """Where a monitored target came from."""
    GLOBAL = "global"  # Static configuration (channel)
    USER = "user"      # Per-user subscription (direct message)


class ServiceStatus(str, Enum):
    """Status tag stored in service-status records."""
    GOOD = "good"


class Incident(BaseModel):
    """A single active disruption notice for a station."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Headline, e.g. 'Southern: Minor delays'")
    summary: str = Field(default="", description="Free-text description")
    url: str = Field(..., description="Link to the notice (identity key)")


class Station(BaseModel):
    """Entry in the station directory."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Station name, e.g. 'London Waterloo'")
    crs: str = Field(..., description="3-letter CRS code, e.g. WAT")

    @property
    def slug(self) -> str:
        """Lower-cased name with spaces replaced by dashes, as used in feed URLs."""
        return self.name.lower().replace(" ", "-")


class MonitoredTarget(BaseModel):
    """A (destination, station) pair checked on every tick."""

    model_config = ConfigDict(frozen=True)

    destination_id: str = Field(..., description="Slack channel or user ID")
    station_crs: str = Field(..., description="Station CRS code")
    kind: TargetKind = Field(default=TargetKind.USER)

    def __str__(self) -> str:
        return f"{self.station_crs}->{self.destination_id}"


class UserSettings(BaseModel):
    """Stations a single user has subscribed to."""

    stations: List[str] = Field(default_factory=list)


class PostedIncidentRecord(BaseModel):
    """Ledger entry: this incident URL has been announced to someone."""

    posted_at: datetime = Field(default_factory=utcnow)


class ServiceStatusRecord(BaseModel):
    """Ledger entry: destination has been told the station has good service."""

    status: ServiceStatus = Field(default=ServiceStatus.GOOD)
    posted_at: datetime = Field(default_factory=utcnow)


class ReconcileOutcome(BaseModel):
    """Result of reconciling one target during one tick."""

    target: MonitoredTarget
    incident_count: int = 0
    incidents_announced: List[str] = Field(
        default_factory=list,
        description="URLs sent during this reconciliation"
    )
    failed_sends: List[str] = Field(
        default_factory=list,
        description="URLs whose notification could not be delivered"
    )
    good_service_announced: bool = False
    good_service_failed: bool = False
    error: Optional[str] = Field(
        default=None,
        description="Set when the target was skipped or aborted"
    )

    @property
    def ok(self) -> bool:
        return self.error is None


class PollSummary(BaseModel):
    """Everything one tick did, in processing order."""

    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    outcomes: List[ReconcileOutcome] = Field(default_factory=list)

    @property
    def notifications_sent(self) -> int:
        return sum(
            len(o.incidents_announced) + int(o.good_service_announced)
            for o in self.outcomes
        )

    @property
    def error_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

"""
Reconciler for a single monitored target.

Compares the current incidents at a station with what the ledger says
was already announced, sends whatever is new, and records it.

State per (destination, station):
- incidents present: announce each URL not yet posted anywhere, then
  clear the good-service flag so the next all-clear is announced;
- no incidents: announce good service once, then stay silent until
  the next incident clears the flag.

Overlapping ticks share one reconciler. A delivery is claimed before
its ledger check and released once recorded (or failed), so a second
tick never sends what the first is still sending.
"""

from typing import List, Set, Tuple

from src.rail_alerts.ledger import DeliveryLedger, encode_incident_key, station_status_key
from src.rail_alerts.models import Incident, MonitoredTarget, ReconcileOutcome
from src.rail_alerts.notifier import BaseNotifier
from src.utils.logger import get_logger

logger = get_logger()


class Reconciler:
    """Decides and performs the notifications for one target per tick."""

    def __init__(self, ledger: DeliveryLedger, notifier: BaseNotifier):
        """
        Initialize reconciler.

        Args:
            ledger: Delivery ledger (shared across targets)
            notifier: Notifier used for all deliveries
        """
        self.ledger = ledger
        self.notifier = notifier
        self._in_flight: Set[Tuple[str, str]] = set()

    def _claim(self, claim: Tuple[str, str]) -> bool:
        # No await between check and add: atomic on the event loop
        if claim in self._in_flight:
            return False
        self._in_flight.add(claim)
        return True

    async def reconcile(
        self,
        target: MonitoredTarget,
        incidents: List[Incident]
    ) -> ReconcileOutcome:
        """
        Reconcile one target against its current incidents.

        Ledger errors propagate: the state of the target is unknown after
        a failed read or write. Delivery errors are logged per message and
        the message is left unrecorded.

        Args:
            target: Destination and station being reconciled
            incidents: Current incidents for the station

        Returns:
            ReconcileOutcome: What was sent
        """
        outcome = ReconcileOutcome(target=target, incident_count=len(incidents))

        if incidents:
            await self._announce_incidents(target, incidents, outcome)
        else:
            await self._announce_good_service(target, outcome)

        return outcome

    async def _announce_incidents(
        self,
        target: MonitoredTarget,
        incidents: List[Incident],
        outcome: ReconcileOutcome
    ) -> None:
        for incident in incidents:
            # Deduplication is by URL alone, across every destination
            claim = ("incident", encode_incident_key(incident.url))
            if not self._claim(claim):
                logger.debug(f"{incident.url} is being sent by another tick, skipping for {target}")
                continue

            try:
                await self._announce_incident(target, incident, outcome)
            finally:
                self._in_flight.discard(claim)

        await self.ledger.clear_good_service_posted(target.destination_id, target.station_crs)

    async def _announce_incident(
        self,
        target: MonitoredTarget,
        incident: Incident,
        outcome: ReconcileOutcome
    ) -> None:
        if await self.ledger.has_posted(incident.url):
            logger.debug(f"Already posted {incident.url}, skipping for {target}")
            return

        try:
            await self.notifier.send_incident(
                target.destination_id, target.station_crs, incident
            )
        except Exception as e:
            logger.error(f"Failed to send incident {incident.url} to {target.destination_id}: {e}")
            outcome.failed_sends.append(incident.url)
            return

        await self.ledger.mark_posted(incident.url)
        outcome.incidents_announced.append(incident.url)
        logger.info(f"Posted incident '{incident.title}' for {target}")

    async def _announce_good_service(
        self,
        target: MonitoredTarget,
        outcome: ReconcileOutcome
    ) -> None:
        claim = ("status", station_status_key(target.destination_id, target.station_crs))
        if not self._claim(claim):
            logger.debug(f"Good service for {target} is being sent by another tick")
            return

        try:
            if await self.ledger.has_good_service_posted(target.destination_id, target.station_crs):
                return

            try:
                await self.notifier.send_good_service(target.destination_id, target.station_crs)
            except Exception as e:
                logger.error(f"Failed to send good service for {target}: {e}")
                outcome.good_service_failed = True
                return

            await self.ledger.mark_good_service_posted(target.destination_id, target.station_crs)
            outcome.good_service_announced = True
            logger.debug(f"Posted Good Service for {target.station_crs} in {target.destination_id}")
        finally:
            self._in_flight.discard(claim)

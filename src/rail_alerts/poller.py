"""
Incident Poller for orchestrating global and per-user monitoring.

Each tick walks every monitored target in a fixed order (the global
channel target first, then users in registry order, then each user's
stations in list order) and reconciles it. A failure for one target
never stops the others, and a failed tick never stops the schedule.
"""

from datetime import datetime
from typing import Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.rail_alerts.exceptions import ConfigurationError
from src.rail_alerts.models import (
    MonitoredTarget,
    PollSummary,
    ReconcileOutcome,
    TargetKind,
    utcnow,
)
from src.rail_alerts.national_rail import IncidentSource
from src.rail_alerts.providers.base import SubscriptionProvider
from src.rail_alerts.reconciler import Reconciler
from src.utils.logger import get_logger

logger = get_logger()

POLL_JOB_ID = "rail_incident_poll"

# Ticks are allowed to overlap; this only bounds a pile-up behind a stalled feed
MAX_OVERLAPPING_POLLS = 10


class IncidentPoller:
    """
    Runs one reconciliation pass over every monitored target.

    Collaborators are injected so the poller holds no global state.
    """

    def __init__(
        self,
        incident_source: IncidentSource,
        subscriptions: SubscriptionProvider,
        reconciler: Reconciler,
        global_station_crs: Optional[str] = None,
        global_destination_id: Optional[str] = None,
    ):
        """
        Initialize poller.

        Args:
            incident_source: Source of current incidents per station
            subscriptions: Registry of per-user station lists
            reconciler: Per-target reconciliation logic
            global_station_crs: Station for the configured channel
            global_destination_id: Channel for the global station
        """
        self.incident_source = incident_source
        self.subscriptions = subscriptions
        self.reconciler = reconciler

        self.global_target: Optional[MonitoredTarget] = None
        if global_station_crs and global_destination_id:
            self.global_target = MonitoredTarget(
                destination_id=global_destination_id,
                station_crs=global_station_crs,
                kind=TargetKind.GLOBAL,
            )
        elif global_station_crs or global_destination_id:
            logger.warning(
                "Only one of STATION_CRS / SLACK_CHANNEL_ID is set - global monitoring disabled"
            )

        self.poll_count = 0
        self.failed_poll_count = 0
        self.target_error_count = 0
        self.last_poll: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.last_summary: Optional[PollSummary] = None

    async def poll(self) -> PollSummary:
        """
        Perform one tick.

        Returns:
            PollSummary: Outcomes of every target processed, in order
        """
        self.poll_count += 1
        self.last_poll = utcnow()
        summary = PollSummary()

        logger.debug(f"Polling for incidents (tick #{self.poll_count})...")

        try:
            if self.global_target is not None:
                summary.outcomes.append(await self._process_target(self.global_target))

            for target in await self._user_targets():
                summary.outcomes.append(await self._process_target(target))

            self.last_error = None

        except Exception as e:
            self.failed_poll_count += 1
            self.last_error = str(e)
            logger.exception(f"Error during polling: {e}")

        summary.finished_at = utcnow()
        self.target_error_count += summary.error_count
        self.last_summary = summary

        logger.info(
            f"Poll #{self.poll_count} finished: {len(summary.outcomes)} target(s), "
            f"{summary.notifications_sent} notification(s), {summary.error_count} error(s)"
        )
        return summary

    async def _user_targets(self) -> List[MonitoredTarget]:
        targets: List[MonitoredTarget] = []

        for user_id in await self.subscriptions.list_subscriber_ids():
            settings = await self.subscriptions.get_subscription(user_id)
            if settings is None:
                continue
            for station_crs in settings.stations:
                targets.append(MonitoredTarget(
                    destination_id=user_id,
                    station_crs=station_crs,
                    kind=TargetKind.USER,
                ))

        return targets

    async def _process_target(self, target: MonitoredTarget) -> ReconcileOutcome:
        """
        Fetch and reconcile one target, converting any failure into an outcome.

        A source that raises skips the target for this tick, so a broken
        feed is never mistaken for good service.
        """
        try:
            incidents = await self.incident_source.fetch_incidents(target.station_crs)
        except Exception as e:
            logger.warning(f"Incident source failed for {target}: {e}")
            return ReconcileOutcome(target=target, error=f"source: {e}")

        try:
            return await self.reconciler.reconcile(target, incidents)
        except Exception as e:
            logger.exception(f"Reconciliation failed for {target}: {e}")
            return ReconcileOutcome(
                target=target,
                incident_count=len(incidents),
                error=f"reconcile: {e}",
            )

    def get_health_status(self) -> Dict:
        """
        Get health status for the poller.

        Returns:
            Health status dictionary
        """
        return {
            "global_target": str(self.global_target) if self.global_target else None,
            "last_poll": self.last_poll.isoformat() if self.last_poll else None,
            "poll_count": self.poll_count,
            "failed_poll_count": self.failed_poll_count,
            "target_error_count": self.target_error_count,
            "last_error": self.last_error,
        }


def validate_interval_ms(interval_ms) -> int:
    """
    Check the poll interval.

    Raises:
        ConfigurationError: If the interval is not a positive integer
    """
    if isinstance(interval_ms, bool) or not isinstance(interval_ms, int) or interval_ms <= 0:
        raise ConfigurationError(
            f"Poll interval must be a positive integer of milliseconds, got: {interval_ms!r}"
        )
    return interval_ms


async def start_polling(
    poller: IncidentPoller,
    interval_ms: int,
    scheduler: Optional[AsyncIOScheduler] = None,
) -> AsyncIOScheduler:
    """
    Run one pass immediately, then schedule a pass every interval.

    The job tolerates overlapping runs: a slow tick does not delay or
    skip the next one.

    Args:
        poller: Poller to drive
        interval_ms: Interval between ticks in milliseconds
        scheduler: Scheduler to use (a new AsyncIOScheduler if None)

    Returns:
        AsyncIOScheduler: The started scheduler
    """
    interval_ms = validate_interval_ms(interval_ms)

    await poller.poll()

    if scheduler is None:
        scheduler = AsyncIOScheduler()

    scheduler.add_job(
        poller.poll,
        trigger=IntervalTrigger(seconds=interval_ms / 1000),
        id=POLL_JOB_ID,
        name="Rail incident poll",
        replace_existing=True,
        max_instances=MAX_OVERLAPPING_POLLS,
        coalesce=False,
    )
    scheduler.start()

    logger.info(f"📅 Polling every {interval_ms} ms")
    return scheduler

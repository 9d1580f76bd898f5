#!/usr/bin/env python3
"""
Rail Alerts - Main Entry Point

Polls the National Rail incident feed for the configured channel station
and every user's subscribed stations, posting new incidents and
"good service" updates to Slack.

Usage:
    python -m src.rail_alerts.monitor [--dry-run] [--once]
    python -m src.rail_alerts.monitor --find-station TERM
    python -m src.rail_alerts.monitor --subscribe USER_ID [CRS ...]

Environment Variables:
    POLL_INTERVAL_MS          Poll interval in milliseconds (required, > 0)
    NATIONAL_RAIL_API_URL     Incident feed URL (required)
    NATIONAL_RAIL_API_KEY     Incident feed API key
    STATION_CRS               Station for the global channel (optional)
    SLACK_CHANNEL_ID          Channel for the global station (optional)
    SLACK_BOT_TOKEN           Slack bot token (required unless DRY_RUN)
    STATE_DIR                 Directory for ledger and user settings
    DRY_RUN                   Log messages instead of posting (true/false)
"""

import argparse
import asyncio
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from src.rail_alerts.exceptions import ConfigurationError, RailAlertsError
from src.rail_alerts.ledger import DeliveryLedger, JsonFileLedger
from src.rail_alerts.models import UserSettings
from src.rail_alerts.national_rail import NationalRailClient
from src.rail_alerts.notifier import BaseNotifier, get_notifier
from src.rail_alerts.poller import IncidentPoller, start_polling
from src.rail_alerts.providers.base import SubscriptionProvider
from src.rail_alerts.providers.file_provider import JsonFileSubscriptionProvider
from src.rail_alerts.reconciler import Reconciler
from src.rail_alerts.stations import StationDirectory
from src.utils.config import Settings, get_settings
from src.utils.logger import get_logger, setup_logger

logger = get_logger()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="National Rail incident alerts for Slack")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log notifications instead of posting to Slack"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll and exit"
    )
    parser.add_argument(
        "--find-station",
        metavar="TERM",
        help="List stations whose name or code contains TERM and exit"
    )
    parser.add_argument(
        "--subscribe",
        nargs="+",
        metavar=("USER_ID", "CRS"),
        help="Replace a user's station list and exit (no codes clears it)"
    )
    return parser.parse_args(argv)


def build_poller(
    settings: Settings,
    stations: StationDirectory,
    ledger: Optional[DeliveryLedger] = None,
    subscriptions: Optional[SubscriptionProvider] = None,
    notifier: Optional[BaseNotifier] = None,
    dry_run: Optional[bool] = None,
) -> IncidentPoller:
    """
    Wire up the poller and its collaborators from settings.

    Any collaborator passed in is used as-is instead of the default.
    """
    state_dir = Path(settings.state_dir)

    ledger = ledger or JsonFileLedger(state_dir)
    subscriptions = subscriptions or JsonFileSubscriptionProvider(state_dir)
    notifier = notifier or get_notifier(settings, dry_run=dry_run)

    client = NationalRailClient(
        api_url=settings.national_rail_api_url,
        stations=stations,
        api_key=settings.national_rail_api_key,
        timeout=settings.national_rail_timeout_seconds,
    )

    return IncidentPoller(
        incident_source=client,
        subscriptions=subscriptions,
        reconciler=Reconciler(ledger=ledger, notifier=notifier),
        global_station_crs=settings.station_crs,
        global_destination_id=settings.slack_channel_id,
    )


async def subscribe(
    subscriptions: SubscriptionProvider,
    stations: StationDirectory,
    user_id: str,
    station_codes: List[str],
) -> UserSettings:
    """
    Save a user's station list after checking every code is known.

    Raises:
        ConfigurationError: If any code is not in the station directory
    """
    unknown = [code for code in station_codes if stations.get(code) is None]
    if unknown:
        raise ConfigurationError(f"Unknown station code(s): {', '.join(unknown)}")

    user_settings = UserSettings(stations=[stations.get(code).crs for code in station_codes])
    await subscriptions.save_subscription(user_id, user_settings)
    return user_settings


async def main(argv=None) -> int:
    """Main application entry point."""
    args = parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        logger.error(f"❌ Invalid configuration:\n{e}")
        return 1

    setup_logger(settings)
    dry_run = args.dry_run or settings.dry_run

    logger.info("=" * 70)
    logger.info("CONFIGURATION")
    logger.info("=" * 70)
    logger.info(f"Poll interval: {settings.poll_interval_ms} ms")
    logger.info(f"DRY-RUN Mode: {dry_run}")
    logger.info(
        f"Global target: "
        f"{settings.station_crs}->{settings.slack_channel_id}"
        if settings.global_monitoring_enabled else "Global target: disabled"
    )
    logger.info(f"State directory: {settings.state_dir}")
    logger.info(f"API Key: {'✓ Configured' if settings.national_rail_api_key else '✗ Not set'}")
    logger.info("=" * 70)

    stations = StationDirectory(url=settings.stations_url)
    await stations.load()

    if len(stations) == 0:
        # Unknown stations yield no incidents, which would read as good service everywhere
        logger.error("❌ Station directory is empty - refusing to run, every station would report good service")
        return 1

    if args.find_station is not None:
        matches = stations.filter(args.find_station)
        for station in matches:
            logger.info(f"{station.crs}  {station.name}")
        logger.info(f"{len(matches)} station(s) match '{args.find_station}'")
        return 0

    if args.subscribe:
        user_id, *station_codes = args.subscribe
        try:
            saved = await subscribe(
                JsonFileSubscriptionProvider(Path(settings.state_dir)),
                stations,
                user_id,
                station_codes,
            )
        except RailAlertsError as e:
            logger.error(f"❌ Failed to subscribe {user_id}: {e}")
            return 1
        logger.info(f"✅ {user_id} now monitors: {', '.join(saved.stations) or 'nothing'}")
        return 0

    try:
        poller = build_poller(settings, stations, dry_run=dry_run)
    except RailAlertsError as e:
        logger.error(f"❌ Failed to start: {e}")
        return 1

    if args.once:
        summary = await poller.poll()
        return 0 if summary.error_count == 0 else 1

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()

    def _shutdown(sig: signal.Signals) -> None:
        logger.info(f"Received signal: {sig.name}")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _shutdown, sig)

    scheduler = await start_polling(poller, settings.poll_interval_ms)

    logger.info("✅ RAIL ALERTS ACTIVE - press Ctrl+C to stop")
    await shutdown_event.wait()

    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("✅ Scheduler stopped")

    logger.info(f"👋 Shutdown time: {datetime.now().isoformat()}")
    return 0


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Shutdown requested")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()

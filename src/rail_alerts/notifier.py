"""
Slack Notifier for sending incident and good-service messages.

Supports two modes:
1. PRODUCTION - actual posting via the Slack Web API
2. DRY_RUN (development) - logging only, no actual sending
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from src.rail_alerts.exceptions import ConfigurationError, NotificationError
from src.rail_alerts.models import Incident
from src.utils.config import Settings
from src.utils.logger import get_logger

logger = get_logger()

Blocks = List[Dict[str, Any]]


def _section(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def format_incident_text(station_crs: str) -> str:
    """Plain-text fallback for an incident message."""
    return f"Incident at {station_crs}"


def format_incident_blocks(incident: Incident) -> Blocks:
    """Block Kit body: bold title, summary, link to the notice."""
    return [
        _section(f"*{incident.title}*"),
        _section(incident.summary),
        _section(f"<{incident.url}|View on National Rail>"),
    ]


def format_good_service_text(station_crs: str) -> str:
    return f"✅ *Good service at {station_crs}* (All previous incidents cleared)"


class BaseNotifier(ABC):
    """Abstract base class for notifiers."""

    @abstractmethod
    async def send(
        self,
        destination_id: str,
        text: str,
        blocks: Optional[Blocks] = None
    ) -> None:
        """
        Deliver a message.

        Args:
            destination_id: Slack channel or user ID
            text: Message text (fallback text when blocks are given)
            blocks: Optional Block Kit body

        Raises:
            NotificationError: If the message could not be delivered
        """
        pass

    async def send_incident(self, destination_id: str, station_crs: str, incident: Incident) -> None:
        await self.send(
            destination_id,
            format_incident_text(station_crs),
            format_incident_blocks(incident),
        )

    async def send_good_service(self, destination_id: str, station_crs: str) -> None:
        await self.send(destination_id, format_good_service_text(station_crs))


class LogNotifier(BaseNotifier):
    """
    Notifier for development mode - logging only.

    All notifications are written to logs, but not sent to Slack.
    Delivered messages are kept in ``sent`` for inspection.
    """

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        logger.info("🔧 LogNotifier initialized (DRY-RUN mode)")

    async def send(
        self,
        destination_id: str,
        text: str,
        blocks: Optional[Blocks] = None
    ) -> None:
        """Log notification instead of sending."""
        self.sent.append({"channel": destination_id, "text": text, "blocks": blocks})

        logger.info("=" * 70)
        logger.info("📢 [DRY-RUN] SLACK MESSAGE (NOT SENT)")
        logger.info(f"💬 Destination: {destination_id}")
        logger.info(f"📨 {text}")
        for block in blocks or []:
            logger.info(block["text"]["text"])
        logger.info("=" * 70)


class SlackNotifier(BaseNotifier):
    """
    Notifier for production - actual posting to Slack.

    Uses the chat.postMessage Web API method.
    """

    def __init__(
        self,
        bot_token: str,
        api_url: str = "https://slack.com/api",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize SlackNotifier.

        Args:
            bot_token: Slack bot token (xoxb-...)
            api_url: Slack Web API base URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        if not bot_token:
            raise ConfigurationError("Slack bot token is required outside dry-run mode")

        self.bot_token = bot_token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

        logger.info("✅ SlackNotifier initialized (PRODUCTION mode)")

    async def send(
        self,
        destination_id: str,
        text: str,
        blocks: Optional[Blocks] = None
    ) -> None:
        payload: Dict[str, Any] = {"channel": destination_id, "text": text}
        if blocks:
            payload["blocks"] = blocks

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.api_url}/chat.postMessage",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.bot_token}"},
                )
        except httpx.HTTPError as e:
            raise NotificationError(f"Error posting to {destination_id}: {e}") from e

        if response.status_code != 200:
            raise NotificationError(
                f"Failed to post to {destination_id}: HTTP {response.status_code} - {response.text}"
            )

        # Slack reports most failures as HTTP 200 with ok=false
        try:
            body = response.json()
        except ValueError as e:
            raise NotificationError(f"Unreadable Slack response for {destination_id}: {e}") from e

        if not body.get("ok", False):
            raise NotificationError(
                f"Slack rejected message to {destination_id}: {body.get('error', 'unknown_error')}"
            )

        logger.info(f"✅ Message sent to {destination_id}: {text}")


def get_notifier(settings: Settings, dry_run: Optional[bool] = None) -> BaseNotifier:
    """
    Factory for creating notifiers.

    Args:
        settings: Application settings
        dry_run: Override settings.dry_run

    Returns:
        BaseNotifier: LogNotifier in dry-run mode, else SlackNotifier
    """
    if dry_run is None:
        dry_run = settings.dry_run

    if dry_run:
        logger.info("🔧 Creating LogNotifier (DRY-RUN mode for development)")
        return LogNotifier()

    logger.info("✅ Creating SlackNotifier (PRODUCTION mode)")
    return SlackNotifier(bot_token=settings.slack_bot_token, api_url=settings.slack_api_url)

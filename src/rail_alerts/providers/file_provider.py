"""JSON file subscription registry."""

import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from src.rail_alerts.exceptions import SubscriptionError
from src.rail_alerts.models import UserSettings
from src.rail_alerts.providers.base import SubscriptionProvider
from src.utils.logger import get_logger

logger = get_logger()


class JsonFileSubscriptionProvider(SubscriptionProvider):
    """
    Provider storing user settings in a JSON document.

    File format:
    {
        "U012ABCDEF": {"stations": ["WAT", "CLJ"]},
        "U034GHIJKL": {"stations": ["ELY"]}
    }

    The file is re-read on every call so edits made by another process
    (e.g. the Slack app saving a modal) are picked up on the next poll.
    """

    FILE_NAME = "user_settings.json"

    def __init__(self, state_dir: Path):
        self._path = Path(state_dir) / self.FILE_NAME
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Dict[str, UserSettings]:
        if not self._path.exists():
            return {}

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return {
                user_id: UserSettings.model_validate(value)
                for user_id, value in data.items()
            }
        except (OSError, ValueError, ValidationError) as e:
            raise SubscriptionError(f"Failed to read user settings from {self._path}: {e}") from e

    def _write(self, subscriptions: Dict[str, UserSettings]) -> None:
        data = {user_id: s.model_dump(mode="json") for user_id, s in subscriptions.items()}
        temp_file = self._path.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            temp_file.replace(self._path)
        except OSError as e:
            raise SubscriptionError(f"Failed to write user settings to {self._path}: {e}") from e

    async def list_subscriber_ids(self) -> List[str]:
        return list(self._read())

    async def get_subscription(self, user_id: str) -> Optional[UserSettings]:
        return self._read().get(user_id)

    async def save_subscription(self, user_id: str, settings: UserSettings) -> None:
        subscriptions = self._read()
        subscriptions[user_id] = settings
        self._write(subscriptions)
        logger.info(f"Saved {len(settings.stations)} station(s) for user {user_id}")

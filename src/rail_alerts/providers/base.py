"""Base subscription registry interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from src.rail_alerts.models import UserSettings


class SubscriptionProvider(ABC):
    """Abstract registry of per-user station subscriptions."""

    @abstractmethod
    async def list_subscriber_ids(self) -> List[str]:
        """
        Get IDs of every user with saved settings, in registry order.

        Returns:
            List[str]: Slack user IDs
        """
        pass

    @abstractmethod
    async def get_subscription(self, user_id: str) -> Optional[UserSettings]:
        """
        Get settings for a specific user.

        Args:
            user_id: Slack user ID

        Returns:
            Optional[UserSettings]: Settings or None if the user has none
        """
        pass

    @abstractmethod
    async def save_subscription(self, user_id: str, settings: UserSettings) -> None:
        """
        Replace the settings for a user.

        Args:
            user_id: Slack user ID
            settings: New settings
        """
        pass

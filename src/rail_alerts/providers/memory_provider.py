"""In-memory subscription registry."""

from typing import Dict, List, Optional

from src.rail_alerts.models import UserSettings
from src.rail_alerts.providers.base import SubscriptionProvider


class InMemorySubscriptionProvider(SubscriptionProvider):
    """Registry held in a dict. Insertion order is registry order."""

    def __init__(self, subscriptions: Optional[Dict[str, UserSettings]] = None):
        self._subscriptions: Dict[str, UserSettings] = dict(subscriptions or {})

    async def list_subscriber_ids(self) -> List[str]:
        return list(self._subscriptions)

    async def get_subscription(self, user_id: str) -> Optional[UserSettings]:
        return self._subscriptions.get(user_id)

    async def save_subscription(self, user_id: str, settings: UserSettings) -> None:
        self._subscriptions[user_id] = settings

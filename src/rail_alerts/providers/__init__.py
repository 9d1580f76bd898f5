"""Subscription registry providers."""

from src.rail_alerts.providers.base import SubscriptionProvider
from src.rail_alerts.providers.file_provider import JsonFileSubscriptionProvider
from src.rail_alerts.providers.memory_provider import InMemorySubscriptionProvider

__all__ = [
    "SubscriptionProvider",
    "JsonFileSubscriptionProvider",
    "InMemorySubscriptionProvider",
]

"""Shared fixtures for Rail Alerts tests."""

import pytest

from src.rail_alerts.ledger import InMemoryLedger
from src.rail_alerts.models import UserSettings
from src.rail_alerts.providers.memory_provider import InMemorySubscriptionProvider
from tests.helpers import FakeIncidentSource, RecordingNotifier


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def source():
    return FakeIncidentSource()


@pytest.fixture
def subscriptions():
    return InMemorySubscriptionProvider()


@pytest.fixture
def two_users():
    return InMemorySubscriptionProvider({
        "U1": UserSettings(stations=["ABC"]),
        "U2": UserSettings(stations=["DEF"]),
    })

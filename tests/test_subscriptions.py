"""Tests for subscription registry providers."""

import pytest

from src.rail_alerts.exceptions import LedgerError, SubscriptionError
from src.rail_alerts.models import UserSettings
from src.rail_alerts.providers import InMemorySubscriptionProvider, JsonFileSubscriptionProvider
from tests.helpers import run


@pytest.fixture(params=["memory", "file"])
def registry(request, tmp_path):
    if request.param == "memory":
        return InMemorySubscriptionProvider()
    return JsonFileSubscriptionProvider(tmp_path)


def test_empty_registry(registry):
    assert run(registry.list_subscriber_ids()) == []
    assert run(registry.get_subscription("U1")) is None


def test_save_and_get(registry):
    run(registry.save_subscription("U1", UserSettings(stations=["WAT", "CLJ"])))

    assert run(registry.get_subscription("U1")).stations == ["WAT", "CLJ"]


def test_save_replaces_previous_selection(registry):
    run(registry.save_subscription("U1", UserSettings(stations=["WAT"])))
    run(registry.save_subscription("U1", UserSettings(stations=[])))

    assert run(registry.get_subscription("U1")).stations == []
    assert run(registry.list_subscriber_ids()) == ["U1"]


def test_registry_order_is_insertion_order(registry):
    for user_id in ["U3", "U1", "U2"]:
        run(registry.save_subscription(user_id, UserSettings(stations=["ELY"])))

    assert run(registry.list_subscriber_ids()) == ["U3", "U1", "U2"]


def test_file_registry_shared_between_instances(tmp_path):
    writer = JsonFileSubscriptionProvider(tmp_path)
    reader = JsonFileSubscriptionProvider(tmp_path)

    run(writer.save_subscription("U1", UserSettings(stations=["KGX"])))

    assert run(reader.get_subscription("U1")).stations == ["KGX"]


def test_corrupted_file_raises(tmp_path):
    (tmp_path / JsonFileSubscriptionProvider.FILE_NAME).write_text('{"U1": {"stations": "WAT"}}')

    with pytest.raises(SubscriptionError) as exc_info:
        run(JsonFileSubscriptionProvider(tmp_path).list_subscriber_ids())

    assert not isinstance(exc_info.value, LedgerError)


def test_unwritable_file_raises_subscription_error(tmp_path):
    registry = JsonFileSubscriptionProvider(tmp_path)
    # A directory in the temp file's place makes the write fail
    (tmp_path / "user_settings.tmp").mkdir()

    with pytest.raises(SubscriptionError):
        run(registry.save_subscription("U1", UserSettings(stations=["WAT"])))

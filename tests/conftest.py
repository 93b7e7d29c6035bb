"""Shared test fixtures for the moment notifier."""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from models.schemas import DayClass, Destination, Moment, Subscription, TimeWindow

HELSINKI_SUMMER = timezone(timedelta(hours=2))


def local_time(year, month, day, hour, minute, second=0) -> datetime:
    """An instant expressed in the notifier's fixed +02:00 offset."""
    return datetime(year, month, day, hour, minute, second, tzinfo=HELSINKI_SUMMER)


# 2024-05-06 is a Monday; the week runs through Sunday 2024-05-12
MONDAY = (2024, 5, 6)
FRIDAY = (2024, 5, 10)
SATURDAY = (2024, 5, 11)
SUNDAY = (2024, 5, 12)


@pytest.fixture(autouse=True)
def _reset_singletons():
    from config.settings import reset_settings
    from database.store_factory import reset_store
    reset_settings()
    reset_store()
    yield
    reset_settings()
    reset_store()


@pytest.fixture
def destination() -> Destination:
    return Destination(guild_id="111111111111111111", channel_id="222222222222222222")


@pytest.fixture
def other_destination() -> Destination:
    return Destination(guild_id="111111111111111111", channel_id="333333333333333333")


@pytest.fixture
def friday_after_work() -> Moment:
    return Moment(day_class=DayClass.FRIDAY, time_window=TimeWindow.AFTER_WORK)


@pytest.fixture
def memory_store():
    from database.store_memory import InMemorySubscriptionStore
    return InMemorySubscriptionStore()


@pytest.fixture
def sent_channel():
    """Channel stub whose every send succeeds."""
    channel = MagicMock()
    channel.send_message = AsyncMock(return_value={"status": "sent", "message_id": "m1"})
    return channel


@pytest.fixture
def subscription(destination) -> Subscription:
    return Subscription(destination=destination)

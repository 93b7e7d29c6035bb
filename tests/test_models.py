"""Tests for the shared data models."""
import pytest
from pydantic import ValidationError

from models.schemas import (
    ClassifiedMoment, DayClass, Destination, Moment, MomentMetadata,
    Subscription, TimeWindow, ToggleOutcome, ToggleResult,
)


class TestDayClass:
    @pytest.mark.parametrize("weekday", [0, 1, 2, 3])
    def test_monday_to_thursday_are_work_days(self, weekday):
        assert DayClass.from_weekday(weekday) == DayClass.WORK_DAY

    def test_weekend_and_friday_have_their_own_class(self):
        assert DayClass.from_weekday(4) == DayClass.FRIDAY
        assert DayClass.from_weekday(5) == DayClass.SATURDAY
        assert DayClass.from_weekday(6) == DayClass.SUNDAY


class TestMoment:
    def test_equality_is_by_pair(self):
        a = Moment(day_class=DayClass.FRIDAY, time_window=TimeWindow.EVENING)
        b = Moment(day_class="friday", time_window="evening")
        assert a == b
        assert hash(a) == hash(b)

    def test_different_day_is_different_moment(self):
        a = Moment(day_class=DayClass.FRIDAY, time_window=TimeWindow.EVENING)
        b = Moment(day_class=DayClass.SATURDAY, time_window=TimeWindow.EVENING)
        assert a != b

    def test_key(self):
        m = Moment(day_class=DayClass.WORK_DAY, time_window=TimeWindow.MID_DAY)
        assert m.key == "work_day.mid_day"
        assert str(m) == "work_day.mid_day"

    def test_frozen(self):
        m = Moment(day_class=DayClass.WORK_DAY, time_window=TimeWindow.MID_DAY)
        with pytest.raises(ValidationError):
            m.day_class = DayClass.SUNDAY


class TestMomentMetadata:
    def test_odds_bounds(self):
        MomentMetadata(skip_odds=0.0)
        MomentMetadata(skip_odds=1.0)
        with pytest.raises(ValidationError):
            MomentMetadata(skip_odds=1.2)
        with pytest.raises(ValidationError):
            MomentMetadata(skip_odds=-0.1)

    def test_classified_moment_holds_both(self):
        cm = ClassifiedMoment(
            moment=Moment(day_class=DayClass.SUNDAY, time_window=TimeWindow.MORNING),
            metadata=MomentMetadata(skip_odds=0.5, is_last_instant=True),
        )
        assert cm.metadata.is_last_instant
        assert cm.moment.day_class == DayClass.SUNDAY


class TestDestination:
    def test_int_ids_are_coerced(self):
        d = Destination(guild_id=123, channel_id=456)
        assert d.guild_id == "123"
        assert d.channel_id == "456"
        assert str(d) == "123/456"

    def test_blank_ids_rejected(self):
        with pytest.raises(ValidationError):
            Destination(guild_id="  ", channel_id="1")
        with pytest.raises(ValidationError):
            Destination(guild_id="1", channel_id="")

    def test_equal_destinations_hash_equal(self):
        assert {Destination(guild_id=1, channel_id=2)} == {Destination(guild_id="1", channel_id="2")}


class TestSubscription:
    def test_new_subscription_has_no_last_moment(self, destination):
        assert Subscription(destination=destination).last_moment is None

    def test_record_round_trip(self, destination, friday_after_work):
        sub = Subscription(destination=destination, last_moment=friday_after_work)
        record = sub.to_record()
        assert record["last_moment"] == {"day_class": "friday", "time_window": "after_work"}
        restored = Subscription.from_record(record)
        assert restored.destination == destination
        assert restored.last_moment == friday_after_work
        assert restored.created_at == sub.created_at

    def test_record_with_null_last_moment(self, destination):
        record = Subscription(destination=destination).to_record()
        assert record["last_moment"] is None
        assert Subscription.from_record(record).last_moment is None


class TestToggleResult:
    def test_subscribed_only_when_added(self):
        assert ToggleResult(outcome=ToggleOutcome.ADDED).subscribed
        assert not ToggleResult(outcome=ToggleOutcome.REMOVED).subscribed
        assert not ToggleResult(outcome=ToggleOutcome.ERROR, error="x").subscribed

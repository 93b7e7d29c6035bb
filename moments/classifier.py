"""
Moment Classifier: maps a wall-clock instant to an optional Moment.

The classifier evaluates the instant in a fixed UTC offset (not DST aware),
tests (hour, minute) against an ordered table of windows and, on a match,
derives the day class from the weekday.

    now (any tz) → fixed offset → (hour, minute, weekday)
                 → first WindowSpec containing (hour, minute)
                 → ClassifiedMoment(Moment(day_class, window), metadata)

Everything outside the table is "not a special time" and yields None.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from models.schemas import (
    ClassifiedMoment, DayClass, Moment, MomentMetadata, TimeWindow,
)

DEFAULT_UTC_OFFSET_MINUTES = 120


@dataclass(frozen=True)
class WindowSpec:
    """Inclusive (hour, minute) range for one time window."""
    time_window: TimeWindow
    start: tuple[int, int]
    end: tuple[int, int]
    skip_odds: float

    def contains(self, hour: int, minute: int) -> bool:
        return self.start <= (hour, minute) <= self.end

    def is_last_instant(self, hour: int, minute: int) -> bool:
        return (hour, minute) == self.end

    @classmethod
    def from_config(cls, raw: dict[str, Any]) -> "WindowSpec":
        """Build from a settings entry: {window, start: "HH:MM", end: "HH:MM", skip_odds}."""
        return cls(
            time_window=TimeWindow(raw["window"]),
            start=_parse_hhmm(raw["start"]),
            end=_parse_hhmm(raw["end"]),
            skip_odds=float(raw["skip_odds"]),
        )


def _parse_hhmm(value: Any) -> tuple[int, int]:
    if isinstance(value, (list, tuple)):
        hour, minute = value
        return int(hour), int(minute)
    hour_str, _, minute_str = str(value).partition(":")
    return int(hour_str), int(minute_str or 0)


DEFAULT_WINDOWS: tuple[WindowSpec, ...] = (
    WindowSpec(TimeWindow.MORNING, (6, 27), (6, 33), 1 / 1.5),
    WindowSpec(TimeWindow.MID_DAY, (11, 0), (14, 59), 1 / 1.2),
    WindowSpec(TimeWindow.AFTER_WORK, (16, 0), (16, 15), 1 / 1.15),
    WindowSpec(TimeWindow.EVENING, (22, 0), (23, 59), 1 / 1.2),
)


def _validate_windows(windows: tuple[WindowSpec, ...]) -> None:
    seen: set[TimeWindow] = set()
    for spec in windows:
        for hour, minute in (spec.start, spec.end):
            if not (0 <= hour <= 23 and 0 <= minute <= 59):
                raise ValueError(f"{spec.time_window.value}: {hour:02d}:{minute:02d} is not a time of day")
        if spec.start > spec.end:
            raise ValueError(f"{spec.time_window.value}: window starts after it ends")
        if not 0.0 <= spec.skip_odds <= 1.0:
            raise ValueError(f"{spec.time_window.value}: skip_odds must be within [0, 1]")
        if spec.time_window in seen:
            raise ValueError(f"{spec.time_window.value}: window defined twice")
        seen.add(spec.time_window)

    ordered = sorted(windows, key=lambda s: s.start)
    for earlier, later in zip(ordered, ordered[1:]):
        if later.start <= earlier.end:
            raise ValueError(
                f"windows {earlier.time_window.value} and {later.time_window.value} overlap"
            )


class MomentClassifier:
    """
    Pure classifier over a fixed window table.

    Usage:
        classifier = MomentClassifier()
        result = classifier.classify(datetime.now(timezone.utc))
        if result is not None:
            result.moment, result.metadata.skip_odds, result.metadata.is_last_instant
    """

    def __init__(
        self,
        windows: Iterable[WindowSpec] = DEFAULT_WINDOWS,
        utc_offset_minutes: int = DEFAULT_UTC_OFFSET_MINUTES,
    ):
        self.windows: tuple[WindowSpec, ...] = tuple(windows)
        _validate_windows(self.windows)
        self.tz = timezone(timedelta(minutes=utc_offset_minutes))

    @classmethod
    def from_settings(cls, schedule) -> "MomentClassifier":
        """Build from config.settings.ScheduleConfig; empty window list means defaults."""
        windows = (
            tuple(WindowSpec.from_config(w) for w in schedule.windows)
            if schedule.windows else DEFAULT_WINDOWS
        )
        return cls(windows=windows, utc_offset_minutes=schedule.utc_offset_minutes)

    def localize(self, now: datetime) -> datetime:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.tz)

    def find_window(self, hour: int, minute: int) -> Optional[WindowSpec]:
        for spec in self.windows:
            if spec.contains(hour, minute):
                return spec
        return None

    def classify(self, now: datetime) -> Optional[ClassifiedMoment]:
        local = self.localize(now)
        spec = self.find_window(local.hour, local.minute)
        if spec is None:
            return None

        return ClassifiedMoment(
            moment=Moment(
                day_class=DayClass.from_weekday(local.weekday()),
                time_window=spec.time_window,
            ),
            metadata=MomentMetadata(
                skip_odds=spec.skip_odds,
                is_last_instant=spec.is_last_instant(local.hour, local.minute),
            ),
        )


def seconds_until_next_minute(now: datetime) -> float:
    """Duration from `now` to the start of the next wall-clock minute."""
    floor = now.replace(second=0, microsecond=0)
    return ((floor + timedelta(minutes=1)) - now).total_seconds()

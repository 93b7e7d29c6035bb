"""
Core data models for the moment notifier.
These are the universal types shared across all modules.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ──────────────────────────────────────────────────────────────
#  Enums
# ──────────────────────────────────────────────────────────────

class TimeWindow(str, Enum):
    MORNING = "morning"
    MID_DAY = "mid_day"
    AFTER_WORK = "after_work"
    EVENING = "evening"


class DayClass(str, Enum):
    WORK_DAY = "work_day"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayClass":
        """Map a datetime.weekday() value (Mon=0 … Sun=6) to its day class."""
        if weekday == 4:
            return cls.FRIDAY
        if weekday == 5:
            return cls.SATURDAY
        if weekday == 6:
            return cls.SUNDAY
        return cls.WORK_DAY


class ToggleOutcome(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    ERROR = "error"


# ──────────────────────────────────────────────────────────────
#  Moment: a recurring notification occasion
# ──────────────────────────────────────────────────────────────

class Moment(BaseModel):
    """
    A (day class, time window) pair.

    Two timestamps landing in the same pair produce equal moments even when
    the exact minute differs; this is the unit of deduplication.
    """
    model_config = ConfigDict(frozen=True)

    day_class: DayClass
    time_window: TimeWindow

    @property
    def key(self) -> str:
        return f"{self.day_class.value}.{self.time_window.value}"

    def __str__(self) -> str:
        return self.key


class MomentMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    skip_odds: float = Field(ge=0.0, le=1.0)
    is_last_instant: bool = False


class ClassifiedMoment(BaseModel):
    """Result of classifying an instant that falls inside a window."""
    model_config = ConfigDict(frozen=True)

    moment: Moment
    metadata: MomentMetadata


# ──────────────────────────────────────────────────────────────
#  Subscription: a destination that receives moment messages
# ──────────────────────────────────────────────────────────────

class Destination(BaseModel):
    """Where a subscription delivers: a guild (scope) plus a channel in it."""
    model_config = ConfigDict(frozen=True)

    guild_id: str
    channel_id: str

    @field_validator("guild_id", "channel_id", mode="before")
    @classmethod
    def _coerce_snowflake(cls, value: Any) -> str:
        # Discord ids arrive as ints from some clients and as strings from others
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("guild_id", "channel_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("destination ids may not be empty")
        return value.strip()

    def __str__(self) -> str:
        return f"{self.guild_id}/{self.channel_id}"


class Subscription(BaseModel):
    destination: Destination
    last_moment: Optional[Moment] = None
    created_at: datetime = Field(default_factory=_utcnow)

    def to_record(self) -> dict[str, Any]:
        """Flat record shape shared by the file and SQL backends."""
        return {
            "guild_id": self.destination.guild_id,
            "channel_id": self.destination.channel_id,
            "last_moment": self.last_moment.model_dump(mode="json") if self.last_moment else None,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Subscription":
        last = record.get("last_moment")
        data: dict[str, Any] = {
            "destination": Destination(
                guild_id=record["guild_id"], channel_id=record["channel_id"],
            ),
            "last_moment": Moment(**last) if last else None,
        }
        if record.get("created_at"):
            data["created_at"] = record["created_at"]
        return cls(**data)


class ToggleResult(BaseModel):
    outcome: ToggleOutcome
    subscription: Optional[Subscription] = None
    error: str = ""

    @property
    def subscribed(self) -> bool:
        return self.outcome == ToggleOutcome.ADDED

"""Moment classification, skip policy and display texts."""
from moments.classifier import (
    DEFAULT_WINDOWS,
    MomentClassifier,
    WindowSpec,
    seconds_until_next_minute,
)
from moments.messages import MomentTexts, SHARED_SLEEP_TEXT, display_text
from moments.policy import ClockSeededRandom, FixedRandom, RandomSource, SkipPolicy

__all__ = [
    "MomentClassifier", "WindowSpec", "DEFAULT_WINDOWS", "seconds_until_next_minute",
    "MomentTexts", "SHARED_SLEEP_TEXT", "display_text",
    "SkipPolicy", "RandomSource", "ClockSeededRandom", "FixedRandom",
]

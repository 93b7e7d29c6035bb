"""
Skip policy: decides whether a delivery attempt is randomly suppressed.

The random source sits behind a one-method capability so tests can pass a
deterministic one:

    class RandomSource(Protocol):
        def draw_bernoulli(self, probability: float) -> bool: ...
"""
from __future__ import annotations

import random
import time
from typing import Protocol


def _check_probability(probability: float) -> None:
    if not 0.0 <= probability <= 1.0:
        raise ValueError(f"probability must be within [0, 1], got {probability}")


class RandomSource(Protocol):
    def draw_bernoulli(self, probability: float) -> bool:
        ...


class ClockSeededRandom:
    """
    Reseeds from a high-resolution clock on every draw.

    Each (tick, destination) draw gets its own generator, so outcomes are
    not correlated across destinations within a tick.
    """

    def draw_bernoulli(self, probability: float) -> bool:
        _check_probability(probability)
        seed = time.perf_counter_ns() ^ time.time_ns()
        return random.Random(seed).random() < probability


class FixedRandom:
    """Always returns the same outcome. For tests and dry runs."""

    def __init__(self, outcome: bool):
        self.outcome = outcome
        self.draws = 0

    def draw_bernoulli(self, probability: float) -> bool:
        _check_probability(probability)
        self.draws += 1
        return self.outcome


class SkipPolicy:
    """
    Probabilistic skip with a forced-delivery escape hatch.

    - already sent this occurrence → suppress (dedup wins, no draw)
    - last instant of the window   → never suppress (no draw)
    - otherwise                    → suppress with probability odds_to_skip
    """

    def __init__(self, source: RandomSource | None = None):
        self.source: RandomSource = source or ClockSeededRandom()

    def should_suppress(
        self,
        odds_to_skip: float,
        is_last_instant: bool,
        already_sent_this_occurrence: bool = False,
    ) -> bool:
        if already_sent_this_occurrence:
            return True
        if is_last_instant:
            return False
        return self.source.draw_bernoulli(odds_to_skip)

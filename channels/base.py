"""
Channel Adapters: Base infrastructure for delivering moment messages.

Provides:
- ChannelError: structured error hierarchy
- TokenBucketRateLimiter: shared send budget that also honours a server hold-off
- DestinationBreaker / BreakerBoard: per-destination failure tracking, so a
  dead channel never blocks delivery to a healthy one
- DeliveryStats: outcome counts and latency for /health
- ChannelAdapter: abstract base wrapping every send

A send makes exactly one attempt. The dispatch loop retries on a later
minute of the same window instead, since last_moment only advances on
success.
"""
from __future__ import annotations

import abc
import asyncio
import time
from collections import Counter
from typing import Any, Callable, Optional

import structlog

from models.schemas import Destination

logger = structlog.get_logger()

SEND_STATUSES = ("sent", "failed", "rate_limited", "circuit_open")


# ══════════════════════════════════════════════════════════════
#  ERRORS
# ══════════════════════════════════════════════════════════════

class ChannelError(Exception):
    """Base exception for all channel operations."""

    def __init__(self, message: str, channel: str = "", retryable: bool = False):
        self.channel = channel
        self.retryable = retryable
        super().__init__(message)


class DeliveryError(ChannelError):
    pass


class RateLimitedError(ChannelError):
    def __init__(self, channel: str = "", retry_after: float = 0.0):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded for {channel}", channel, retryable=True)


# ══════════════════════════════════════════════════════════════
#  SEND BUDGET
# ══════════════════════════════════════════════════════════════

class TokenBucketRateLimiter:
    """
    Token bucket shared by every destination of one bot token.

    `hold_off(seconds)` empties the bucket until the server's retry_after has
    passed, so one 429 slows the whole tick instead of hammering the API.
    """

    def __init__(self, rate: float = 5.0, burst: int = 5,
                 clock: Callable[[], float] = time.monotonic):
        self.rate = max(rate, 0.001)
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._stamp = clock()
        self._resume_at = 0.0
        self._lock = asyncio.Lock()

    def _take(self) -> float:
        """Take a token if one is available; otherwise return seconds to wait."""
        now = self._clock()
        if now < self._resume_at:
            return self._resume_at - now
        self._tokens = min(self.burst, self._tokens + (now - self._stamp) * self.rate)
        self._stamp = now
        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return 0.0
        return (1.0 - self._tokens) / self.rate

    async def acquire(self, timeout: float = 5.0) -> bool:
        deadline = self._clock() + timeout
        while True:
            async with self._lock:
                wait = self._take()
            if wait <= 0:
                return True
            remaining = deadline - self._clock()
            if remaining <= 0 or wait > remaining:
                return False
            await asyncio.sleep(wait)

    def hold_off(self, seconds: float) -> None:
        if seconds <= 0:
            return
        self._resume_at = max(self._resume_at, self._clock() + seconds)
        self._tokens = 0.0
        logger.info("send_budget_hold_off", seconds=seconds)


# ══════════════════════════════════════════════════════════════
#  PER-DESTINATION BREAKERS
# ══════════════════════════════════════════════════════════════

class DestinationBreaker:
    """
    Consecutive-failure breaker for one channel.

    After `threshold` failures in a row the destination is skipped until
    `recovery_s` has passed; then one attempt is let through. Success closes
    it, failure reopens it for another `recovery_s`.
    """

    def __init__(self, threshold: int, recovery_s: float, clock: Callable[[], float]):
        self.threshold = threshold
        self.recovery_s = recovery_s
        self._clock = clock
        self.failures = 0
        self._open_until: Optional[float] = None

    @property
    def state(self) -> str:
        if self._open_until is None:
            return "closed"
        return "open" if self._clock() < self._open_until else "half_open"

    def allows(self) -> bool:
        return self.state != "open"

    def record_success(self) -> None:
        self.failures = 0
        self._open_until = None

    def record_failure(self) -> bool:
        """Count a failure; True when this failure opened the breaker."""
        self.failures += 1
        if self._open_until is not None or self.failures >= self.threshold:
            self._open_until = self._clock() + self.recovery_s
            return True
        return False


class BreakerBoard:
    """Lazily created DestinationBreaker per Destination."""

    def __init__(self, threshold: int = 5, recovery_s: float = 300.0,
                 clock: Callable[[], float] = time.monotonic):
        self.threshold = threshold
        self.recovery_s = recovery_s
        self._clock = clock
        self._breakers: dict[Destination, DestinationBreaker] = {}

    def get(self, destination: Destination) -> DestinationBreaker:
        breaker = self._breakers.get(destination)
        if breaker is None:
            breaker = DestinationBreaker(self.threshold, self.recovery_s, self._clock)
            self._breakers[destination] = breaker
        return breaker

    def allows(self, destination: Destination) -> bool:
        breaker = self._breakers.get(destination)
        return breaker is None or breaker.allows()

    def record_success(self, destination: Destination) -> None:
        # Healthy destinations are not tracked at all
        self._breakers.pop(destination, None)

    def record_failure(self, destination: Destination) -> None:
        breaker = self.get(destination)
        if breaker.record_failure():
            logger.warning("destination_breaker_opened", destination=str(destination),
                           failures=breaker.failures, recovery_s=self.recovery_s)

    def open_destinations(self) -> list[str]:
        return sorted(str(d) for d, b in self._breakers.items() if b.state == "open")

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "tracked": len(self._breakers),
            "open": self.open_destinations(),
        }


# ══════════════════════════════════════════════════════════════
#  DELIVERY STATS
# ══════════════════════════════════════════════════════════════

class DeliveryStats:
    """Send outcomes by status, plus a rolling latency window for sent messages."""

    def __init__(self, channel: str, window: int = 200):
        self.channel = channel
        self.outcomes: Counter[str] = Counter()
        self._window = window
        self._latencies: list[float] = []
        self.last_error: Optional[str] = None

    def record(self, status: str, latency_ms: float = 0.0, error: Optional[str] = None) -> None:
        self.outcomes[status] += 1
        if status == "sent":
            self._latencies.append(latency_ms)
            del self._latencies[:-self._window]
        elif error:
            self.last_error = error

    @property
    def avg_latency_ms(self) -> float:
        return sum(self._latencies) / len(self._latencies) if self._latencies else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel,
            **{status: self.outcomes[status] for status in SEND_STATUSES},
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "last_error": self.last_error,
        }


# ══════════════════════════════════════════════════════════════
#  CHANNEL ADAPTER: Abstract Base
# ══════════════════════════════════════════════════════════════

class ChannelAdapter(abc.ABC):
    """
    Base class for channel adapters.

    Subclasses implement _do_send. send_message never raises: it returns a
    result dict whose "status" is one of SEND_STATUSES.
    """

    channel_name: str = ""

    def __init__(self):
        self._initialized = False
        self._config: dict[str, Any] = {}
        self._breakers = BreakerBoard()
        self._rate_limiter: Optional[TokenBucketRateLimiter] = None
        self._stats = DeliveryStats(self.channel_name)

    # ── Abstract hooks ────────────────────────────────────────

    @abc.abstractmethod
    async def _do_send(self, destination: Destination, title: str, accent_color: int) -> dict[str, Any]:
        ...

    @abc.abstractmethod
    async def initialize(self, config: dict[str, Any]) -> None:
        ...

    # ── Public send ───────────────────────────────────────────

    async def send_message(self, destination: Destination, title: str, accent_color: int) -> dict[str, Any]:
        if not self._breakers.allows(destination):
            return self._finish(destination, {"status": "circuit_open"}, None)

        if self._rate_limiter and not await self._rate_limiter.acquire(timeout=10.0):
            return self._finish(destination, {"status": "rate_limited"}, None)

        start = time.monotonic()
        try:
            result = await self._do_send(destination, title, accent_color)
        except RateLimitedError as e:
            if self._rate_limiter:
                self._rate_limiter.hold_off(e.retry_after)
            result = {"status": "rate_limited", "error": str(e), "retry_after": e.retry_after}
        except Exception as e:
            result = {"status": "failed", "error": str(e)}
        return self._finish(destination, result, start)

    def _finish(self, destination: Destination, result: dict[str, Any],
                start: Optional[float]) -> dict[str, Any]:
        status = result.get("status", "failed")
        latency = (time.monotonic() - start) * 1000 if start is not None else 0.0
        if start is not None:
            result["latency_ms"] = round(latency, 1)

        # Only this destination's own outcomes move its breaker
        if status == "sent":
            self._breakers.record_success(destination)
        elif status == "failed":
            self._breakers.record_failure(destination)

        self._stats.record(status, latency, result.get("error"))
        return result

    # ── Health ────────────────────────────────────────────────

    async def health_check(self) -> dict[str, Any]:
        return {
            "channel": self.channel_name,
            "initialized": self._initialized,
            "breakers": self._breakers.stats,
            "deliveries": self._stats.to_dict(),
        }

    async def shutdown(self) -> None:
        pass

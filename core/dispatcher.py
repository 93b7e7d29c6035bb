"""
Dispatch Loop: once per minute, deliver the current moment to every subscriber.

Tick flow:
1. Start fetching subscriptions while the instant is classified
2. Outside every window → discard the fetch, nothing else happens
3. Per subscription, in order:
   dedup (last_moment == moment) → skip policy → send → persist last_moment
4. Failures are contained to their subscription (or to the tick for fetch)

last_moment only advances after a successful send, so a failed delivery is
retried on the next minute of the same window.
"""
from __future__ import annotations

import asyncio
import structlog
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from channels.base import ChannelAdapter, ChannelError
from database.store_base import BaseSubscriptionStore, StoreWriteError
from models.schemas import Moment, Subscription
from moments.classifier import MomentClassifier, seconds_until_next_minute
from moments.messages import MomentTexts
from moments.policy import SkipPolicy

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TickReport:
    """Counts for a single tick."""
    classified: bool = False
    moment: Optional[str] = None
    subscriptions: int = 0
    deduplicated: int = 0
    suppressed: int = 0
    delivered: int = 0
    failed: int = 0
    persist_failed: int = 0
    aborted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class DispatchLoop:
    """
    Background task that ticks at the top of every minute.

    The loop is the only writer of last_moment; the toggle command only
    inserts and deletes whole subscriptions.
    """

    def __init__(
        self,
        store: BaseSubscriptionStore,
        channel: ChannelAdapter,
        classifier: Optional[MomentClassifier] = None,
        policy: Optional[SkipPolicy] = None,
        clock: Callable[[], datetime] = _utcnow,
        accent_color: int = 0xFFFFFF,
        texts: Optional[MomentTexts] = None,
    ):
        self.store = store
        self.channel = channel
        self.classifier = classifier or MomentClassifier()
        self.policy = policy or SkipPolicy()
        self.clock = clock
        self.accent_color = accent_color
        self.texts = texts or MomentTexts()
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.last_report: Optional[TickReport] = None

    @property
    def running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start the dispatch loop as a background task."""
        self._running = True
        self._task = asyncio.create_task(self._tick_loop(), name="dispatch_loop")
        logger.info("dispatch_loop_started", accent_color=self.accent_color)

    async def stop(self) -> None:
        """Stop the loop; an in-flight send is abandoned."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("dispatch_loop_stopped")

    async def _tick_loop(self) -> None:
        while self._running:
            now = self.clock()
            sleep_for = seconds_until_next_minute(now)
            try:
                self.last_report = await self.run_tick(now)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("dispatch_tick_error", error=str(e))

            await asyncio.sleep(sleep_for)

    # ── One tick ──────────────────────────────────────────────

    async def run_tick(self, now: datetime) -> TickReport:
        report = TickReport()
        fetch = asyncio.create_task(self.store.list_all())

        classified = self.classifier.classify(now)
        if classified is None:
            await asyncio.gather(fetch, return_exceptions=True)
            return report

        moment = classified.moment
        report.classified = True
        report.moment = moment.key

        try:
            subscriptions = await fetch
        except Exception as e:
            logger.error("subscriptions_fetch_failed", moment=moment.key, error=str(e))
            report.aborted = True
            return report

        report.subscriptions = len(subscriptions)
        title = self.texts.text_for(moment)

        for subscription in subscriptions:
            if subscription.last_moment == moment:
                report.deduplicated += 1
                continue

            if self.policy.should_suppress(
                classified.metadata.skip_odds,
                classified.metadata.is_last_instant,
            ):
                report.suppressed += 1
                continue

            if not await self._deliver(subscription, title):
                report.failed += 1
                continue
            report.delivered += 1

            if not await self._persist(subscription, moment):
                report.persist_failed += 1

        if report.delivered or report.failed or report.persist_failed:
            logger.info("dispatch_tick_complete", **report.to_dict())
        return report

    async def _deliver(self, subscription: Subscription, title: str) -> bool:
        destination = subscription.destination
        try:
            result = await self.channel.send_message(destination, title, self.accent_color)
        except ChannelError as e:
            logger.error("moment_delivery_failed", destination=str(destination), error=str(e))
            return False

        status = result.get("status")
        if status != "sent":
            logger.error(
                "moment_delivery_failed",
                destination=str(destination),
                status=status,
                error=result.get("error", ""),
            )
            return False

        logger.info("moment_delivered", destination=str(destination), title=title)
        return True

    async def _persist(self, subscription: Subscription, moment: Moment) -> bool:
        destination = subscription.destination
        try:
            updated = await self.store.update_last_moment(destination, moment)
        except StoreWriteError as e:
            logger.error("last_moment_update_failed",
                         destination=str(destination), moment=moment.key, error=str(e))
            return False

        if updated:
            logger.info("subscription_updated", destination=str(destination), moment=moment.key)
        else:
            logger.warning("nothing_to_update", destination=str(destination), moment=moment.key)
        return True

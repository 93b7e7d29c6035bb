"""
InMemorySubscriptionStore: Dict-backed store for development and testing.

Features:
  - Zero dependencies (no database, no Redis)
  - Full interface compatibility with SqlSubscriptionStore
  - Safe under a single asyncio event loop (no awaits inside mutations)
  - All data lost on process restart

Best for: local development, unit tests, quick prototyping.
"""
from __future__ import annotations

import structlog
from typing import Optional

from database.store_base import BaseSubscriptionStore, StoreWriteError
from models.schemas import Destination, Moment, Subscription

logger = structlog.get_logger()


def _key(destination: Destination) -> str:
    return f"{destination.guild_id}:{destination.channel_id}"


class InMemorySubscriptionStore(BaseSubscriptionStore):
    """
    Full-featured in-memory store with the same interface as SqlSubscriptionStore.
    Records are kept as plain dicts (the shared record shape), not models.
    """

    def __init__(self):
        self._subscriptions: dict[str, dict] = {}      # "guild:channel" → record
        logger.info("inmemory_store_initialized")

    async def list_all(self) -> list[Subscription]:
        return [Subscription.from_record(r) for r in self._subscriptions.values()]

    async def get(self, destination: Destination) -> Optional[Subscription]:
        record = self._subscriptions.get(_key(destination))
        return Subscription.from_record(record) if record else None

    async def insert(self, subscription: Subscription) -> None:
        key = _key(subscription.destination)
        if key in self._subscriptions:
            raise StoreWriteError(
                f"subscription already exists for {subscription.destination}",
                backend="memory",
            )
        self._subscriptions[key] = subscription.to_record()

    async def delete_matching(self, destination: Destination) -> int:
        removed = self._subscriptions.pop(_key(destination), None)
        return 1 if removed is not None else 0

    async def update_last_moment(self, destination: Destination, moment: Moment) -> bool:
        record = self._subscriptions.get(_key(destination))
        if record is None:
            return False
        record["last_moment"] = moment.model_dump(mode="json")
        return True

    # ── Stats (for debugging) ─────────────────────────────

    def stats(self) -> dict[str, int]:
        return {
            "subscriptions": len(self._subscriptions),
            "notified": sum(1 for r in self._subscriptions.values() if r.get("last_moment")),
        }

"""
Subscription Service: the subscribe/unsubscribe toggle.

Invoking the toggle on a channel that is subscribed removes it, on one that
is not adds it. Store failures come back as an error result, never raised,
so the command handler can always answer the user.
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

from database.store_base import BaseSubscriptionStore, StoreError
from models.schemas import Destination, Subscription, ToggleOutcome, ToggleResult

logger = structlog.get_logger()

MISSING_GUILD_ERROR = "No guild id provided"


class SubscriptionService:

    def __init__(self, store: BaseSubscriptionStore):
        self.store = store

    async def toggle(self, guild_id: Optional[Any], channel_id: Any) -> ToggleResult:
        if guild_id is None or str(guild_id).strip() == "":
            return ToggleResult(outcome=ToggleOutcome.ERROR, error=MISSING_GUILD_ERROR)

        try:
            destination = Destination(guild_id=guild_id, channel_id=channel_id)
        except ValueError as e:
            return ToggleResult(outcome=ToggleOutcome.ERROR, error=str(e))

        try:
            removed = await self.store.delete_matching(destination)
        except StoreError as e:
            logger.error("subscription_remove_failed", destination=str(destination), error=str(e))
            return ToggleResult(outcome=ToggleOutcome.ERROR, error=f"Error removing: {e}")

        if removed > 0:
            logger.info("subscription_removed", destination=str(destination))
            return ToggleResult(outcome=ToggleOutcome.REMOVED)

        subscription = Subscription(destination=destination)
        try:
            await self.store.insert(subscription)
        except StoreError as e:
            logger.error("subscription_insert_failed", destination=str(destination), error=str(e))
            return ToggleResult(outcome=ToggleOutcome.ERROR, error=f"Error inserting: {e}")

        logger.info("subscription_added", destination=str(destination))
        return ToggleResult(outcome=ToggleOutcome.ADDED, subscription=subscription)


def format_confirmation(
    subscribed: bool,
    channel_name: Optional[str] = None,
    guild_name: Optional[str] = None,
) -> str:
    verb = "Subscribed to" if subscribed else "Unsubscribed from"
    return f"{verb} {channel_name or 'this channel'} in {guild_name or 'this guild'}"

"""
Discord Channel Adapter: posts moment messages as embeds.

Provides:
- Outbound: one embed per send, title = moment text, colour = accent
- Name resolution for confirmation texts (channel and guild names)
- Rate limiting sized to Discord's per-route budget
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

import httpx

from channels.base import (
    BreakerBoard, ChannelAdapter, ChannelError, DeliveryError, TokenBucketRateLimiter,
)
from channels.discord_client import DEFAULT_API_BASE, DiscordClient
from models.schemas import Destination

logger = structlog.get_logger()

# Discord rejects embed titles longer than this
EMBED_TITLE_LIMIT = 256


class DiscordAdapter(ChannelAdapter):
    """Discord REST adapter for the dispatch loop and the toggle command."""

    channel_name = "discord"

    def __init__(self, client: Optional[DiscordClient] = None):
        super().__init__()
        self._client = client

    @property
    def client(self) -> Optional[DiscordClient]:
        return self._client

    async def initialize(self, config: dict[str, Any]) -> None:
        self._config = config
        if self._client is None:
            token = config.get("token", "")
            if not token:
                logger.warning("discord_token_missing")
            self._client = DiscordClient(
                token=token,
                application_id=config.get("application_id", ""),
                api_base=config.get("api_base", DEFAULT_API_BASE),
            )
        rate = config.get("rate_per_second", 5)
        if rate and rate > 0:
            self._rate_limiter = TokenBucketRateLimiter(rate=rate, burst=config.get("burst", 5))
        self._breakers = BreakerBoard(
            threshold=config.get("breaker_threshold", 5),
            recovery_s=config.get("breaker_recovery_s", 300.0),
        )
        self._initialized = True

    # ── Send ──────────────────────────────────────────────────

    async def _do_send(self, destination: Destination, title: str, accent_color: int) -> dict[str, Any]:
        if self._client is None:
            raise DeliveryError("Discord client not initialized", self.channel_name)

        embed = {"title": title[:EMBED_TITLE_LIMIT], "color": accent_color}
        message = await self._client.create_message(destination.channel_id, embeds=[embed])
        return {"status": "sent", "channel_message_id": (message or {}).get("id", "")}

    # ── Names ─────────────────────────────────────────────────

    async def resolve_names(self, destination: Destination) -> tuple[Optional[str], Optional[str]]:
        """Return (channel name, guild name); None for anything that can't be looked up."""
        if self._client is None:
            return None, None

        channel_name: Optional[str] = None
        guild_name: Optional[str] = None
        try:
            channel = await self._client.get_channel(destination.channel_id)
            channel_name = (channel or {}).get("name") or None
        except (httpx.HTTPError, ChannelError) as e:
            logger.debug("discord_channel_lookup_failed", channel_id=destination.channel_id, error=str(e))
        try:
            guild = await self._client.get_guild(destination.guild_id)
            guild_name = (guild or {}).get("name") or None
        except (httpx.HTTPError, ChannelError) as e:
            logger.debug("discord_guild_lookup_failed", guild_id=destination.guild_id, error=str(e))
        return channel_name, guild_name

    async def shutdown(self) -> None:
        if self._client is not None:
            await self._client.close()

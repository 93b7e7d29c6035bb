"""
Discord REST Client: the HTTP half of the Discord API.

Only what the notifier needs:
- create_message()            post an embed into a channel
- get_channel() / get_guild() names for confirmation texts
- bulk_overwrite_commands()   register application (slash) commands

The gateway (websocket presence, message events) is not used.

API Docs: https://discord.com/developers/docs/reference
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from channels.base import RateLimitedError

logger = structlog.get_logger()

DEFAULT_API_BASE = "https://discord.com/api/v10"


class DiscordClient:
    """Bot-token authenticated Discord REST client."""

    def __init__(
        self,
        token: str,
        application_id: str = "",
        api_base: str = DEFAULT_API_BASE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.application_id = application_id
        self.api_base = api_base.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.api_base,
                headers={
                    "Authorization": f"Bot {self.token}",
                    "User-Agent": "DiscordBot (moment-notifier, 1.0)",
                },
                timeout=httpx.Timeout(30.0, connect=10.0),
                transport=self._transport,
            )
        return self._client

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(min=1, max=5),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _request(self, method: str, path: str, **kwargs) -> Any:
        client = await self._get_client()
        resp = await client.request(method, path, **kwargs)

        if resp.status_code == 429:
            retry_after = 0.0
            try:
                retry_after = float(resp.json().get("retry_after", 0.0))
            except (ValueError, AttributeError):
                pass
            logger.warning("discord_rate_limited", path=path, retry_after=retry_after)
            raise RateLimitedError("discord", retry_after=retry_after)

        if resp.status_code >= 400:
            logger.error(
                "discord_api_error",
                status=resp.status_code,
                body=resp.text[:500],
                path=path,
            )
            resp.raise_for_status()

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # ── Messages ──────────────────────────────────────────────

    async def create_message(
        self, channel_id: str, content: str = "", embeds: Optional[list[dict[str, Any]]] = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if content:
            payload["content"] = content
        if embeds:
            payload["embeds"] = embeds
        return await self._request("POST", f"/channels/{channel_id}/messages", json=payload)

    # ── Lookups ───────────────────────────────────────────────

    async def get_channel(self, channel_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/channels/{channel_id}")

    async def get_guild(self, guild_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/guilds/{guild_id}")

    # ── Application commands ──────────────────────────────────

    async def bulk_overwrite_commands(
        self, commands: list[dict[str, Any]], guild_id: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        if not self.application_id:
            raise ValueError("application_id is required to register commands")
        if guild_id:
            path = f"/applications/{self.application_id}/guilds/{guild_id}/commands"
        else:
            path = f"/applications/{self.application_id}/commands"
        result = await self._request("PUT", path, json=commands)
        logger.info("discord_commands_registered",
                    count=len(result or []), guild_id=guild_id or "global")
        return result or []

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

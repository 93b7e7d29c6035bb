"""
Discord HTTP Interactions: signature verification and command handling.

Discord POSTs every interaction to the configured endpoint and requires:
- Ed25519 verification of X-Signature-Ed25519 over timestamp + raw body
- a PONG answer to PING
- an answer within 3 seconds for application commands

Docs: https://discord.com/developers/docs/interactions/receiving-and-responding
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from channels.discord_adapter import DiscordAdapter
from core.subscriptions import SubscriptionService, format_confirmation
from models.schemas import Destination, ToggleOutcome

logger = structlog.get_logger()

# Interaction types
PING = 1
APPLICATION_COMMAND = 2

# Interaction callback types
PONG = 1
CHANNEL_MESSAGE_WITH_SOURCE = 4

SUBSCRIBE_COMMAND: dict[str, Any] = {
    "name": "subscribe",
    "description": "Subscribe or unsubscribe this channel from moment messages",
    "type": 1,
    "dm_permission": False,
}


def verify_signature(public_key_hex: str, signature_hex: str, timestamp: str, body: bytes) -> bool:
    """Check an interaction request against the application's public key."""
    if not public_key_hex or not signature_hex or not timestamp:
        return False
    try:
        public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
        public_key.verify(bytes.fromhex(signature_hex), timestamp.encode() + body)
    except (InvalidSignature, ValueError):
        return False
    return True


def embed_response(title: str, accent_color: int) -> dict[str, Any]:
    return {
        "type": CHANNEL_MESSAGE_WITH_SOURCE,
        "data": {"embeds": [{"title": title, "color": accent_color}]},
    }


async def handle_interaction(
    payload: dict[str, Any],
    service: SubscriptionService,
    adapter: Optional[DiscordAdapter],
    accent_color: int,
) -> dict[str, Any]:
    """Answer a verified interaction payload."""
    kind = payload.get("type")
    if kind == PING:
        return {"type": PONG}

    if kind != APPLICATION_COMMAND:
        logger.warning("interaction_type_unsupported", type=kind)
        return embed_response("Unsupported interaction", accent_color)

    name = (payload.get("data") or {}).get("name", "")
    if name != SUBSCRIBE_COMMAND["name"]:
        logger.warning("interaction_command_unknown", command=name)
        return embed_response(f"Unknown command: {name}", accent_color)

    guild_id = payload.get("guild_id")
    channel_id = payload.get("channel_id") or (payload.get("channel") or {}).get("id")
    result = await service.toggle(guild_id, channel_id)

    if result.outcome == ToggleOutcome.ERROR:
        logger.warning("subscribe_command_failed", guild_id=guild_id,
                       channel_id=channel_id, error=result.error)
        return embed_response(result.error, accent_color)

    channel_name, guild_name = None, None
    if adapter is not None:
        channel_name, guild_name = await adapter.resolve_names(
            Destination(guild_id=guild_id, channel_id=channel_id)
        )
    text = format_confirmation(result.subscribed, channel_name, guild_name)
    logger.info("subscribe_command_handled", guild_id=guild_id,
                channel_id=channel_id, outcome=result.outcome.value)
    return embed_response(text, accent_color)

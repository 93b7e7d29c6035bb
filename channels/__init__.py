"""Channel adapters for delivering moment messages."""
from channels.base import (
    ChannelAdapter,
    ChannelError,
    DeliveryError,
    RateLimitedError,
    TokenBucketRateLimiter,
    DestinationBreaker,
    BreakerBoard,
    DeliveryStats,
)
from channels.discord_client import DiscordClient
from channels.discord_adapter import DiscordAdapter

__all__ = [
    "ChannelAdapter", "ChannelError", "DeliveryError", "RateLimitedError",
    "TokenBucketRateLimiter", "DestinationBreaker", "BreakerBoard", "DeliveryStats",
    "DiscordClient", "DiscordAdapter",
]

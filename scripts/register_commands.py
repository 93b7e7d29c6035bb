#!/usr/bin/env python3
"""
Register Discord application commands (the /subscribe toggle).

Usage:
    # Globally (may take up to an hour to show up):
    python scripts/register_commands.py

    # Per guild (instant), overriding discord.command_guild_ids:
    python scripts/register_commands.py --guild 123456789012345678
"""
import asyncio
import os
import sys
import argparse

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()


async def register(guild_ids: list[str]) -> int:
    from api.interactions import SUBSCRIBE_COMMAND
    from channels.discord_client import DiscordClient
    from config.settings import load_settings

    settings = load_settings()
    if not settings.discord.token or not settings.discord.application_id:
        print("discord.token and discord.application_id must be set")
        return 1

    client = DiscordClient(
        token=settings.discord.token,
        application_id=settings.discord.application_id,
        api_base=settings.discord.api_base,
    )
    targets = guild_ids or settings.discord.command_guild_ids or [None]
    try:
        for guild_id in targets:
            registered = await client.bulk_overwrite_commands([SUBSCRIBE_COMMAND], guild_id=guild_id)
            names = ", ".join(c.get("name", "?") for c in registered)
            print(f"{guild_id or 'global'}: {names or '(none)'}")
    finally:
        await client.close()
    return 0


def main():
    parser = argparse.ArgumentParser(description="Register Discord application commands")
    parser.add_argument("--guild", action="append", default=[],
                        help="Guild id to register in (repeatable)")
    args = parser.parse_args()
    sys.exit(asyncio.run(register(args.guild)))


if __name__ == "__main__":
    main()

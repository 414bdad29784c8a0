"""Moderation action log channel."""

from __future__ import annotations

import logging
from typing import Optional

import discord

logger = logging.getLogger(__name__)


class ModerationLog:
    """Mirrors moderation actions into the configured log channel."""

    def __init__(self, channel_id: Optional[int]):
        self.channel_id = channel_id

    async def record(self, guild: Optional[discord.Guild], summary: str) -> None:
        logger.info("[modlog] %s", summary)
        if not self.channel_id or guild is None:
            return
        channel = guild.get_channel(self.channel_id)
        if channel is None:
            logger.warning("Log channel %s not found", self.channel_id)
            return
        embed = discord.Embed(description=summary, timestamp=discord.utils.utcnow())
        try:
            await channel.send(embed=embed)
        except discord.HTTPException:
            logger.exception("Failed to post to log channel %s", self.channel_id)

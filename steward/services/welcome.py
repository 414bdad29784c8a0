"""Greetings for members joining the server."""

from __future__ import annotations

import logging
from typing import Optional

import discord

logger = logging.getLogger(__name__)

WELCOME_DM = "Welcome aboard! If you have any questions, feel free to ask."


class WelcomeGreeter:
    def __init__(self, channel_id: Optional[int]):
        self.channel_id = channel_id

    async def greet(self, member: discord.Member) -> None:
        if member.bot:
            return
        if self.channel_id:
            channel = member.guild.get_channel(self.channel_id)
            if channel is None:
                logger.warning("Welcome channel %s not found", self.channel_id)
            else:
                try:
                    await channel.send(f"Welcome {member.mention} to the server!")
                except discord.HTTPException:
                    logger.exception("Failed to post welcome for %s", member.id)
        try:
            await member.send(WELCOME_DM)
        except discord.Forbidden:
            logger.warning("Member %s does not accept direct messages", member.id)
        except discord.HTTPException:
            logger.exception("Failed to DM welcome to %s", member.id)

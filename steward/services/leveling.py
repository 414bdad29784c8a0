"""Message-driven XP and level tracking."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import discord

from .store import LEVELS, CounterStore, LevelRecord

logger = logging.getLogger(__name__)

XP_PER_MESSAGE = 10


def xp_threshold(level: int) -> int:
    """XP required to advance into ``level`` from the level below it."""

    return 5 * level**2 + 50 * level + 100


def apply_xp(record: LevelRecord, gain: int = XP_PER_MESSAGE) -> Tuple[LevelRecord, bool]:
    """Add ``gain`` XP and resolve at most one level-up.

    Leftover XP carries over but is not checked against the following
    threshold until the next event.
    """

    xp = record.xp + gain
    level = record.level
    needed = xp_threshold(level + 1)
    leveled_up = xp >= needed
    if leveled_up:
        level += 1
        xp -= needed
    return LevelRecord(xp=xp, level=level), leveled_up


class LevelingEngine:
    """Awards XP for every qualifying message and announces level-ups."""

    def __init__(self, store: CounterStore, xp_per_message: int = XP_PER_MESSAGE):
        self._store = store
        self._xp_per_message = xp_per_message

    async def handle_message(self, message: discord.Message) -> Optional[LevelRecord]:
        if message.author.bot:
            return None

        user_id = message.author.id
        async with self._store.lock(LEVELS, user_id):
            current = self._store.get(LEVELS, user_id)
            updated, leveled_up = apply_xp(current, self._xp_per_message)
            self._store.set(LEVELS, user_id, updated)

        if leveled_up:
            logger.info("User %s reached level %d", user_id, updated.level)
            await message.channel.send(
                f"{message.author.mention} congratulations, you reached level {updated.level}!"
            )
        return updated

    def progress(self, user_id: int | str) -> Tuple[LevelRecord, int]:
        """Current record and the XP target for the next level."""

        record = self._store.get(LEVELS, user_id)
        return record, xp_threshold(record.level + 1)

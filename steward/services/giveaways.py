"""Reaction-entry giveaways resolved by a delayed draw."""

from __future__ import annotations

import asyncio
import logging
import random
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

import discord

from ..errors import UsageError

logger = logging.getLogger(__name__)

ENTRY_EMOJI = "🎉"
GIVEAWAY_USAGE = "Usage: `giveaway <duration> <winners> <prize>`, e.g. `giveaway 1m 1 Awesome prize` (units: s, m, h, d)."

_DURATION_PATTERN = re.compile(r"(\d+)([smhd])")
_UNIT_MS = {
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}
# Longest delay a giveaway may run for
MAX_GIVEAWAY_MS = 365 * _UNIT_MS["d"]

T = TypeVar("T")


def parse_duration(text: Optional[str]) -> int:
    """Convert ``<integer><unit>`` into milliseconds; anything else yields 0."""

    match = _DURATION_PATTERN.fullmatch((text or "").strip())
    if not match:
        return 0
    amount, unit = match.groups()
    return int(amount) * _UNIT_MS[unit]


def draw_winners(participants: Sequence[T], count: int, rng: Optional[random.Random] = None) -> List[T]:
    """Pick up to ``count`` distinct entries uniformly without replacement."""

    chooser = rng or random
    pool = list(participants)
    winners: List[T] = []
    for _ in range(min(max(count, 0), len(pool))):
        winners.append(pool.pop(chooser.randrange(len(pool))))
    return winners


async def collect_participants(message: discord.Message) -> List[discord.abc.User]:
    """Distinct non-bot users currently reacting with the entry marker."""

    participants: Dict[int, discord.abc.User] = {}
    for reaction in message.reactions:
        if str(reaction.emoji) != ENTRY_EMOJI:
            continue
        async for user in reaction.users():
            if user.bot or user.id in participants:
                continue
            participants[user.id] = user
    return list(participants.values())


@dataclass
class GiveawayState:
    channel_id: int
    message_id: int
    prize: str
    winner_count: int
    delay_ms: int
    ends_at: datetime
    host_id: Optional[int] = None


@dataclass
class GiveawayHandle:
    """A running giveaway and the task that will draw it."""

    state: GiveawayState
    channel: discord.abc.Messageable
    task: Optional[asyncio.Task] = None
    wake: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()


class GiveawayScheduler:
    """Starts giveaways and draws their winners when the timer fires.

    Active giveaways are tracked by announcement message id until they are
    drawn or cancelled, so they can be ended early.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = discord.utils.utcnow,
    ):
        self._rng = rng
        self._clock = clock
        self._active: Dict[int, GiveawayHandle] = {}

    def active(self) -> List[GiveawayState]:
        return [handle.state for handle in self._active.values()]

    def get(self, message_id: int) -> Optional[GiveawayHandle]:
        return self._active.get(message_id)

    async def start(
        self,
        channel: discord.abc.Messageable,
        duration: str,
        winner_count: int,
        prize: str,
        host: Optional[discord.abc.User] = None,
    ) -> GiveawayHandle:
        delay_ms = parse_duration(duration)
        if delay_ms <= 0:
            raise UsageError(f"Invalid duration `{duration}`. {GIVEAWAY_USAGE}")
        if delay_ms > MAX_GIVEAWAY_MS:
            raise UsageError(f"Invalid duration `{duration}`: giveaways can run for at most 365d. {GIVEAWAY_USAGE}")
        if winner_count < 1:
            raise UsageError(f"The number of winners must be at least 1. {GIVEAWAY_USAGE}")

        ends_at = self._clock() + timedelta(milliseconds=delay_ms)
        embed = discord.Embed(
            title=f"{ENTRY_EMOJI} Giveaway!",
            description=(
                f"Prize: {prize}\n"
                f"Duration: {duration}\n"
                f"Drawing {winner_count} winner(s)!\n"
                f"React with {ENTRY_EMOJI} to enter."
            ),
            timestamp=ends_at,
        )
        message = await channel.send(embed=embed)
        try:
            await message.add_reaction(ENTRY_EMOJI)
        except discord.HTTPException:
            # No draw will run for this announcement
            await self._retract(message)
            raise

        state = GiveawayState(
            channel_id=message.channel.id,
            message_id=message.id,
            prize=prize,
            winner_count=winner_count,
            delay_ms=delay_ms,
            ends_at=ends_at,
            host_id=host.id if host else None,
        )
        handle = GiveawayHandle(state=state, channel=channel)
        self._active[state.message_id] = handle
        handle.task = asyncio.create_task(self._run(handle), name=f"giveaway-{state.message_id}")
        logger.info(
            "Giveaway %s for %r scheduled in %d ms (%d winner(s))",
            state.message_id,
            prize,
            delay_ms,
            winner_count,
        )
        return handle

    async def end_now(self, message_id: int) -> bool:
        """Skip the remaining delay and draw immediately."""

        handle = self._active.get(message_id)
        if handle is None:
            return False
        handle.wake.set()
        if handle.task is not None:
            await handle.task
        return True

    async def cancel(self, message_id: int) -> bool:
        """Stop a giveaway without drawing winners."""

        handle = self._active.pop(message_id, None)
        if handle is None:
            return False
        await self._stop(handle)
        logger.info("Giveaway %s cancelled", message_id)
        await self._announce(handle.channel, f"The giveaway for **{handle.state.prize}** was cancelled.")
        return True

    async def shutdown(self) -> None:
        handles = list(self._active.values())
        self._active.clear()
        for handle in handles:
            await self._stop(handle)

    async def _stop(self, handle: GiveawayHandle) -> None:
        if handle.task is None or handle.task.done():
            return
        handle.task.cancel()
        try:
            await handle.task
        except asyncio.CancelledError:
            pass

    async def _run(self, handle: GiveawayHandle) -> None:
        try:
            try:
                await asyncio.wait_for(handle.wake.wait(), timeout=handle.state.delay_ms / 1000)
            except asyncio.TimeoutError:
                pass
            await self._draw(handle)
        except Exception:
            logger.exception("Giveaway %s failed", handle.state.message_id)
        finally:
            if self._active.get(handle.state.message_id) is handle:
                del self._active[handle.state.message_id]

    async def _draw(self, handle: GiveawayHandle) -> None:
        state = handle.state
        try:
            message = await handle.channel.fetch_message(state.message_id)
            participants = await collect_participants(message)
        except discord.HTTPException:
            logger.exception("Could not load entries for giveaway %s", state.message_id)
            await self._announce(
                handle.channel,
                f"The giveaway for **{state.prize}** could not be drawn: its announcement is no longer available.",
            )
            return

        if not participants:
            await self._announce(handle.channel, f"Nobody entered the giveaway for **{state.prize}**.")
            return

        winners = draw_winners(participants, state.winner_count, self._rng)
        logger.info(
            "Giveaway %s drawn: %d winner(s) from %d participant(s)",
            state.message_id,
            len(winners),
            len(participants),
        )
        mentions = ", ".join(winner.mention for winner in winners)
        await self._announce(handle.channel, f"Congratulations {mentions}! You won **{state.prize}**!")

    async def _announce(self, channel: discord.abc.Messageable, content: str) -> None:
        try:
            await channel.send(content)
        except discord.HTTPException:
            logger.exception("Failed to post giveaway announcement")

    async def _retract(self, message: discord.Message) -> None:
        try:
            await message.delete()
        except discord.HTTPException:
            logger.exception("Failed to remove giveaway announcement %s", message.id)

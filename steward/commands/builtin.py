"""Built-in prefix commands."""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import List, Optional

import discord

from ..errors import UsageError
from ..services.economy import Economy
from ..services.giveaways import GIVEAWAY_USAGE, GiveawayScheduler
from ..services.leveling import LevelingEngine
from ..services.modlog import ModerationLog
from ..services.reaction_roles import ReactionRoleBinder
from .registry import CommandRegistry

logger = logging.getLogger(__name__)

DEFAULT_REASON = "No reason provided"
DEFAULT_PRIZE = "Mystery prize"
# Discord caps member timeouts at 28 days
MAX_TIMEOUT_MINUTES = 28 * 24 * 60

_MEMBER_PATTERN = re.compile(r"<@!?(\d+)>|(\d+)")


async def _target_member(message: discord.Message, args: List[str], usage: str) -> discord.Member:
    """Resolve the member named by the first argument, a mention or a raw id."""

    if message.guild is None:
        raise UsageError("This command can only be used inside a server.")
    match = _MEMBER_PATTERN.fullmatch(args[0]) if args else None
    if match is None:
        raise UsageError(f"Please mention a member. {usage}")
    member_id = int(match.group(1) or match.group(2))
    member = message.guild.get_member(member_id)
    if member is not None:
        return member
    try:
        return await message.guild.fetch_member(member_id)
    except discord.NotFound:
        raise UsageError(f"That user is not a member of this server. {usage}") from None


def _message_id(args: List[str], usage: str) -> int:
    if not args:
        raise UsageError(usage)
    try:
        return int(args[0])
    except ValueError:
        raise UsageError(f"`{args[0]}` is not a message id. {usage}") from None


def _format_wait(remaining: timedelta) -> str:
    minutes = max(int(remaining.total_seconds() // 60), 1)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m" if hours else f"{minutes}m"


def register_builtin_commands(
    registry: CommandRegistry,
    *,
    prefix: str,
    leveling: LevelingEngine,
    economy: Economy,
    binder: ReactionRoleBinder,
    giveaways: GiveawayScheduler,
    modlog: ModerationLog,
) -> None:
    """Register every built-in command on ``registry``."""

    kick_usage = f"Usage: `{prefix}kick @user [reason]`"
    ban_usage = f"Usage: `{prefix}ban @user [reason]`"
    mute_usage = f"Usage: `{prefix}mute @user <minutes> [reason]`"
    gend_usage = f"Usage: `{prefix}gend <message id>`"
    gcancel_usage = f"Usage: `{prefix}gcancel <message id>`"

    @registry.command("help", "List available commands.")
    async def help_command(message: discord.Message, args: List[str]) -> None:
        lines = [f"`{prefix}{descriptor.name}` - {descriptor.description}" for descriptor in registry.list()]
        await message.reply("\n".join(lines))

    @registry.command("kick", "Kick a member.", permission="kick_members", usage=kick_usage)
    async def kick(message: discord.Message, args: List[str]) -> None:
        target = await _target_member(message, args, kick_usage)
        reason = " ".join(args[1:]) or DEFAULT_REASON
        try:
            await target.kick(reason=reason)
        except discord.HTTPException:
            logger.warning("Failed to kick member %s", target.id, exc_info=True)
            await message.reply(f"I could not kick {target}.")
            return
        await message.channel.send(f"Kicked {target}. Reason: {reason}")
        await modlog.record(message.guild, f"{message.author} kicked {target} ({target.id}). Reason: {reason}")

    @registry.command("ban", "Ban a member.", permission="ban_members", usage=ban_usage)
    async def ban(message: discord.Message, args: List[str]) -> None:
        target = await _target_member(message, args, ban_usage)
        reason = " ".join(args[1:]) or DEFAULT_REASON
        try:
            await target.ban(reason=reason)
        except discord.HTTPException:
            logger.warning("Failed to ban member %s", target.id, exc_info=True)
            await message.reply(f"I could not ban {target}.")
            return
        await message.channel.send(f"Banned {target}. Reason: {reason}")
        await modlog.record(message.guild, f"{message.author} banned {target} ({target.id}). Reason: {reason}")

    @registry.command(
        "mute", "Time out a member for a number of minutes.", permission="moderate_members", usage=mute_usage
    )
    async def mute(message: discord.Message, args: List[str]) -> None:
        target = await _target_member(message, args, mute_usage)
        try:
            minutes = int(args[1])
        except (IndexError, ValueError):
            raise UsageError(mute_usage) from None
        if not 0 < minutes <= MAX_TIMEOUT_MINUTES:
            raise UsageError(f"Minutes must be between 1 and {MAX_TIMEOUT_MINUTES}. {mute_usage}")
        reason = " ".join(args[2:]) or DEFAULT_REASON
        try:
            await target.timeout(timedelta(minutes=minutes), reason=reason)
        except discord.HTTPException:
            logger.warning("Failed to timeout member %s", target.id, exc_info=True)
            await message.reply(f"I could not mute {target}.")
            return
        await message.channel.send(f"Muted {target} for {minutes} minute(s). Reason: {reason}")
        await modlog.record(
            message.guild,
            f"{message.author} muted {target} ({target.id}) for {minutes} minute(s). Reason: {reason}",
        )

    @registry.command("level", "Show your level and XP.")
    async def level(message: discord.Message, args: List[str]) -> None:
        record, target = leveling.progress(message.author.id)
        await message.reply(f"Your level: {record.level}. XP: {record.xp}/{target}")

    @registry.command("ping", "Check the bot's latency.")
    async def ping(message: discord.Message, args: List[str]) -> None:
        sent = await message.channel.send("Pinging…")
        latency = (sent.created_at - message.created_at).total_seconds() * 1000
        await sent.edit(content=f"Pong! Latency: {latency:.0f}ms")

    @registry.command("setuproles", "Post the reaction role message (admin only).", permission="administrator")
    async def setuproles(message: discord.Message, args: List[str]) -> None:
        if message.guild is None:
            raise UsageError("This command can only be used inside a server.")
        if not binder.role_map:
            raise UsageError("No reaction roles are configured.")
        posted = await message.channel.send(binder.setup_message_content(message.guild))
        for emoji in binder.role_map:
            await posted.add_reaction(emoji)
        logger.info("Reaction role message posted as %s", posted.id)
        notice = "Reaction role message created."
        if posted.id != binder.message_id:
            notice += f" Set REACTION_ROLE_MESSAGE_ID={posted.id} to bind it."
        await message.channel.send(notice)

    @registry.command("balance", "Show your coin balance.")
    async def balance(message: discord.Message, args: List[str]) -> None:
        await message.reply(f"You have {economy.balance(message.author.id)} coins.")

    @registry.command("daily", "Claim your daily coins.")
    async def daily(message: discord.Message, args: List[str]) -> None:
        claim = await economy.claim_daily(message.author.id)
        if not claim.granted:
            await message.reply(
                f"You already claimed your daily coins. Try again in {_format_wait(claim.retry_after)}."
            )
            return
        await message.reply(f"You claimed your daily {claim.amount} coins! Balance: {claim.balance}.")

    @registry.command(
        "giveaway", "Start a giveaway.", permission="manage_messages", usage=GIVEAWAY_USAGE
    )
    async def giveaway(message: discord.Message, args: List[str]) -> None:
        if len(args) < 2:
            raise UsageError(GIVEAWAY_USAGE)
        try:
            winner_count = int(args[1])
        except ValueError:
            raise UsageError(GIVEAWAY_USAGE) from None
        prize = " ".join(args[2:]) or DEFAULT_PRIZE
        await giveaways.start(message.channel, args[0], winner_count, prize, host=message.author)

    @registry.command(
        "gend", "Draw a running giveaway now.", permission="manage_messages", usage=gend_usage
    )
    async def gend(message: discord.Message, args: List[str]) -> None:
        message_id = _message_id(args, gend_usage)
        if not await giveaways.end_now(message_id):
            await message.reply(f"There is no running giveaway with id {message_id}.")

    @registry.command(
        "gcancel", "Cancel a running giveaway.", permission="manage_messages", usage=gcancel_usage
    )
    async def gcancel(message: discord.Message, args: List[str]) -> None:
        message_id = _message_id(args, gcancel_usage)
        if not await giveaways.cancel(message_id):
            await message.reply(f"There is no running giveaway with id {message_id}.")


def build_registry(
    *,
    prefix: str,
    leveling: LevelingEngine,
    economy: Economy,
    binder: ReactionRoleBinder,
    giveaways: GiveawayScheduler,
    modlog: Optional[ModerationLog] = None,
) -> CommandRegistry:
    registry = CommandRegistry()
    register_builtin_commands(
        registry,
        prefix=prefix,
        leveling=leveling,
        economy=economy,
        binder=binder,
        giveaways=giveaways,
        modlog=modlog or ModerationLog(None),
    )
    return registry

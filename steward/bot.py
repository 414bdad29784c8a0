"""Discord bot wiring for Steward."""

from __future__ import annotations

import logging
from datetime import timedelta

import discord
from discord.ext import commands

from .commands.builtin import build_registry
from .commands.dispatcher import CommandDispatcher
from .errors import PersistenceError
from .models.config import BotSettings
from .services.economy import Economy
from .services.giveaways import GiveawayScheduler
from .services.leveling import LevelingEngine
from .services.modlog import ModerationLog
from .services.reaction_roles import ReactionRoleBinder
from .services.store import CounterStore
from .services.welcome import WelcomeGreeter

logger = logging.getLogger(__name__)


def create_bot(
    settings: BotSettings,
    store: CounterStore,
    giveaways: GiveawayScheduler,
) -> commands.Bot:
    intents = discord.Intents.default()
    intents.members = True
    intents.message_content = True
    intents.reactions = True

    # Text commands go through CommandDispatcher, not discord.ext.commands
    bot = commands.Bot(
        command_prefix=settings.command_prefix,
        intents=intents,
        help_command=None,
    )

    leveling = LevelingEngine(store)
    economy = Economy(
        store,
        daily_reward=settings.daily_reward,
        daily_cooldown=timedelta(hours=settings.daily_cooldown_hours),
    )
    binder = ReactionRoleBinder(settings.reaction_role_message_id, settings.reaction_role_map)
    modlog = ModerationLog(settings.log_channel_id)
    greeter = WelcomeGreeter(settings.welcome_channel_id)
    registry = build_registry(
        prefix=settings.command_prefix,
        leveling=leveling,
        economy=economy,
        binder=binder,
        giveaways=giveaways,
        modlog=modlog,
    )
    dispatcher = CommandDispatcher(registry, settings.command_prefix)

    @bot.event
    async def setup_hook() -> None:  # type: ignore[override]
        logger.info(
            "Registered %d commands with prefix %r; reaction roles bound to message %s",
            len(registry),
            settings.command_prefix,
            binder.message_id,
        )

    @bot.event
    async def on_ready() -> None:
        logger.info("Logged in as %s", bot.user)

    @bot.event
    async def on_message(message: discord.Message) -> None:
        if message.author.bot:
            return
        try:
            await leveling.handle_message(message)
        except PersistenceError:
            logger.exception("Failed to persist XP for %s", message.author.id)
        except discord.HTTPException:
            logger.exception("Failed to announce level-up for %s", message.author.id)

        await dispatcher.dispatch(message)

    @bot.event
    async def on_member_join(member: discord.Member) -> None:
        await greeter.greet(member)

    @bot.event
    async def on_raw_reaction_add(payload: discord.RawReactionActionEvent) -> None:
        guild = bot.get_guild(payload.guild_id) if payload.guild_id else None
        if guild is None:
            return
        try:
            await binder.reaction_added(guild, payload)
        except discord.HTTPException:
            logger.exception("Failed to grant reaction role to %s", payload.user_id)

    @bot.event
    async def on_raw_reaction_remove(payload: discord.RawReactionActionEvent) -> None:
        guild = bot.get_guild(payload.guild_id) if payload.guild_id else None
        if guild is None:
            return
        try:
            await binder.reaction_removed(guild, payload)
        except discord.HTTPException:
            logger.exception("Failed to revoke reaction role from %s", payload.user_id)

    return bot

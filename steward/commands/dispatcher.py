"""Prefix command parsing and failure-isolated dispatch."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import discord

from ..errors import CommandError
from .registry import CommandDescriptor, CommandRegistry

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Something went wrong while running that command."
NO_PERMISSION = "You do not have permission to use this command."

PermissionCheck = Callable[[discord.Message, str], bool]


class DispatchResult(enum.Enum):
    NOT_COMMAND = "not_command"
    UNKNOWN = "unknown"
    DENIED = "denied"
    REJECTED = "rejected"
    FAILED = "failed"
    HANDLED = "handled"


@dataclass(frozen=True)
class ParsedCommand:
    name: str
    args: List[str] = field(default_factory=list)


def parse_command(content: str, prefix: str) -> Optional[ParsedCommand]:
    """Split ``content`` into a lower-cased command name and its arguments.

    Returns ``None`` when the text does not begin with ``prefix`` or nothing
    follows the prefix.
    """

    if not prefix or not content.startswith(prefix):
        return None
    tokens = content[len(prefix):].split()
    if not tokens:
        return None
    return ParsedCommand(name=tokens[0].lower(), args=tokens[1:])


def guild_permission_check(message: discord.Message, permission: str) -> bool:
    """Default predicate: consult the author's guild-level permissions."""

    permissions = getattr(message.author, "guild_permissions", None)
    if permissions is None:
        return False
    return bool(getattr(permissions, permission, False))


class CommandDispatcher:
    """Route prefixed messages to registered handlers.

    Every handler failure is contained here so one broken command never
    affects the event loop or other dispatches.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        prefix: str,
        permission_check: PermissionCheck = guild_permission_check,
    ):
        self.registry = registry
        self.prefix = prefix
        self._permission_check = permission_check

    async def dispatch(self, message: discord.Message) -> DispatchResult:
        parsed = parse_command(message.content or "", self.prefix)
        if parsed is None:
            return DispatchResult.NOT_COMMAND

        descriptor = self.registry.lookup(parsed.name)
        if descriptor is None:
            logger.debug("Ignoring unknown command %r from %s", parsed.name, message.author)
            return DispatchResult.UNKNOWN

        if descriptor.permission and not self._permission_check(message, descriptor.permission):
            logger.info(
                "Denied %s to %s (missing %s)", descriptor.name, message.author, descriptor.permission
            )
            await self._reply(message, NO_PERMISSION)
            return DispatchResult.DENIED

        return await self._invoke(descriptor, message, parsed.args)

    async def _invoke(
        self, descriptor: CommandDescriptor, message: discord.Message, args: List[str]
    ) -> DispatchResult:
        try:
            await descriptor.handler(message, args)
        except CommandError as exc:
            await self._reply(message, str(exc) or GENERIC_FAILURE)
            return DispatchResult.REJECTED
        except Exception:
            logger.exception("Command %s failed for %s", descriptor.name, message.author)
            await self._reply(message, GENERIC_FAILURE)
            return DispatchResult.FAILED
        return DispatchResult.HANDLED

    async def _reply(self, message: discord.Message, content: str) -> None:
        try:
            await message.reply(content)
        except discord.HTTPException:
            logger.exception("Failed to send reply in channel %s", message.channel.id)

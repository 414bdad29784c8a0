"""Name to handler mapping for prefix commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import discord

CommandHandler = Callable[[discord.Message, List[str]], Awaitable[Any]]


@dataclass(frozen=True)
class CommandDescriptor:
    """A registered command and its metadata."""

    name: str
    description: str
    handler: CommandHandler
    # Discord permission flag the author must hold, e.g. "kick_members"
    permission: Optional[str] = None
    usage: Optional[str] = None


class CommandRegistry:
    """Registered commands, keyed by their exact (case-sensitive) name.

    Registering a name twice raises ``ValueError``; the registry never
    silently replaces a handler.
    """

    def __init__(self) -> None:
        self._commands: Dict[str, CommandDescriptor] = {}

    def register(
        self,
        name: str,
        description: str,
        handler: CommandHandler,
        *,
        permission: Optional[str] = None,
        usage: Optional[str] = None,
    ) -> CommandDescriptor:
        if not name or any(ch.isspace() for ch in name):
            raise ValueError(f"Invalid command name: {name!r}")
        if name in self._commands:
            raise ValueError(f"Command {name!r} is already registered")
        descriptor = CommandDescriptor(
            name=name,
            description=description,
            handler=handler,
            permission=permission,
            usage=usage,
        )
        self._commands[name] = descriptor
        return descriptor

    def command(
        self,
        name: str,
        description: str,
        *,
        permission: Optional[str] = None,
        usage: Optional[str] = None,
    ) -> Callable[[CommandHandler], CommandHandler]:
        """Decorator form of :meth:`register`."""

        def decorator(handler: CommandHandler) -> CommandHandler:
            self.register(name, description, handler, permission=permission, usage=usage)
            return handler

        return decorator

    def lookup(self, name: str) -> Optional[CommandDescriptor]:
        return self._commands.get(name)

    def list(self) -> List[CommandDescriptor]:
        return list(self._commands.values())

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)

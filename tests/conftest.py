"""Shared fakes and fixtures for Steward tests."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Dict, Iterable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from steward.services.store import CounterStore

_ids = itertools.count(1000)


def http_error(cls=discord.HTTPException, status: int = 500, text: str = "boom"):
    """Build a discord.py HTTP exception without a real response."""
    return cls(MagicMock(status=status, reason=text), text)


def make_user(user_id: int, *, bot: bool = False, name: Optional[str] = None) -> SimpleNamespace:
    return SimpleNamespace(
        id=user_id,
        bot=bot,
        mention=f"<@{user_id}>",
        name=name or f"user{user_id}",
    )


class FakeMember:
    def __init__(
        self,
        user_id: int,
        *,
        bot: bool = False,
        roles: Iterable[int] = (),
        permissions: Optional[Dict[str, bool]] = None,
    ):
        self.id = user_id
        self.bot = bot
        self.mention = f"<@{user_id}>"
        self.roles = [SimpleNamespace(id=role_id) for role_id in roles]
        self.guild_permissions = SimpleNamespace(**(permissions or {}))
        self.add_roles = AsyncMock()
        self.remove_roles = AsyncMock()
        self.kick = AsyncMock()
        self.ban = AsyncMock()
        self.timeout = AsyncMock()
        self.send = AsyncMock()

    def __str__(self) -> str:
        return f"member{self.id}"


def make_member(user_id: int, **kwargs) -> FakeMember:
    return FakeMember(user_id, **kwargs)


class FakeReaction:
    def __init__(self, emoji: str, users: List[SimpleNamespace]):
        self.emoji = emoji
        self._users = users

    async def _iterate(self):
        for user in self._users:
            yield user

    def users(self):
        return self._iterate()


class FakeMessage:
    def __init__(self, channel: "FakeChannel", content: Optional[str] = None, embed=None):
        self.id = next(_ids)
        self.channel = channel
        self.content = content
        self.embed = embed
        self.reactions: List[FakeReaction] = []
        self.added_reactions: List[str] = []
        self.created_at = datetime.now(timezone.utc)
        self.edit = AsyncMock()
        self.delete = AsyncMock()

    async def add_reaction(self, emoji: str) -> None:
        self.added_reactions.append(emoji)


class FakeChannel:
    def __init__(self, channel_id: int = 1):
        self.id = channel_id
        self.sent: List[FakeMessage] = []
        self.messages: Dict[int, FakeMessage] = {}

    async def send(self, content: Optional[str] = None, *, embed=None) -> FakeMessage:
        message = FakeMessage(self, content=content, embed=embed)
        self.sent.append(message)
        self.messages[message.id] = message
        return message

    async def fetch_message(self, message_id: int) -> FakeMessage:
        try:
            return self.messages[message_id]
        except KeyError:
            raise http_error(discord.NotFound, 404, "Unknown Message") from None

    @property
    def contents(self) -> List[Optional[str]]:
        return [message.content for message in self.sent]


def make_guild(*members: FakeMember) -> MagicMock:
    """A guild whose member lookups only find ``members``."""
    by_id = {member.id: member for member in members}
    guild = MagicMock(name="guild")
    guild.get_member.side_effect = by_id.get

    async def fetch_member(member_id: int) -> FakeMember:
        try:
            return by_id[member_id]
        except KeyError:
            raise http_error(discord.NotFound, 404, "Unknown Member") from None

    guild.fetch_member = AsyncMock(side_effect=fetch_member)
    return guild


def make_message(
    content: str,
    *,
    author=None,
    channel: Optional[FakeChannel] = None,
    guild=None,
    mentions: Optional[list] = None,
) -> SimpleNamespace:
    return SimpleNamespace(
        content=content,
        author=author if author is not None else make_member(42),
        channel=channel or FakeChannel(),
        guild=guild if guild is not None else make_guild(*(mentions or [])),
        mentions=mentions or [],
        created_at=datetime.now(timezone.utc),
        reply=AsyncMock(),
    )


@pytest.fixture
def store(tmp_path) -> CounterStore:
    counter_store = CounterStore(tmp_path)
    counter_store.load()
    return counter_store

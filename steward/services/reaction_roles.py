"""Grant and revoke roles from reactions on a designated message."""

from __future__ import annotations

import enum
import logging
from typing import Dict, Mapping, Optional

import discord

logger = logging.getLogger(__name__)


class RoleOutcome(enum.Enum):
    IGNORED = "ignored"
    GRANTED = "granted"
    REVOKED = "revoked"
    UNCHANGED = "unchanged"


class ReactionRoleBinder:
    """Static emoji to role mapping bound to one message.

    Role membership itself lives on Discord; the binder only keeps its
    configuration.
    """

    def __init__(self, message_id: Optional[int], role_map: Mapping[str, int]):
        self.message_id = message_id
        self.role_map: Dict[str, int] = {str(emoji): int(role_id) for emoji, role_id in role_map.items()}

    def resolve(self, message_id: int, emoji: discord.PartialEmoji | str) -> Optional[int]:
        """Role bound to ``emoji`` on ``message_id``, or ``None`` when unbound."""

        if self.message_id is None or message_id != self.message_id:
            return None
        role_id = self.role_map.get(str(emoji))
        if role_id is None:
            name = getattr(emoji, "name", None)
            if name:
                role_id = self.role_map.get(name)
        return role_id

    async def reaction_added(
        self, guild: discord.Guild, payload: discord.RawReactionActionEvent
    ) -> RoleOutcome:
        role_id = self.resolve(payload.message_id, payload.emoji)
        if role_id is None:
            return RoleOutcome.IGNORED
        member = await self._member(guild, payload)
        if member is None or member.bot:
            return RoleOutcome.IGNORED
        if any(role.id == role_id for role in member.roles):
            return RoleOutcome.UNCHANGED
        await member.add_roles(discord.Object(id=role_id), reason="Reaction role added")
        logger.info("Granted role %s to %s", role_id, member.id)
        return RoleOutcome.GRANTED

    async def reaction_removed(
        self, guild: discord.Guild, payload: discord.RawReactionActionEvent
    ) -> RoleOutcome:
        role_id = self.resolve(payload.message_id, payload.emoji)
        if role_id is None:
            return RoleOutcome.IGNORED
        member = await self._member(guild, payload)
        if member is None or member.bot:
            return RoleOutcome.IGNORED
        if not any(role.id == role_id for role in member.roles):
            return RoleOutcome.UNCHANGED
        await member.remove_roles(discord.Object(id=role_id), reason="Reaction role removed")
        logger.info("Revoked role %s from %s", role_id, member.id)
        return RoleOutcome.REVOKED

    def setup_message_content(self, guild: discord.Guild) -> str:
        lines = ["React to get a role:"]
        for emoji, role_id in self.role_map.items():
            role = guild.get_role(role_id)
            if role is not None:
                lines.append(f"{emoji} → {role.name}")
        return "\n".join(lines)

    async def _member(
        self, guild: discord.Guild, payload: discord.RawReactionActionEvent
    ) -> Optional[discord.Member]:
        # Only add events carry the member
        if payload.member is not None:
            return payload.member
        member = guild.get_member(payload.user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(payload.user_id)
        except discord.NotFound:
            logger.warning("Member %s left before their reaction was processed", payload.user_id)
            return None

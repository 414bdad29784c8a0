"""Steward: a Discord moderation, leveling and giveaway bot."""

from .bot import create_bot

__all__ = ["create_bot"]

"""Exceptions shared by commands and services."""

from __future__ import annotations


class CommandError(Exception):
    """An error whose message is safe to show to the invoking user."""


class PermissionDenied(CommandError):
    """The invoking user lacks the capability the command requires."""


class UsageError(CommandError):
    """Missing or invalid command arguments."""


class PersistenceError(RuntimeError):
    """Writing a counter namespace to durable storage failed."""

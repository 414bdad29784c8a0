"""Prefix command handling for Steward."""

from .builtin import build_registry, register_builtin_commands
from .dispatcher import CommandDispatcher, DispatchResult, parse_command
from .registry import CommandDescriptor, CommandRegistry

__all__ = [
    "build_registry",
    "register_builtin_commands",
    "CommandDispatcher",
    "DispatchResult",
    "parse_command",
    "CommandDescriptor",
    "CommandRegistry",
]

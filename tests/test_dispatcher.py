"""Tests for command parsing, registration and dispatch."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from conftest import http_error, make_member, make_message
from steward.commands.dispatcher import (
    GENERIC_FAILURE,
    NO_PERMISSION,
    CommandDispatcher,
    DispatchResult,
    guild_permission_check,
    parse_command,
)
from steward.commands.registry import CommandRegistry
from steward.errors import PermissionDenied, UsageError


class TestParseCommand:
    def test_name_is_case_folded(self):
        """`!PING` resolves to `ping` with no arguments."""
        parsed = parse_command("!PING", "!")
        assert parsed.name == "ping"
        assert parsed.args == []

    def test_without_prefix(self):
        """Plain chat never parses as a command."""
        assert parse_command("hello", "!") is None

    def test_whitespace_runs_are_collapsed(self):
        """Arguments are split on runs of whitespace after trimming."""
        parsed = parse_command("!  kick   <@1>  being\trude ", "!")
        assert parsed.name == "kick"
        assert parsed.args == ["<@1>", "being", "rude"]

    def test_arguments_keep_their_case(self):
        """Only the command name is lower-cased."""
        parsed = parse_command("!Giveaway 1m 2 Nitro Classic", "!")
        assert parsed.args == ["1m", "2", "Nitro", "Classic"]

    def test_bare_prefix(self):
        """A prefix with nothing after it is not a command."""
        assert parse_command("!", "!") is None
        assert parse_command("!   ", "!") is None

    def test_multi_character_prefix(self):
        """Prefixes must match exactly."""
        assert parse_command("?? ping", "??").name == "ping"
        assert parse_command("?ping", "??") is None


class TestCommandRegistry:
    def test_duplicate_names_are_rejected(self):
        """Registering the same name twice raises instead of overwriting."""
        registry = CommandRegistry()
        registry.register("ping", "Ping", AsyncMock())
        with pytest.raises(ValueError):
            registry.register("ping", "Other", AsyncMock())

    def test_storage_is_case_sensitive(self):
        """The registry matches names exactly."""
        registry = CommandRegistry()
        registry.register("ping", "Ping", AsyncMock())
        assert registry.lookup("ping") is not None
        assert registry.lookup("PING") is None

    def test_list_keeps_registration_order(self):
        """Enumeration follows registration order."""
        registry = CommandRegistry()
        for name in ("b", "a", "c"):
            registry.register(name, name.upper(), AsyncMock())
        assert [descriptor.name for descriptor in registry.list()] == ["b", "a", "c"]

    def test_decorator_registers_handler(self):
        """The decorator form stores metadata alongside the handler."""
        registry = CommandRegistry()

        @registry.command("kick", "Kick someone", permission="kick_members", usage="!kick @user")
        async def kick(message, args):
            return None

        descriptor = registry.lookup("kick")
        assert descriptor.handler is kick
        assert descriptor.permission == "kick_members"
        assert descriptor.usage == "!kick @user"


class TestCommandDispatcher:
    def _dispatcher(self, **commands):
        registry = CommandRegistry()
        for name, (handler, permission) in commands.items():
            registry.register(name, name, handler, permission=permission)
        return CommandDispatcher(registry, "!")

    @pytest.mark.asyncio
    async def test_dispatches_case_insensitively(self):
        """Handlers receive the message and parsed args."""
        handler = AsyncMock()
        dispatcher = self._dispatcher(ping=(handler, None))
        message = make_message("!PING")

        assert await dispatcher.dispatch(message) is DispatchResult.HANDLED
        handler.assert_awaited_once_with(message, [])

    @pytest.mark.asyncio
    async def test_plain_text_is_not_dispatched(self):
        """Messages without the prefix never reach a handler."""
        handler = AsyncMock()
        dispatcher = self._dispatcher(ping=(handler, None))

        assert await dispatcher.dispatch(make_message("hello")) is DispatchResult.NOT_COMMAND
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_command_is_silent(self):
        """Unknown names are a no-op without feedback."""
        dispatcher = self._dispatcher()
        message = make_message("!dance")

        assert await dispatcher.dispatch(message) is DispatchResult.UNKNOWN
        message.reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_failure_is_contained(self):
        """Unexpected exceptions become a generic failure notice."""
        dispatcher = self._dispatcher(boom=(AsyncMock(side_effect=RuntimeError("kaboom")), None))
        message = make_message("!boom")

        assert await dispatcher.dispatch(message) is DispatchResult.FAILED
        message.reply.assert_awaited_once_with(GENERIC_FAILURE)

    @pytest.mark.asyncio
    async def test_failed_notice_does_not_raise(self):
        """A reply that cannot be delivered is logged, not raised."""
        dispatcher = self._dispatcher(boom=(AsyncMock(side_effect=RuntimeError()), None))
        message = make_message("!boom")
        message.reply.side_effect = http_error()

        assert await dispatcher.dispatch(message) is DispatchResult.FAILED

    @pytest.mark.asyncio
    async def test_usage_errors_are_reported_inline(self):
        """Malformed input is answered with the handler's hint."""
        dispatcher = self._dispatcher(mute=(AsyncMock(side_effect=UsageError("Usage: !mute @user 10")), None))
        message = make_message("!mute")

        assert await dispatcher.dispatch(message) is DispatchResult.REJECTED
        message.reply.assert_awaited_once_with("Usage: !mute @user 10")

    @pytest.mark.asyncio
    async def test_permission_denied_from_handler(self):
        """Handlers may refuse with PermissionDenied."""
        dispatcher = self._dispatcher(admin=(AsyncMock(side_effect=PermissionDenied("Admins only.")), None))
        message = make_message("!admin")

        assert await dispatcher.dispatch(message) is DispatchResult.REJECTED
        message.reply.assert_awaited_once_with("Admins only.")

    @pytest.mark.asyncio
    async def test_missing_permission_blocks_handler(self):
        """The permission predicate runs before the handler."""
        handler = AsyncMock()
        dispatcher = self._dispatcher(kick=(handler, "kick_members"))
        message = make_message("!kick <@2>", author=make_member(1, permissions={"kick_members": False}))

        assert await dispatcher.dispatch(message) is DispatchResult.DENIED
        handler.assert_not_awaited()
        message.reply.assert_awaited_once_with(NO_PERMISSION)

    @pytest.mark.asyncio
    async def test_granted_permission_runs_handler(self):
        handler = AsyncMock()
        dispatcher = self._dispatcher(kick=(handler, "kick_members"))
        message = make_message("!kick <@2>", author=make_member(1, permissions={"kick_members": True}))

        assert await dispatcher.dispatch(message) is DispatchResult.HANDLED
        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_custom_permission_predicate(self):
        """Callers can supply their own permission check."""
        registry = CommandRegistry()
        handler = AsyncMock()
        registry.register("secret", "Secret", handler, permission="anything")
        dispatcher = CommandDispatcher(registry, "!", permission_check=lambda message, perm: True)

        assert await dispatcher.dispatch(make_message("!secret")) is DispatchResult.HANDLED

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self):
        """Concurrent dispatches are isolated from each other."""
        ok = AsyncMock()
        dispatcher = self._dispatcher(
            boom=(AsyncMock(side_effect=ValueError("bad")), None),
            ok=(ok, None),
        )

        results = await asyncio.gather(
            dispatcher.dispatch(make_message("!boom")),
            dispatcher.dispatch(make_message("!ok")),
        )

        assert results == [DispatchResult.FAILED, DispatchResult.HANDLED]
        ok.assert_awaited_once()

    def test_default_predicate_without_guild_permissions(self):
        """Direct-message authors have no guild permissions."""
        message = SimpleNamespace(author=SimpleNamespace(id=1))
        assert guild_permission_check(message, "ban_members") is False

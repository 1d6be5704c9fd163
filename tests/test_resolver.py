"""Identifier resolution: ID forms, the bare-ID channel retry and peer-kind checks."""
import logging

import pytest

from errors import ResolutionError, ValidationError, WrongPeerTypeError
from fakes import FakeTelegramClient, make_user, make_channel, make_chat
from resolver import resolve_peer, resolve_chat, resolve_user


# ---------------------------------------------------------------------------
# TestIdentifierForms
# ---------------------------------------------------------------------------

class TestIdentifierForms:

    @pytest.mark.asyncio
    async def test_prefixed_channel_id_resolves_exact_value(self):
        channel = make_channel(1234567)
        client = FakeTelegramClient(entities={-1001234567: channel})
        assert await resolve_peer(client, "-1001234567") is channel
        assert client.get_entity_calls == [-1001234567]

    @pytest.mark.asyncio
    async def test_legacy_chat_id_is_passed_as_int(self):
        chat = make_chat(4567)
        client = FakeTelegramClient(entities={-4567: chat})
        assert await resolve_peer(client, "-4567") is chat
        assert client.get_entity_calls == [-4567]

    @pytest.mark.asyncio
    async def test_username_is_never_parsed_as_number(self):
        bot = make_user(77, username="a123bot", bot=True)
        client = FakeTelegramClient(entities={"@a123bot": bot})
        assert await resolve_peer(client, "@a123bot") is bot
        assert client.get_entity_calls == ["@a123bot"]
        assert isinstance(client.get_entity_calls[0], str)

    @pytest.mark.asyncio
    async def test_other_identifiers_are_passed_unchanged(self):
        channel = make_channel(99, username="durov")
        client = FakeTelegramClient(entities={"https://t.me/durov": channel})
        assert await resolve_peer(client, "  https://t.me/durov ") is channel
        assert client.get_entity_calls == ["https://t.me/durov"]

    @pytest.mark.asyncio
    async def test_empty_identifier_makes_no_lookup(self):
        client = FakeTelegramClient()
        with pytest.raises(ValidationError):
            await resolve_peer(client, "   ")
        assert client.get_entity_calls == []


# ---------------------------------------------------------------------------
# TestBareIdRetry
# ---------------------------------------------------------------------------

class TestBareIdRetry:

    @pytest.mark.asyncio
    async def test_bare_id_resolves_without_retry(self):
        user = make_user(42)
        client = FakeTelegramClient(entities={42: user})
        assert await resolve_peer(client, "42") is user
        assert client.get_entity_calls == [42]

    @pytest.mark.asyncio
    async def test_bare_id_retried_once_with_channel_prefix(self):
        channel = make_channel(5555)
        client = FakeTelegramClient(entities={-1005555: channel})
        assert await resolve_peer(client, "5555") is channel
        assert client.get_entity_calls == [5555, -1005555]

    @pytest.mark.asyncio
    async def test_double_failure_reports_first_error(self):
        first = ValueError("first lookup failed")
        client = FakeTelegramClient(entities={5555: first, -1005555: ValueError("second lookup failed")})
        with pytest.raises(ResolutionError) as exc_info:
            await resolve_peer(client, "5555")
        assert exc_info.value.cause is first
        assert "first lookup failed" in str(exc_info.value)
        assert client.get_entity_calls == [5555, -1005555]

    @pytest.mark.asyncio
    async def test_retry_is_logged(self, caplog):
        caplog.set_level(logging.INFO, logger="resolver")
        client = FakeTelegramClient(entities={-1005555: make_channel(5555)})
        await resolve_peer(client, "5555")
        assert "retrying as channel peer ID -1005555" in caplog.text


# ---------------------------------------------------------------------------
# TestPeerKindChecks
# ---------------------------------------------------------------------------

class TestPeerKindChecks:

    @pytest.mark.asyncio
    async def test_resolve_chat_rejects_user(self):
        client = FakeTelegramClient(entities={"@someone": make_user(5, username="someone")})
        with pytest.raises(WrongPeerTypeError) as exc_info:
            await resolve_chat(client, "@someone")
        assert exc_info.value.kind == "User"

    @pytest.mark.asyncio
    async def test_wrong_kind_is_distinct_from_not_found(self):
        client = FakeTelegramClient()
        with pytest.raises(ResolutionError):
            await resolve_chat(client, "@missing")
        assert not issubclass(ResolutionError, WrongPeerTypeError)

    @pytest.mark.asyncio
    async def test_resolve_chat_accepts_supergroup_and_basic_chat(self):
        group = make_channel(10, megagroup=True)
        chat = make_chat(20)
        client = FakeTelegramClient(entities={-10010: group, -20: chat})
        assert await resolve_chat(client, "-10010") is group
        assert await resolve_chat(client, "-20") is chat

    @pytest.mark.asyncio
    async def test_resolve_user_rejects_channel(self):
        client = FakeTelegramClient(entities={"@news": make_channel(3, username="news")})
        with pytest.raises(WrongPeerTypeError) as exc_info:
            await resolve_user(client, "@news")
        assert exc_info.value.expected == "a user or bot"

    @pytest.mark.asyncio
    async def test_resolve_user_accepts_bot(self):
        bot = make_user(8, username="helper_bot", bot=True)
        client = FakeTelegramClient(entities={"@helper_bot": bot})
        assert await resolve_user(client, "@helper_bot") is bot

"""Menu navigation: submenus, post-action choices, entry guards and exit."""
import pytest

from config import Settings
from fakes import FakeSession, FakeTelegramClient, RecordingHttpSession, ScriptedPrompter
from main import run_console
from menu import ConsoleContext, Navigator, build_main_menu

# root menu entries
USER_ACCOUNT, CHANNEL_GROUP, MESSAGES, BOT_INFO, BOT_TOKEN, OSINT = "0", "1", "2", "3", "4", "5"


def make_console(answers, bot_token=None, client=None):
    prompter = ScriptedPrompter(answers)
    session = FakeSession(client or FakeTelegramClient())
    ctx = ConsoleContext(
        settings=Settings(bot_token=bot_token),
        prompter=prompter,
        session=session,
        bot_session=RecordingHttpSession(),
    )
    return Navigator(build_main_menu(), ctx), ctx


class TestNavigation:

    @pytest.mark.asyncio
    async def test_exit_closes_session(self):
        nav, ctx = make_console(["back"])
        assert await nav.run() == 0
        assert ctx.session.closed
        assert nav.stack == []

    @pytest.mark.asyncio
    async def test_action_then_back_to_main(self):
        nav, ctx = make_console([USER_ACCOUNT, "0", "main", "back"])
        assert await nav.run() == 0
        assert ctx.session.ensure_calls == 1
        assert ctx.prompter.answers == []

    @pytest.mark.asyncio
    async def test_again_reruns_action(self):
        nav, ctx = make_console([USER_ACCOUNT, "0", "again", "0", "menu", "back", "back"])
        assert await nav.run() == 0
        assert ctx.session.ensure_calls == 2

    @pytest.mark.asyncio
    async def test_failed_action_pauses_and_stays(self):
        # blank identifier fails validation before any login
        nav, ctx = make_console([CHANNEL_GROUP, "0", "", "back", "back"])
        assert await nav.run() == 0
        assert ctx.session.ensure_calls == 0
        assert ctx.prompter.pauses == ["\nPress Enter to return to Channel/Group..."]


class TestBotMenu:

    @pytest.mark.asyncio
    async def test_missing_token_refuses_entry(self, capsys):
        nav, ctx = make_console([BOT_TOKEN, "", "back"])
        assert await nav.run() == 0
        assert len(ctx.prompter.pauses) == 1
        assert "Configuration error" in capsys.readouterr().out
        assert ctx.bot is None

    @pytest.mark.asyncio
    async def test_token_from_settings_and_nested_menu(self):
        nav, ctx = make_console([BOT_TOKEN, "2", "0", "main", "back"], bot_token="123:abc")
        ctx.bot_session.responses['getWebhookInfo'] = {'ok': True, 'result': {'url': ''}}
        assert await nav.run() == 0
        assert ctx.bot_session.methods() == ['getWebhookInfo']
        # leaving the bot menu drops the client
        assert ctx.bot is None

    @pytest.mark.asyncio
    async def test_prompted_token(self):
        nav, ctx = make_console([BOT_TOKEN, "999:xyz", "1", "-100", "hello", "menu", "back", "back"])
        assert await nav.run() == 0
        url, payload = ctx.bot_session.posts[0]
        assert url.endswith("/bot999:xyz/sendMessage")
        assert payload == {'chat_id': '-100', 'text': 'hello'}

    @pytest.mark.asyncio
    async def test_declined_command_delete(self):
        nav, ctx = make_console([BOT_TOKEN, "3", "2", None, "back", "back", "back"], bot_token="123:abc")
        assert await nav.run() == 0
        assert ctx.bot_session.posts == []


@pytest.mark.asyncio
async def test_run_console_exits_with_zero(capsys):
    assert await run_console(Settings(), prompter=ScriptedPrompter(["back"])) == 0
    out = capsys.readouterr().out
    assert "Welcome to the Telegram Utilities Console!" in out
    assert "Exiting. Goodbye!" in out

"""Login state machine and the user-session lifecycle."""
from types import SimpleNamespace

import pytest
from telethon.errors import RPCError, SessionPasswordNeededError

from config import Settings
from errors import ConfigurationError, LoginError
from fakes import ScriptedPrompter, make_user
from session import LoginFlow, LoginState, UserSession


class FakeLoginClient:
    def __init__(self, authorized=False, needs_password=False, bad_codes=0, session_string="saved-session"):
        self.authorized = authorized
        self.needs_password = needs_password
        self.bad_codes = bad_codes
        self.session = SimpleNamespace(save=lambda: session_string)
        self.code_requests = []
        self.sign_ins = []
        self.connected = False
        self.disconnects = 0

    async def connect(self):
        self.connected = True

    async def disconnect(self):
        self.connected = False
        self.disconnects += 1

    def is_connected(self):
        return self.connected

    async def is_user_authorized(self):
        return self.authorized

    async def send_code_request(self, phone):
        self.code_requests.append(phone)

    async def sign_in(self, phone=None, code=None, password=None):
        self.sign_ins.append((phone, code, password))
        if code is not None:
            if self.bad_codes:
                self.bad_codes -= 1
                raise RPCError(request=None, message="PHONE_CODE_INVALID", code=400)
            if self.needs_password:
                raise SessionPasswordNeededError(request=None)
        self.authorized = True

    async def get_me(self):
        return make_user(1, username="me")


# ---------------------------------------------------------------------------
# TestLoginFlow
# ---------------------------------------------------------------------------

class TestLoginFlow:

    @pytest.mark.asyncio
    async def test_already_authorized_asks_nothing(self):
        prompter = ScriptedPrompter()
        flow = LoginFlow(FakeLoginClient(authorized=True), prompter)
        assert await flow.run() is LoginState.AUTHENTICATED
        assert prompter.asked == []

    @pytest.mark.asyncio
    async def test_phone_then_code(self):
        client = FakeLoginClient()
        flow = LoginFlow(client, ScriptedPrompter(["+15550001", "12345"]))
        assert await flow.run() is LoginState.AUTHENTICATED
        assert client.code_requests == ["+15550001"]
        assert client.sign_ins == [("+15550001", "12345", None)]

    @pytest.mark.asyncio
    async def test_password_step(self):
        client = FakeLoginClient(needs_password=True)
        flow = LoginFlow(client, ScriptedPrompter(["+15550001", "12345", "hunter2"]))
        assert await flow.run() is LoginState.AUTHENTICATED
        assert client.sign_ins[-1] == (None, None, "hunter2")

    @pytest.mark.asyncio
    async def test_step_moves_one_state_at_a_time(self):
        flow = LoginFlow(FakeLoginClient(needs_password=True), ScriptedPrompter(["+1555", "1", "pw"]))
        flow.state = LoginState.AWAITING_PHONE
        await flow.step()
        assert flow.state is LoginState.AWAITING_CODE
        await flow.step()
        assert flow.state is LoginState.AWAITING_PASSWORD
        await flow.step()
        assert flow.state is LoginState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_empty_phone_fails_without_request(self):
        client = FakeLoginClient()
        flow = LoginFlow(client, ScriptedPrompter([""]))
        assert await flow.run() is LoginState.FAILED
        assert client.code_requests == []
        assert isinstance(flow.error, LoginError)

    @pytest.mark.asyncio
    async def test_rejected_code_is_asked_again(self):
        client = FakeLoginClient(bad_codes=2)
        flow = LoginFlow(client, ScriptedPrompter(["+1555", "1", "2", "3"]))
        assert await flow.run() is LoginState.AUTHENTICATED
        assert len(client.sign_ins) == 3

    @pytest.mark.asyncio
    async def test_too_many_rejected_codes_fail(self):
        client = FakeLoginClient(bad_codes=5)
        flow = LoginFlow(client, ScriptedPrompter(["+1555", "1", "2", "3"]), max_attempts=3)
        assert await flow.run() is LoginState.FAILED
        assert flow.error.message == "PHONE_CODE_INVALID"


# ---------------------------------------------------------------------------
# TestUserSession
# ---------------------------------------------------------------------------

def session_with(client, string_session="saved-session", prompter=None, **overrides):
    settings = Settings(api_id="12345", api_hash="abcdef", string_session=string_session, **overrides)
    created = []

    def factory(session_string, api_id, api_hash):
        created.append((session_string, api_id, api_hash))
        return client

    return UserSession(settings, prompter or ScriptedPrompter(), client_factory=factory), created


class TestUserSession:

    @pytest.mark.asyncio
    async def test_login_with_saved_session(self, capsys):
        client = FakeLoginClient(authorized=True)
        session, created = session_with(client)
        assert await session.login() is client
        assert created == [("saved-session", 12345, "abcdef")]
        out = capsys.readouterr().out
        assert "Logged in as me" in out
        assert "new session string" not in out

    @pytest.mark.asyncio
    async def test_new_session_string_is_shown(self, capsys):
        client = FakeLoginClient(authorized=True, session_string="fresh-session")
        session, _ = session_with(client, string_session="")
        await session.login()
        assert "fresh-session" in capsys.readouterr().out
        assert session.session_string == "fresh-session"

    @pytest.mark.asyncio
    async def test_ensure_client_reuses_connection(self):
        client = FakeLoginClient(authorized=True)
        session, created = session_with(client)
        first = await session.ensure_client()
        second = await session.ensure_client()
        assert first is second
        assert len(created) == 1

    @pytest.mark.asyncio
    async def test_failed_login_disconnects(self):
        client = FakeLoginClient()
        session, _ = session_with(client, prompter=ScriptedPrompter([""]))
        with pytest.raises(LoginError):
            await session.login()
        assert client.disconnects == 1
        assert session.client is None

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        session = UserSession(Settings(), ScriptedPrompter(), client_factory=pytest.fail)
        with pytest.raises(ConfigurationError):
            await session.ensure_client()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        client = FakeLoginClient(authorized=True)
        session, _ = session_with(client)
        await session.ensure_client()
        await session.close()
        await session.close()
        assert client.disconnects == 1
        assert not session.connected

"""User-account session lifecycle and the interactive login.

UserSession owns the single Telethon client of a console run. It is created
by the console, handed to every user-account action, logs in on first use and
is torn down once when the operator exits.
"""
import logging
from enum import Enum

from telethon import TelegramClient
from telethon.errors import RPCError, SessionPasswordNeededError
from telethon.sessions import StringSession

from errors import LoginError, rpc_error_code

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class LoginState(Enum):
    AWAITING_PHONE = "awaiting phone"
    AWAITING_CODE = "awaiting code"
    AWAITING_PASSWORD = "awaiting password"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class LoginFlow:
    """Drives a connected but unauthorized client to AUTHENTICATED or FAILED.

    Each non-terminal state asks the prompter for exactly one input. A
    rejected input is asked again up to MAX_ATTEMPTS times before the flow
    fails.
    """

    def __init__(self, client, prompter, max_attempts=MAX_ATTEMPTS):
        self.client = client
        self.prompter = prompter
        self.max_attempts = max_attempts
        self.state = None
        self.phone = None
        self.error = None
        self._attempts = 0

    async def run(self):
        if await self.client.is_user_authorized():
            self.state = LoginState.AUTHENTICATED
            return self.state

        print("\nFirst time login - you'll need to verify your phone number")
        print("Check your Telegram app for the verification code")
        self._enter(LoginState.AWAITING_PHONE)
        while self.state not in (LoginState.AUTHENTICATED, LoginState.FAILED):
            await self.step()
        return self.state

    async def step(self):
        handlers = {
            LoginState.AWAITING_PHONE: self._ask_phone,
            LoginState.AWAITING_CODE: self._ask_code,
            LoginState.AWAITING_PASSWORD: self._ask_password,
        }
        try:
            next_state = await handlers[self.state]()
        except RPCError as e:
            self.error = e
            self._attempts += 1
            print(f"Login Error: {rpc_error_code(e)}")
            if self._attempts >= self.max_attempts:
                next_state = LoginState.FAILED
            else:
                next_state = self.state
        if next_state is not self.state:
            self._enter(next_state)

    def _enter(self, state):
        logger.info("Login state: %s", state.value)
        self.state = state
        self._attempts = 0

    async def _ask_phone(self):
        phone = self.prompter.text("Enter your phone number (including country code):")
        if not phone:
            self.error = LoginError("Phone number cannot be empty.")
            return LoginState.FAILED
        await self.client.send_code_request(phone)
        self.phone = phone
        return LoginState.AWAITING_CODE

    async def _ask_code(self):
        code = self.prompter.text("Enter the code you received:")
        if not code:
            self.error = LoginError("Login code cannot be empty.")
            return LoginState.FAILED
        try:
            await self.client.sign_in(phone=self.phone, code=code)
        except SessionPasswordNeededError:
            return LoginState.AWAITING_PASSWORD
        return LoginState.AUTHENTICATED

    async def _ask_password(self):
        password = self.prompter.secret("Enter your 2-step verification password:")
        await self.client.sign_in(password=password)
        return LoginState.AUTHENTICATED


def create_client(session_string, api_id, api_hash):
    return TelegramClient(StringSession(session_string or None), api_id, api_hash, connection_retries=5)


class UserSession:
    def __init__(self, settings, prompter, client_factory=create_client):
        self.settings = settings
        self.prompter = prompter
        self.session_string = settings.string_session
        self.client = None
        self._client_factory = client_factory

    @property
    def connected(self):
        return self.client is not None and self.client.is_connected()

    async def login(self):
        """Connect and authenticate, returning the ready client"""
        api_id, api_hash = self.settings.require_api_credentials()
        print("\nLogging in with user account...")
        client = self._client_factory(self.session_string, api_id, api_hash)
        try:
            await client.connect()
            flow = LoginFlow(client, self.prompter)
            if await flow.run() is not LoginState.AUTHENTICATED:
                raise LoginError(f"Login failed ({flow.error}). Cannot proceed.")
            me = await client.get_me()
        except Exception:
            await client.disconnect()
            raise

        print(f"Logged in as {me.username or me.first_name or 'you'}")
        new_session = client.session.save()
        if new_session != self.session_string:
            print("\nA new session string was generated. Consider updating TG_STRING_SESSION in your .env file:")
            print(new_session)
            self.session_string = new_session
        self.client = client
        return client

    async def ensure_client(self):
        if self.connected:
            print("Using existing user session.")
            return self.client
        return await self.login()

    async def close(self):
        if self.connected:
            await self.client.disconnect()
            print("Disconnected Telegram client.")
        self.client = None

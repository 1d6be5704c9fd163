"""Error taxonomy for console actions and the boundary that reports it.

Every action function is wrapped by ``console_action``: whatever it raises is
printed here, grouped by origin, and turned into a ``False`` result so the
menu loop can decide what to show next. Nothing below the action layer
catches errors for reporting purposes.
"""
import functools
import logging

from telethon.errors import RPCError
from telethon.errors.rpcerrorlist import rpc_errors_dict

logger = logging.getLogger(__name__)

# Generated error classes keep the base class message ('BAD_REQUEST' etc.),
# so the Telegram code has to come from the class itself
RPC_ERROR_CODES = {cls: code for code, cls in rpc_errors_dict.items()}


def rpc_error_code(error):
    """Telegram's error string for an RPCError, e.g. 'CHAT_ADMIN_REQUIRED'"""
    return RPC_ERROR_CODES.get(type(error)) or error.message


class ConsoleError(Exception):
    """Base class for errors raised by the console itself"""


class ConfigurationError(ConsoleError):
    """A required credential or token is absent"""


class ValidationError(ConsoleError):
    """Operator input failed a local precondition"""


class ResolutionError(ConsoleError):
    """An identifier could not be mapped to any peer"""

    def __init__(self, identifier, cause):
        self.identifier = identifier
        self.cause = cause
        super().__init__(f'Could not resolve "{identifier}": {cause}')


class WrongPeerTypeError(ConsoleError):
    """An identifier resolved, but to the wrong kind of peer"""

    def __init__(self, identifier, kind, expected="a channel or group"):
        self.identifier = identifier
        self.kind = kind
        self.expected = expected
        super().__init__(f'"{identifier}" resolved to a {kind}, not {expected}.')


class LoginError(ConsoleError):
    """The user-account login did not reach the authenticated state"""


class BotApiError(ConsoleError):
    """The Bot API answered with ok=false"""

    def __init__(self, error_code, description, method=None):
        self.error_code = error_code
        self.description = description
        self.method = method
        super().__init__(f"[{error_code}] {description}")


# Known failure codes and what the operator can do about them
SUGGESTIONS = {
    401: "Invalid Bot Token. Please verify TG_BOT_TOKEN.",
    400: "Check parameters (e.g., chat ID, URL format for setWebhook, command format).",
    403: "The bot was blocked by the user or is not a member of the chat.",
    "CHAT_ADMIN_REQUIRED": (
        "You might need to be an admin in the channel, or its settings restrict "
        "access to the participant list."
    ),
    "INVITE_HASH_EXPIRED": "The invite link has expired.",
    "INVITE_HASH_INVALID": "The invite link is invalid.",
    "INVITE_REQUEST_SENT": "A request to join has already been sent for this link.",
    "USERNAME_NOT_OCCUPIED": "The username does not exist or is not a public entity.",
    "USERNAME_INVALID": "The username is malformed.",
    "GEO_POINT_INVALID": "The provided geo-coordinates are invalid.",
    "LOCATION_PRIVACY_EXCEPTION": (
        "Your account's privacy settings for 'Who can find me by my location' "
        "might be too restrictive for this query."
    ),
    "CHANNEL_PRIVATE": "Cannot access a private channel/group you are not part of.",
    "CHANNEL_INVALID": (
        "If you provided a positive ID for a channel, it might be missing the "
        "-100 prefix (e.g., -100xxxxxxxxxx)."
    ),
    "PEER_ID_INVALID": "Ensure the ID is correct and the peer is known to this account.",
    "USER_ID_INVALID": "Make sure the user identifier is correct.",
    "SEARCH_QUERY_EMPTY": "The search query cannot be empty.",
    "ENTITY_NOT_FOUND": "Please ensure the ID or username is correct and accessible.",
}


def error_key(error):
    """Return the lookup key for SUGGESTIONS, or None"""
    if isinstance(error, ResolutionError):
        return error_key(error.cause) or "ENTITY_NOT_FOUND"
    if isinstance(error, BotApiError):
        return error.error_code
    if isinstance(error, RPCError):
        return rpc_error_code(error)
    return None


def suggestion_for(error):
    key = error_key(error)
    if key in SUGGESTIONS:
        return SUGGESTIONS[key]
    if isinstance(key, str) and key.startswith("INVITE_HASH"):
        return SUGGESTIONS["INVITE_HASH_INVALID"]
    return None


def describe_error(error):
    """Return (category, message) for any exception raised by an action"""
    if isinstance(error, ConfigurationError):
        return "Configuration error", str(error)
    if isinstance(error, ValidationError):
        return "Validation error", str(error)
    if isinstance(error, LoginError):
        return "Login failure", str(error)
    if isinstance(error, WrongPeerTypeError):
        return "Wrong peer type", str(error)
    if isinstance(error, ResolutionError):
        return "Resolution failure", str(error)
    if isinstance(error, BotApiError):
        return "Bot API error", f"Code {error.error_code}: {error.description}"
    if isinstance(error, RPCError):
        return "Telegram API error", f"Code {error.code} ({rpc_error_code(error)}): {error}"
    return "Unexpected error", str(error) or type(error).__name__


def report_error(error, action_description):
    category, message = describe_error(error)
    print(f"\nError during {action_description}:")
    print(f"  {category}: {message}")
    suggestion = suggestion_for(error)
    if suggestion:
        print(f"  Suggestion: {suggestion}")
    if category == "Unexpected error":
        logger.debug("Unexpected error in %s", action_description, exc_info=error)


def console_action(description):
    """Make an async action the error boundary: report failures, return a bool"""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                report_error(e, description)
                return False
            return result is not False
        wrapper.description = description
        return wrapper
    return decorator

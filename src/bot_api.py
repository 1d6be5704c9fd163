"""Bot API client and the bot-token actions of the console.

The client is a thin JSON wrapper over https://api.telegram.org/bot<token>/;
every action below validates its input first and only then talks to the API,
so a rejected input never costs a request.
"""
import json
import logging
from datetime import datetime

import requests

from errors import BotApiError, ConfigurationError, ValidationError, console_action, report_error

logger = logging.getLogger(__name__)

API_BASE = "https://api.telegram.org"
REQUEST_TIMEOUT = 20


class BotApiClient:
    def __init__(self, token, session=None, base_url=API_BASE, timeout=REQUEST_TIMEOUT):
        if not token:
            raise ConfigurationError("Bot token is required for this action. Set TG_BOT_TOKEN or provide it at the prompt.")
        self.token = token
        self.session = session or requests.Session()
        self.base_url = base_url
        self.timeout = timeout

    def call(self, method, **params):
        """POST a Bot API method and return its result, raising BotApiError when ok is false"""
        payload = {key: value for key, value in params.items() if value is not None}
        logger.info("Bot API request: %s", method)
        response = self.session.post(f"{self.base_url}/bot{self.token}/{method}", json=payload, timeout=self.timeout)
        try:
            data = response.json()
        except ValueError:
            response.raise_for_status()
            raise BotApiError(response.status_code, "Response was not valid JSON", method)
        if not data.get('ok'):
            raise BotApiError(data.get('error_code', response.status_code), data.get('description', 'Unknown error'), method)
        return data.get('result')

    def get_me(self):
        return self.call('getMe')

    def get_chat(self, chat_id):
        return self.call('getChat', chat_id=chat_id)

    def get_chat_administrators(self, chat_id):
        return self.call('getChatAdministrators', chat_id=chat_id)

    def send_message(self, chat_id, text):
        return self.call('sendMessage', chat_id=chat_id, text=text)

    def get_webhook_info(self):
        return self.call('getWebhookInfo')

    def set_webhook(self, url, **options):
        return self.call('setWebhook', url=url, **options)

    def delete_webhook(self, drop_pending_updates=False):
        return self.call('deleteWebhook', drop_pending_updates=drop_pending_updates)

    def get_my_commands(self, scope=None, language_code=None):
        return self.call('getMyCommands', scope=scope, language_code=language_code)

    def set_my_commands(self, commands, scope=None, language_code=None):
        return self.call('setMyCommands', commands=commands, scope=scope, language_code=language_code)


def format_timestamp(ts):
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def describe_chat_member(member):
    user = member['user']
    desc = f"    - User ID: {user['id']}, Status: {member['status']}"
    if user.get('username'):
        desc += f", @{user['username']}"
    if user.get('first_name'):
        desc += f" ({user['first_name']}{' ' + user['last_name'] if user.get('last_name') else ''})"
    if member.get('custom_title'):
        desc += f" [Title: {member['custom_title']}]"
    return desc


def split_identifiers(text):
    """Split a comma-separated list of chat identifiers, dropping blanks"""
    if not text:
        return []
    return [part.strip() for part in text.split(',') if part.strip()]


def _check_admins(bot, ident):
    print(f"\nProcessing chat for admin check: {ident}")
    chat = bot.get_chat(ident)
    title = chat.get('title') or chat.get('username') or chat['id']
    print(f"  Found chat: \"{title}\" (Type: {chat['type']})")
    if chat['type'] == 'private':
        print("     This is a private chat with a user. Cannot fetch administrators list.")
        return
    admins = bot.get_chat_administrators(chat['id'])
    if not admins:
        print(f"  No administrators found for \"{title}\", or the bot doesn't have permission.")
        return
    print(f"  Administrators for \"{title}\":")
    for member in admins:
        print(describe_chat_member(member))


@console_action("inspecting bot with token")
async def inspect_bot(bot, chat_idents=""):
    """getMe, then the administrator list of every chat in chat_idents"""
    print("\nFetching bot's own information (getMe)...")
    me = bot.get_me()
    print("Bot Information (via Bot API):")
    print(f"  ID: {me['id']}")
    print(f"  Name: {me.get('first_name')}")
    print(f"  Username: @{me.get('username')}")
    print(f"  Is Bot: {me.get('is_bot')}")
    for key, label in (
        ('can_join_groups', 'Can Join Groups'),
        ('can_read_all_group_messages', 'Can Read All Group Messages'),
        ('supports_inline_queries', 'Supports Inline Queries'),
    ):
        if key in me:
            print(f"  {label}: {me[key]}")

    idents = split_identifiers(chat_idents)
    if not idents:
        print("\nNo chat identifiers provided. Skipping administrator check.")
        return
    print("\n--------------------------------------------------")
    print("Checking administrators in specified chats (bot must be a member):")
    for ident in idents:
        try:
            _check_admins(bot, ident)
        except (BotApiError, requests.RequestException) as e:
            # one unreachable chat should not hide the others
            report_error(e, f'admin check for "{ident}"')
            print("     Possible reasons: Bot is not a member, chat ID is incorrect, or bot lacks permissions.")


@console_action("sending message via bot")
async def send_message_via_bot(bot, chat_id, text):
    if not chat_id or not chat_id.strip() or not text or not text.strip():
        raise ValidationError("Chat ID and non-empty message text are required.")
    bot.send_message(chat_id.strip(), text)
    print(f"Message sent successfully to Chat ID: {chat_id.strip()}")
    print(f"   Content: \"{text[:100]}{'...' if len(text) > 100 else ''}\"")


@console_action("get webhook info")
async def get_bot_webhook_info(bot):
    info = bot.get_webhook_info()
    print("\nCurrent Webhook Information:")
    print(f"  URL: {info.get('url') or 'Not set'}")
    print(f"  Has Custom Certificate: {info.get('has_custom_certificate')}")
    print(f"  Pending Update Count: {info.get('pending_update_count')}")
    if info.get('last_error_date'):
        print(f"  Last Error Date: {format_timestamp(info['last_error_date'])}")
        print(f"  Last Error Message: {info.get('last_error_message') or 'N/A'}")
    if info.get('ip_address'):
        print(f"  IP Address: {info['ip_address']}")
    print(f"  Max Connections: {info.get('max_connections') or 'N/A'}")
    allowed = info.get('allowed_updates')
    print(f"  Allowed Updates: {', '.join(allowed) if allowed else 'All (default)'}")


def validate_webhook_url(url):
    url = (url or '').strip()
    if not url:
        raise ValidationError("Webhook URL is required.")
    if not (url.startswith('https://') or url.startswith('http://localhost')):
        raise ValidationError("Webhook URL must start with https:// (or http://localhost for testing).")
    return url


@console_action("set webhook")
async def set_bot_webhook(bot, url):
    url = validate_webhook_url(url)
    if bot.set_webhook(url):
        print(f"Webhook set successfully to: {url}")
        print("   Bot will now receive updates at this URL (if configured correctly on your server).")
    else:
        print("Failed to set webhook. The API returned false (this is unusual, check logs or token).")
        return False


@console_action("delete webhook")
async def delete_bot_webhook(bot, prompter):
    if not prompter.confirm("Sure you want to delete the webhook?", default=False):
        print("Webhook deletion cancelled.")
        return False
    drop_pending = prompter.confirm("Drop pending updates when deleting webhook?", default=False)
    if bot.delete_webhook(drop_pending_updates=drop_pending):
        print("Webhook deleted successfully.")
        print("   Bot will stop receiving updates via webhook and will revert to getUpdates polling (if you start polling).")
    else:
        print("Failed to delete webhook. The API returned false (this is unusual, check logs or token).")
        return False


@console_action("get bot commands")
async def get_bot_commands(bot, scope=None, language_code=None):
    commands = bot.get_my_commands(scope=scope, language_code=language_code)
    if not commands:
        print("No commands are currently set for this bot (or for the specified scope/language).")
        return
    print("\nCurrent Bot Commands:")
    for cmd in commands:
        print(f"  - /{cmd['command']}: {cmd['description']}")


def parse_commands_json(text):
    """Parse and validate a JSON array of {command, description} objects"""
    try:
        commands = json.loads(text or '')
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}")
    validate_commands(commands)
    return commands


def validate_commands(commands):
    if not isinstance(commands, list) or not all(
        isinstance(c, dict)
        and isinstance(c.get('command'), str) and c['command']
        and isinstance(c.get('description'), str) and c['description']
        for c in commands
    ):
        raise ValidationError("Commands must be an array of {\"command\": string, \"description\": string} objects.")


def _apply_commands(bot, commands, scope, language_code):
    if bot.set_my_commands(commands, scope=scope, language_code=language_code):
        print("Bot commands updated successfully.")
        if not commands:
            print("   All commands have been cleared for the selected scope.")
        return True
    print("Failed to set bot commands. The API returned false.")
    return False


@console_action("set bot commands")
async def set_bot_commands(bot, commands, scope=None, language_code=None):
    """commands is a list of {command, description} dicts or its JSON text"""
    if isinstance(commands, str):
        commands = parse_commands_json(commands)
    validate_commands(commands)
    return _apply_commands(bot, commands, scope, language_code)


@console_action("delete bot commands")
async def delete_bot_commands(bot, scope=None, language_code=None):
    # same request as setting an empty command list for the scope
    return _apply_commands(bot, [], scope, language_code)

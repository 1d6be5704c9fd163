"""Actions that run under the logged-in user account.

Each action takes the UserSession first, validates its own inputs before
touching the network, and only then asks the session for a connected client.
"""
import logging

from telethon.errors import RPCError
from telethon.tl.functions.channels import GetFullChannelRequest
from telethon.tl.functions.messages import GetFullChatRequest

from entities import (
    PeerKind, ParticipantRole, classify_peer, classify_participant, participant_details,
    get_display_name, describe_user,
)
from errors import ValidationError, WrongPeerTypeError, console_action
from export import EXPORT_FORMATS, MemberRecord, export_path, write_records
from resolver import resolve_peer, resolve_chat, resolve_user
from scanner import find_participant, list_admins, collect_members

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_LIMIT = 20
MESSAGE_PREVIEW_LENGTH = 200


def require(value, message):
    """Return the stripped value, or raise ValidationError when it is blank"""
    value = (value or '').strip()
    if not value:
        raise ValidationError(message)
    return value


def parse_limit(text, default):
    """Positive integer from text; blank, invalid or non-positive input gives default"""
    if text is None or not str(text).strip():
        return default
    try:
        limit = int(str(text).strip())
    except ValueError:
        limit = 0
    if limit <= 0:
        shown = "all available" if default is None else default
        print(f"Invalid limit provided. Defaulting to {shown}.")
        return default
    return limit


def yes_no(flag):
    return "Yes" if flag else "No"


def print_user_info(user):
    heading = f"@{user.username}" if user.username else (user.first_name or "User")
    print(f"\nPublic Information for \"{heading}\":")
    print(f"  ID: {user.id}")
    print(f"  First Name: {user.first_name or 'N/A'}")
    print(f"  Last Name: {user.last_name or 'N/A'}")
    print(f"  Username: {'@' + user.username if user.username else 'N/A'}")
    print(f"  Is Bot: {yes_no(user.bot)}")
    if user.bot:
        print_bot_flags(user)
    print(f"  Is Verified: {yes_no(user.verified)}")
    print(f"  Is Scam: {yes_no(user.scam)}")
    print(f"  Is Support: {yes_no(user.support)}")
    if user.phone:
        print(f"  Phone: {user.phone}")


def print_bot_flags(user):
    if user.bot_chat_history is not None:
        print(f"  Can Read All Group Messages: {user.bot_chat_history}")
    if user.bot_inline_placeholder is not None:
        print(f"  Inline Query Placeholder: {user.bot_inline_placeholder or 'N/A'}")


# --- User account ---

@console_action("get my user info")
async def get_my_user_info(session):
    client = await session.ensure_client()
    me = await client.get_me()
    print_user_info(me)


@console_action("get user/bot public info")
async def get_user_public_info(session, user_ident):
    user_ident = require(user_ident, "Identifier cannot be empty.")
    client = await session.ensure_client()
    print(f"\nAction: Get Public Info for User: {user_ident}")
    user = await resolve_user(client, user_ident)
    print_user_info(user)


@console_action("list joined dialogs")
async def list_joined_dialogs(session, limit_input=None):
    limit = parse_limit(limit_input, None)
    client = await session.ensure_client()
    print(f"Fetching dialogs{f' (limit: {limit})' if limit else ''}...")
    dialogs = await client.get_dialogs(limit=limit)

    print("\nYour Joined Channels and Groups:")
    count = 0
    for dialog in dialogs:
        if not (dialog.is_channel or dialog.is_group):
            continue
        count += 1
        kind = classify_peer(dialog.entity)
        details = f"{dialog.title} (ID: {dialog.id}) - Type: {kind.value}"
        if getattr(dialog.entity, 'username', None):
            details += f" - @{dialog.entity.username}"
        print(f"  - {details}")
    if count == 0:
        print("  No channels or groups found in the fetched dialogs.")


# --- Channel / group ---

@console_action("get channel admins")
async def get_channel_admins(session, chat_ident):
    chat_ident = require(chat_ident, "Channel/group identifier cannot be empty.")
    client = await session.ensure_client()
    chat = await resolve_chat(client, chat_ident)
    admins = await list_admins(client, chat)
    if not admins:
        print(f"No admins found or \"{chat.title}\" has no participants with admin rights accessible to you.")
        return
    print(f"\nAdmins of {chat.title}:")
    for participant, user in admins:
        role = classify_participant(participant)
        rank = getattr(participant, 'rank', None)
        line = f"  {user.id}  {get_display_name(user)}"
        if user.username:
            line += f"  @{user.username}"
        line += f"  [{role.value}{': ' + rank if rank else ''}]"
        print(line)


async def show_extended_info(client, entity):
    kind = classify_peer(entity)
    print(f"\nExtended Information for \"{get_display_name(entity)}\" (Type: {kind.value}):")
    if kind in (PeerKind.CHANNEL, PeerKind.SUPERGROUP):
        full = await client(GetFullChannelRequest(channel=entity))
        chat_full = full.full_chat
        channel = next((c for c in full.chats if c.id == entity.id), entity)
        print(f"  Title: {channel.title}")
        print(f"  ID: {entity.id}")
        print(f"  Username: {'@' + channel.username if channel.username else 'N/A'}")
        print(f"  Participants Count: {chat_full.participants_count}")
        print(f"  Admins Count: {chat_full.admins_count or 'N/A'}")
        print(f"  Kicked Count: {chat_full.kicked_count or 'N/A'}")
        print(f"  Banned Count: {chat_full.banned_count or 'N/A'}")
        print(f"  About: {chat_full.about or 'N/A'}")
        print(f"  Can View Participants: {'N/A' if chat_full.can_view_participants is None else chat_full.can_view_participants}")
        print(f"  Linked Chat ID (for discussion): {chat_full.linked_chat_id or 'N/A'}")
        print(f"  Slow Mode Enabled: {yes_no(chat_full.slowmode_seconds)}")
        if chat_full.slowmode_seconds:
            print(f"  Slow Mode Seconds: {chat_full.slowmode_seconds}")
        print(f"  Is Supergroup: {yes_no(channel.megagroup)}")
        print(f"  Is Broadcast Channel: {yes_no(channel.broadcast)}")
        if channel.date:
            print(f"  Created: {channel.date.isoformat()}")
    elif kind is PeerKind.CHAT:
        full = await client(GetFullChatRequest(entity.id))
        chat_full = full.full_chat
        chat = next((c for c in full.chats if c.id == entity.id), entity)
        members = getattr(chat_full.participants, 'participants', None)
        print(f"  Title: {chat.title}")
        print(f"  ID: {entity.id}")
        count = len(members) if members else getattr(chat, 'participants_count', None)
        print(f"  Participants Count: {count or 'N/A'}")
        print(f"  About: {chat_full.about or 'N/A'}")
    else:
        raise WrongPeerTypeError(entity.id, kind.value)


@console_action("get extended channel/group info")
async def get_extended_channel_info(session, chat_ident):
    chat_ident = require(chat_ident, "Channel/group identifier cannot be empty.")
    client = await session.ensure_client()
    chat = await resolve_chat(client, chat_ident)
    await show_extended_info(client, chat)


@console_action("check user status")
async def check_user_status(session, chat_ident, user_ident):
    chat_ident = require(chat_ident, "Channel/group identifier cannot be empty.")
    user_ident = require(user_ident, "User identifier cannot be empty.")
    client = await session.ensure_client()
    chat = await resolve_chat(client, chat_ident)
    user = await resolve_user(client, user_ident)
    label = f"@{user.username}" if user.username else (user.first_name or str(user.id))

    print(f"Checking status for User/Bot ID {user.id} in Channel/Group ID {chat.id}...")
    result = await find_participant(client, chat, user)
    if result is None:
        print(f"\nUser/Bot \"{label}\" NOT found in \"{chat.title}\".")
        return

    print(f"\nUser/Bot \"{label}\" found in \"{chat.title}\".")
    role, details = participant_details(result.participant)
    print(f"  Status: {role.value}")
    for detail in details:
        print(f"    - {detail}")


@console_action("export chat members")
async def export_chat_members(session, chat_ident, fmt, file_name, export_dir='.'):
    chat_ident = require(chat_ident, "Channel/group identifier cannot be empty.")
    file_name = require(file_name, "Export file name cannot be empty.")
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Export format must be one of: {', '.join(EXPORT_FORMATS)}")
    client = await session.ensure_client()
    chat = await resolve_chat(client, chat_ident)

    print(f"Fetching all participants from \"{chat.title}\". This may take a while for large chats...")
    members = await collect_members(client, chat)
    print(f"Total participants fetched: {len(members)}")
    if not members:
        print("No participants found to export.")
        return

    records = [MemberRecord.from_participant(participant, user) for participant, user in members]
    path = export_path(file_name, export_dir)
    write_records(records, path, fmt)
    print(f"Successfully exported {len(records)} members to {path} ({fmt.upper()})")


# --- Messages ---

async def sender_name(client, message):
    sender = message.sender
    if sender is None and message.sender_id:
        try:
            sender = await client.get_entity(message.sender_id)
        except (ValueError, RPCError):
            return f"User ID {message.sender_id} (details unavailable)"
    if sender is None:
        return "Unknown Sender"
    name = get_display_name(sender)
    if getattr(sender, 'username', None):
        name += f" (@{sender.username})"
    return name


async def display_messages(client, messages, chat_title):
    if not messages:
        print(f"  No messages found in {chat_title}.")
        return
    print(f"\nMessages in \"{chat_title}\":")
    # oldest first
    for message in reversed(list(messages)):
        name = await sender_name(client, message)
        content = message.message or ""
        if message.media:
            media = f"[Media: {type(message.media).__name__}]"
            content = f"{content} {media}" if content else media
        if not content:
            content = "[Empty Message]"
        preview = content[:MESSAGE_PREVIEW_LENGTH] + ("..." if len(content) > MESSAGE_PREVIEW_LENGTH else "")
        date = message.date.astimezone().strftime("%Y-%m-%d %H:%M:%S") if message.date else "N/A"
        print(f"  [{date}] {name}: {preview} (ID: {message.id})")


@console_action("list recent messages")
async def list_recent_messages(session, chat_ident, limit_input=None):
    chat_ident = require(chat_ident, "Chat identifier cannot be empty.")
    limit = parse_limit(limit_input, DEFAULT_MESSAGE_LIMIT)
    client = await session.ensure_client()
    entity = await resolve_peer(client, chat_ident)
    title = get_display_name(entity)
    print(f"Fetching last {limit} messages from \"{title}\"...")
    messages = await client.get_messages(entity, limit=limit)
    await display_messages(client, messages, title)


@console_action("search messages")
async def search_messages(session, chat_ident, query, limit_input=None):
    chat_ident = require(chat_ident, "Chat identifier cannot be empty.")
    query = require(query, "Search query cannot be empty.")
    limit = parse_limit(limit_input, DEFAULT_MESSAGE_LIMIT)
    client = await session.ensure_client()
    entity = await resolve_peer(client, chat_ident)
    title = get_display_name(entity)
    print(f"Searching for \"{query}\" in \"{title}\" (limit {limit} messages)...")
    messages = await client.get_messages(entity, limit=limit, search=query)
    await display_messages(client, messages, title)


# --- Bot information ---

@console_action("get bot public info")
async def get_bot_public_info(session, bot_ident):
    bot_ident = require(bot_ident, "Bot identifier cannot be empty.")
    client = await session.ensure_client()
    entity = await resolve_peer(client, bot_ident)
    kind = classify_peer(entity)
    if kind is not PeerKind.BOT:
        raise WrongPeerTypeError(bot_ident, kind.value, expected="a bot")
    print("\nBot Information (Public):")
    print(f"  ID: {entity.id}")
    print(f"  First Name: {entity.first_name or 'N/A'}")
    print(f"  Last Name: {entity.last_name or 'N/A'}")
    print(f"  Username: {'@' + entity.username if entity.username else 'N/A'}")
    print_bot_flags(entity)


@console_action("get bot inviter")
async def get_bot_inviter(session, chat_ident, bot_ident):
    chat_ident = require(chat_ident, "Channel identifier cannot be empty.")
    bot_ident = require(bot_ident, "Bot identifier cannot be empty.")
    client = await session.ensure_client()
    chat = await resolve_chat(client, chat_ident)
    print(f"Operating in {classify_peer(chat).value}: \"{chat.title}\" (ID: {chat.id})")
    bot = await resolve_peer(client, bot_ident)
    bot_kind = classify_peer(bot)
    if bot_kind is not PeerKind.BOT:
        raise WrongPeerTypeError(bot_ident, bot_kind.value, expected="a bot")
    bot_label = bot.username or bot.first_name
    print(f"Looking for bot: \"{bot_label}\" (ID: {bot.id})")

    print(f"Fetching participants for \"{chat.title}\"... (this may take a moment)")
    result = await find_participant(client, chat, bot)
    if result is None:
        print(f"\nBot \"{bot_label}\" was NOT found in \"{chat.title}\".")
        return

    print(f"\nBot \"{bot_label}\" found in \"{chat.title}\".")
    role, _ = participant_details(result.participant)
    inviter_id = getattr(result.participant, 'inviter_id', None)
    if inviter_id:
        print(f"Bot was added to this chat by User ID: {inviter_id}")
        inviter = result.inviter
        if inviter is None:
            try:
                inviter = await client.get_entity(inviter_id)
            except (ValueError, RPCError) as e:
                logger.info("Inviter %s is not resolvable: %s", inviter_id, e)
        if inviter is not None:
            print(f"   Known details for inviter: {describe_user(inviter)}")
        else:
            print("   (Inviter's details are not available to this account, or they have left the chat.)")
    elif role is ParticipantRole.CREATOR:
        print("This bot is the creator of the chat.")
    else:
        print("No specific inviter ID found for the bot in this chat's participant list.")

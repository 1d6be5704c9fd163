"""Public-data lookups: chat search, t.me link analysis and geo-located peers."""
import logging
import re

from telethon.errors import RPCError
from telethon.tl.functions.contacts import SearchRequest, GetLocatedRequest
from telethon.tl.functions.messages import CheckChatInviteRequest
from telethon.tl.types import (
    InputGeoPoint, UpdatePeerLocated, PeerLocated, PeerUser, PeerChat, PeerChannel,
)

from entities import PeerKind, InviteKind, classify_peer, classify_invite, get_display_name, format_date
from errors import ValidationError, console_action
from resolver import resolve_peer
from user_actions import require, parse_limit, print_user_info, show_extended_info

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 10
DEFAULT_ACCURACY_RADIUS = 500
MAX_ACCURACY_RADIUS = 3000

INVITE_LINK_RE = re.compile(r'^(?:https?://)?(?:t|telegram)\.me/(?:joinchat/|\+)([A-Za-z0-9_-]+)/?$', re.I)
PUBLIC_LINK_RE = re.compile(r'^(?:https?://)?(?:t|telegram)\.me/(?!joinchat/|c/|s/)([A-Za-z0-9_]{5,32})/?$', re.I)


def parse_telegram_link(link):
    """Return ('invite', hash), ('public', username) or (None, None)"""
    link = link.strip()
    match = INVITE_LINK_RE.match(link)
    if match:
        return 'invite', match.group(1)
    match = PUBLIC_LINK_RE.match(link)
    if match:
        return 'public', match.group(1)
    return None, None


def invite_peer_kind(invite):
    """PeerKind of the chat behind a ChatInvite (which is not itself a chat)"""
    if not invite.channel:
        return PeerKind.CHAT
    if invite.megagroup:
        return PeerKind.SUPERGROUP
    return PeerKind.CHANNEL


@console_action("public channel/group search")
async def search_public_chats(session, keyword, limit_input=None):
    keyword = require(keyword, "Keyword cannot be empty.")
    limit = parse_limit(limit_input, DEFAULT_SEARCH_LIMIT)
    client = await session.ensure_client()
    print(f"Searching for up to {limit} public channels/groups matching \"{keyword}\"...")

    result = await client(SearchRequest(q=keyword, limit=limit))
    found = 0
    for chat in result.chats:
        kind = classify_peer(chat)
        if not kind.is_group_like:
            continue
        if found == 0:
            print(f"\nFound Public Channels/Groups for \"{keyword}\":")
        found += 1
        print(f"  - Title: {chat.title or 'N/A'}")
        print(f"    ID: {chat.id}")
        print(f"    Username: {'@' + chat.username if getattr(chat, 'username', None) else 'N/A'}")
        print(f"    Type: {kind.value}")
        print(f"    Participants: {getattr(chat, 'participants_count', None) or 'N/A (or private)'}")
    if found == 0:
        print(f"  No public channels or groups found matching \"{keyword}\".")


async def _show_invite(client, invite_hash):
    print(f"\nInvite Link Detected. Hash: {invite_hash}")
    invite = await client(CheckChatInviteRequest(hash=invite_hash))
    kind = classify_invite(invite)
    print("\nInvite Details:")
    if kind is InviteKind.ALREADY:
        print(f"  Title: {invite.chat.title}")
        print("  You are already a participant in this chat.")
        await show_extended_info(client, invite.chat)
    elif kind is InviteKind.PEEK:
        chat = invite.chat
        print(f"  Title: {chat.title}")
        print(f"  Type: {classify_peer(chat).value}")
        print(f"  Participants: {getattr(chat, 'participants_count', None) or 'N/A'}")
        if getattr(chat, 'username', None):
            print(f"  Username: @{chat.username}")
        print(f"  Preview Expires: {format_date(invite.expires)}")
    elif kind is InviteKind.INVITE:
        print(f"  Title: {invite.title}")
        print(f"  Type: {invite_peer_kind(invite).value}")
        print(f"  Participants: {invite.participants_count}")
        if invite.about:
            print(f"  About: {invite.about}")
        if invite.request_needed:
            print("  Request to Join Needed: Yes")
        if invite.participants:
            print(f"  Known members: {', '.join(get_display_name(u) for u in invite.participants)}")


async def _show_public_entity(client, username):
    print(f"\nPublic Username/Channel Link Detected: @{username}")
    entity = await resolve_peer(client, f"@{username}")
    kind = classify_peer(entity)
    if kind.is_group_like:
        await show_extended_info(client, entity)
    else:
        print_user_info(entity)


@console_action("analyzing Telegram link")
async def analyze_link(session, link):
    link = require(link, "Link cannot be empty.")
    link_type, value = parse_telegram_link(link)
    if link_type is None:
        raise ValidationError(
            "Link does not match known t.me/joinchat/HASH, t.me/+HASH or t.me/username patterns. "
            "Message links (t.me/c/... or t.me/username/123) are not supported."
        )
    client = await session.ensure_client()
    if link_type == 'invite':
        await _show_invite(client, value)
    else:
        await _show_public_entity(client, value)


def parse_coordinates(lat_text, long_text):
    try:
        latitude = float(lat_text)
        longitude = float(long_text)
    except (TypeError, ValueError):
        raise ValidationError("Invalid Latitude or Longitude.")
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise ValidationError("Latitude must be within [-90, 90] and longitude within [-180, 180].")
    return latitude, longitude


def parse_accuracy_radius(text):
    if text is None or not str(text).strip():
        return DEFAULT_ACCURACY_RADIUS
    try:
        radius = int(str(text).strip())
    except ValueError:
        radius = 0
    if radius <= 0:
        print(f"Invalid accuracy radius. Defaulting to {DEFAULT_ACCURACY_RADIUS}m.")
        return DEFAULT_ACCURACY_RADIUS
    if radius > MAX_ACCURACY_RADIUS:
        print(f"Accuracy radius {radius}m is too large, capping at {MAX_ACCURACY_RADIUS}m.")
        return MAX_ACCURACY_RADIUS
    return radius


async def _located_entity(client, peer, users, chats):
    if isinstance(peer, PeerUser):
        entity = users.get(peer.user_id)
    elif isinstance(peer, PeerChat):
        entity = chats.get(peer.chat_id)
    elif isinstance(peer, PeerChannel):
        entity = chats.get(peer.channel_id)
    else:
        entity = None
    if entity is None:
        entity = await client.get_entity(peer)
    return entity


@console_action("finding located peers")
async def find_located_peers(session, lat_text, long_text, radius_text=None):
    latitude, longitude = parse_coordinates(lat_text, long_text)
    radius = parse_accuracy_radius(radius_text)
    client = await session.ensure_client()
    print(f"Finding users/chats near Latitude: {latitude}, Longitude: {longitude} (accuracy radius {radius}m)")

    result = await client(GetLocatedRequest(
        geo_point=InputGeoPoint(lat=latitude, long=longitude, accuracy_radius=radius),
    ))
    users = {u.id: u for u in getattr(result, 'users', [])}
    chats = {c.id: c for c in getattr(result, 'chats', [])}

    found = 0
    for update in getattr(result, 'updates', []):
        if not isinstance(update, UpdatePeerLocated):
            continue
        for located in update.peers:
            if not isinstance(located, PeerLocated):
                continue
            if found == 0:
                print("\nNearby Peers Found (Users and Chats with location sharing enabled):")
            found += 1
            try:
                entity = await _located_entity(client, located.peer, users, chats)
                kind = classify_peer(entity)
                username = getattr(entity, 'username', None)
                details = f"{get_display_name(entity)} {'(@' + username + ')' if username else ''} (ID: {entity.id}) - {kind.value}"
            except (ValueError, RPCError) as e:
                logger.info("Could not load located peer %s: %s", located.peer, e)
                details = f"(Error fetching entity details for {type(located.peer).__name__}: {e})"
            print(f"  - {details}")
            print(f"    Distance: {located.distance} meters")
            if located.expires:
                print(f"    Location Sharing Expires: {format_date(located.expires)}")
            print("    ----")

    if found == 0:
        print("  No users or GeoChats found near the specified coordinates.")
        print("     Users must have enabled location sharing and be nearby.")

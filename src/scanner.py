"""Paginated walks over a chat's member list.

Channels and supergroups are read with channels.GetParticipantsRequest in
pages of PAGE_SIZE; a walk ends on an empty page or on the first page that is
shorter than the page size, so a membership of n costs at most
ceil(n / PAGE_SIZE) + 1 requests. Basic chats return their whole member list
from messages.GetFullChatRequest and are treated as a single page.
"""
import logging
from dataclasses import dataclass, field

from telethon.errors import RPCError
from telethon.tl.functions.channels import GetParticipantsRequest
from telethon.tl.functions.messages import GetFullChatRequest
from telethon.tl.types import (
    ChannelParticipantsRecent, ChannelParticipantsSearch, ChannelParticipantsAdmins,
)
from telethon.tl.types.channels import ChannelParticipantsNotModified
from tqdm import tqdm

from entities import PeerKind, ParticipantRole, classify_peer, classify_participant, participant_user_id

logger = logging.getLogger(__name__)

PAGE_SIZE = 200
SEARCH_PAGE_SIZE = 10


@dataclass
class ParticipantPage:
    participants: list
    users: dict
    total: int = 0


@dataclass
class ScanResult:
    participant: object
    user: object
    users: dict = field(default_factory=dict)

    @property
    def inviter(self):
        """The inviting user, when the participant carries an inviter id we have seen"""
        inviter_id = getattr(self.participant, 'inviter_id', None)
        if inviter_id is None:
            return None
        return self.users.get(inviter_id)


def _users_by_id(users):
    return {user.id: user for user in users}


async def _fetch_channel_page(client, channel, participant_filter, offset, limit):
    result = await client(GetParticipantsRequest(
        channel=channel,
        filter=participant_filter,
        offset=offset,
        limit=limit,
        hash=0,
    ))
    if isinstance(result, ChannelParticipantsNotModified):
        return ParticipantPage([], {})
    return ParticipantPage(list(result.participants), _users_by_id(result.users), result.count)


async def iter_participant_pages(client, chat, participant_filter=None, page_size=PAGE_SIZE):
    """Yield ParticipantPage objects until the member list is exhausted"""
    if classify_peer(chat) is PeerKind.CHAT:
        full = await client(GetFullChatRequest(chat.id))
        participants = list(getattr(full.full_chat.participants, 'participants', None) or [])
        if participants:
            yield ParticipantPage(participants, _users_by_id(full.users), len(participants))
        return

    if participant_filter is None:
        participant_filter = ChannelParticipantsRecent()
    offset = 0
    pages = 0
    while True:
        page = await _fetch_channel_page(client, chat, participant_filter, offset, page_size)
        pages += 1
        if not page.participants:
            break
        yield page
        if len(page.participants) < page_size:
            break
        offset += len(page.participants)
    logger.info("Participant walk of %s finished after %d page(s)", chat.id, pages)


def _match(participants, target_id):
    for participant in participants:
        if participant_user_id(participant) == target_id:
            return participant
    return None


async def find_participant(client, chat, user, page_size=PAGE_SIZE):
    """Locate user in chat, returning a ScanResult or None when absent.

    If the user has a username, a narrow server-side search is tried first;
    otherwise (or when it misses) the full member list is paged through until
    the user turns up.
    """
    target_id = user.id
    users_seen = {}

    if getattr(user, 'username', None) and classify_peer(chat) is not PeerKind.CHAT:
        try:
            page = await _fetch_channel_page(
                client, chat, ChannelParticipantsSearch(user.username), 0, SEARCH_PAGE_SIZE
            )
        except RPCError as e:
            logger.info("Participant search for @%s failed (%s), falling back to full scan", user.username, e)
        else:
            users_seen.update(page.users)
            found = _match(page.participants, target_id)
            if found is not None:
                return ScanResult(found, user, users_seen)

    print("Searching for user by iterating participants (this might take a moment for large chats)...")
    async for page in iter_participant_pages(client, chat, page_size=page_size):
        users_seen.update(page.users)
        found = _match(page.participants, target_id)
        if found is not None:
            return ScanResult(found, user, users_seen)
    return None


async def list_admins(client, chat):
    """Return (participant, user) pairs for the creator and admins of chat"""
    admins = []
    if classify_peer(chat) is PeerKind.CHAT:
        pages = iter_participant_pages(client, chat)
    else:
        pages = iter_participant_pages(client, chat, ChannelParticipantsAdmins())
    async for page in pages:
        for participant in page.participants:
            role = classify_participant(participant)
            if role not in (ParticipantRole.CREATOR, ParticipantRole.ADMIN):
                continue
            user = page.users.get(participant_user_id(participant))
            if user is not None:
                admins.append((participant, user))
    return admins


async def collect_members(client, chat, page_size=PAGE_SIZE, progress=True):
    """Walk every page and return all (participant, user) pairs"""
    members = []
    with tqdm(desc="Fetching participants", unit="member", disable=not progress) as pbar:
        async for page in iter_participant_pages(client, chat, page_size=page_size):
            if page.total and pbar.total is None:
                pbar.total = page.total
                pbar.refresh()
            for participant in page.participants:
                user = page.users.get(participant_user_id(participant))
                if user is None:
                    logger.debug("No user object for participant %s", participant_user_id(participant))
                    continue
                members.append((participant, user))
            pbar.update(len(page.participants))
    return members

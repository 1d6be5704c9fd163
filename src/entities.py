"""Closed variants over the Telegram objects the console consumes.

Telethon hands back many concrete TL classes; the console only cares about a
handful of shapes. Each family gets an enum and one classification function,
and the rest of the code branches on the enum instead of on class names.
"""
from enum import Enum

from telethon.tl.types import (
    Channel, ChannelForbidden, Chat, ChatForbidden, ChatEmpty, User,
    ChannelParticipantCreator, ChannelParticipantAdmin,
    ChannelParticipantBanned, ChannelParticipantLeft,
    ChatParticipantCreator, ChatParticipantAdmin,
    ChatInviteAlready, ChatInvitePeek, ChatInvite,
    PeerUser,
)


class PeerKind(Enum):
    CHANNEL = "Channel (Broadcast)"
    SUPERGROUP = "Supergroup"
    CHAT = "Group (Basic)"
    USER = "User"
    BOT = "Bot"

    @property
    def is_group_like(self):
        return self in (PeerKind.CHANNEL, PeerKind.SUPERGROUP, PeerKind.CHAT)

    @property
    def is_user_like(self):
        return self in (PeerKind.USER, PeerKind.BOT)


class ParticipantRole(Enum):
    CREATOR = "Creator"
    ADMIN = "Admin"
    BANNED = "Banned/Restricted"
    LEFT = "Left"
    MEMBER = "Member"


class InviteKind(Enum):
    ALREADY = "Already a participant"
    PEEK = "Preview available"
    INVITE = "Invite"


def classify_peer(entity):
    """Map a resolved entity to its PeerKind"""
    if isinstance(entity, (Channel, ChannelForbidden)):
        return PeerKind.SUPERGROUP if entity.megagroup else PeerKind.CHANNEL
    if isinstance(entity, (Chat, ChatForbidden, ChatEmpty)):
        return PeerKind.CHAT
    if isinstance(entity, User):
        return PeerKind.BOT if entity.bot else PeerKind.USER
    raise TypeError(f"Unsupported peer type: {type(entity).__name__}")


def classify_participant(participant):
    """Map a channel or basic-chat participant to its ParticipantRole"""
    if isinstance(participant, (ChannelParticipantCreator, ChatParticipantCreator)):
        return ParticipantRole.CREATOR
    if isinstance(participant, (ChannelParticipantAdmin, ChatParticipantAdmin)):
        return ParticipantRole.ADMIN
    if isinstance(participant, ChannelParticipantBanned):
        return ParticipantRole.BANNED
    if isinstance(participant, ChannelParticipantLeft):
        return ParticipantRole.LEFT
    return ParticipantRole.MEMBER


def classify_invite(invite):
    if isinstance(invite, ChatInviteAlready):
        return InviteKind.ALREADY
    if isinstance(invite, ChatInvitePeek):
        return InviteKind.PEEK
    if isinstance(invite, ChatInvite):
        return InviteKind.INVITE
    raise TypeError(f"Unsupported invite type: {type(invite).__name__}")


def participant_user_id(participant):
    """Stable user id of a participant (banned/left entries carry a peer instead)"""
    user_id = getattr(participant, 'user_id', None)
    if user_id is not None:
        return user_id
    peer = getattr(participant, 'peer', None)
    if isinstance(peer, PeerUser):
        return peer.user_id
    return None


def true_flags(rights):
    """Names of the flags set to True on a rights object"""
    if rights is None:
        return []
    return [key for key, value in rights.to_dict().items() if value is True]


def format_date(dt):
    if dt is None:
        return "N/A"
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def participant_details(participant):
    """Return (role, details) where details is a list of display strings"""
    role = classify_participant(participant)
    details = []
    if role is ParticipantRole.ADMIN:
        admin_rights = getattr(participant, 'admin_rights', None)
        if admin_rights is not None:
            details.append(f"Admin Rights: {', '.join(true_flags(admin_rights)) or 'None specified'}")
        if getattr(participant, 'rank', None):
            details.append(f"Custom Title (Rank): {participant.rank}")
    elif role is ParticipantRole.BANNED:
        if participant.kicked_by:
            details.append(f"Kicked by: User ID {participant.kicked_by}")
        if participant.date:
            details.append(f"Date: {format_date(participant.date)}")
        if participant.banned_rights is not None:
            restrictions = true_flags(participant.banned_rights)
            details.append(f"Restrictions: {', '.join(restrictions) or 'General Ban'}")
    elif role is ParticipantRole.CREATOR:
        if getattr(participant, 'rank', None):
            details.append(f"Custom Title (Rank): {participant.rank}")
    return role, details


def get_display_name(entity):
    """Get a display name for any type of chat entity"""
    if isinstance(entity, User):
        return f"{entity.first_name or ''} {entity.last_name or ''}".strip() or f"User ID {entity.id}"
    elif isinstance(entity, (Chat, Channel, ChatForbidden, ChannelForbidden)):
        return entity.title
    return "Unknown"


def describe_user(user):
    """One-line summary: name, @username and id"""
    name = get_display_name(user)
    if getattr(user, 'username', None):
        name += f" (@{user.username})"
    return f"{name} (ID: {user.id})"

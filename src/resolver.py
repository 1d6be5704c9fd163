"""Turn operator-supplied identifiers into Telethon entities.

Accepted shapes, checked in order:

    @username       resolved as a username, never parsed as a number
    -100<digits>    marked channel id, resolved with that exact value
    -<digits>       legacy basic-chat id
    <digits>        tried as-is (users, bots); on failure retried once as
                    -100<digits>, since channel ids are often copied without
                    their prefix. If both fail the first error is raised.
    anything else   handed to get_entity unchanged (t.me links and the like)

Note that the bare-digit retry happens whatever the first failure was, so a
user id that is temporarily unreachable can end up retried as a channel.
"""
import logging
import re

from entities import classify_peer
from errors import ResolutionError, ValidationError, WrongPeerTypeError

logger = logging.getLogger(__name__)

CHANNEL_ID_RE = re.compile(r'^-100\d+$')
LEGACY_CHAT_ID_RE = re.compile(r'^-\d+$')
BARE_ID_RE = re.compile(r'^\d+$')


async def _lookup(client, identifier):
    """Resolve one normalized identifier, without fallbacks"""
    if identifier.startswith('@'):
        logger.info('Identifier "%s" looks like a username', identifier)
        return await client.get_entity(identifier)

    if CHANNEL_ID_RE.match(identifier):
        logger.info('Identifier "%s" looks like a prefixed channel ID', identifier)
        return await client.get_entity(int(identifier))

    if LEGACY_CHAT_ID_RE.match(identifier):
        logger.info('Identifier "%s" looks like a legacy chat ID', identifier)
        return await client.get_entity(int(identifier))

    if BARE_ID_RE.match(identifier):
        logger.info('Positive ID "%s" provided, resolving as is', identifier)
        try:
            return await client.get_entity(int(identifier))
        except Exception as initial_error:
            channel_peer_id = f"-100{identifier}"
            logger.info(
                'Initial lookup for "%s" failed (%s), retrying as channel peer ID %s',
                identifier, initial_error, channel_peer_id,
            )
            try:
                return await client.get_entity(int(channel_peer_id))
            except Exception as prefixed_error:
                logger.info('Retry with %s also failed: %s', channel_peer_id, prefixed_error)
                raise initial_error

    logger.info('Identifier "%s" is not a username or numeric ID, resolving directly', identifier)
    return await client.get_entity(identifier)


async def resolve_peer(client, identifier):
    """Resolve any identifier to an entity or raise ResolutionError"""
    identifier = str(identifier).strip()
    if not identifier:
        raise ValidationError("Identifier cannot be empty.")
    try:
        entity = await _lookup(client, identifier)
    except Exception as e:
        raise ResolutionError(identifier, e) from e
    if entity is None:
        raise ResolutionError(identifier, "no entity returned")
    return entity


async def resolve_chat(client, identifier):
    """Resolve an identifier that must name a channel, supergroup or basic chat"""
    entity = await resolve_peer(client, identifier)
    kind = classify_peer(entity)
    if not kind.is_group_like:
        raise WrongPeerTypeError(identifier, kind.value)
    logger.info('Resolved "%s" to %s (ID: %s)', identifier, kind.value, entity.id)
    return entity


async def resolve_user(client, identifier):
    """Resolve an identifier that must name a user or a bot"""
    entity = await resolve_peer(client, identifier)
    kind = classify_peer(entity)
    if not kind.is_user_like:
        raise WrongPeerTypeError(identifier, kind.value, expected="a user or bot")
    return entity

"""Wire a configured Slack client, cache store and resolver together."""

from __future__ import annotations

import logging

from slack_bridge.clients.slack import SlackClient
from slack_bridge.memory.cache import CacheStore
from slack_bridge.resolver.pipeline import EventResolver
from slack_bridge.users import UserStore

logger = logging.getLogger(__name__)


async def create_resolver(
    users: UserStore | None = None,
    *,
    client: SlackClient | None = None,
    store: CacheStore | None = None,
    sync_users: bool | None = None,
) -> EventResolver:
    """
    Build an :class:`EventResolver` for the bot identified by ``auth.test``.

    :param users: Host user store; defaults to an in-memory store.
    :param client: Pre-built client. Built from config (sharing ``store``)
        when omitted.
    :param sync_users: Load every workspace member into ``users`` first;
        defaults to ``core.SYNC_USERS``.
    """
    client = client or SlackClient.from_config(store)
    session = await client.session()
    logger.info("Resolving events as %s (bot %s)", session.user_id, session.bot_id)

    resolver = EventResolver(client, session, users)
    if sync_users is None:
        from slack_bridge.config import core

        sync_users = core.SYNC_USERS
    if sync_users:
        await client.sync_users(resolver.users)
    return resolver

"""Slack Web API lookups backed by the shared cache store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, List, Optional

import aiohttp
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web.async_client import AsyncWebClient

from slack_bridge.errors import UpstreamLookupError
from slack_bridge.memory.cache import BUCKET_NAMES, CacheStore
from slack_bridge.memory.pagination import Page, load_all
from slack_bridge.resolver.bot_map import BotUserMap
from slack_bridge.resolver.conversation import Conversation
from slack_bridge.resolver.identity import HumanUser
from slack_bridge.users import UserStore

logger = logging.getLogger(__name__)

_ALL = "all"


@dataclass(frozen=True, slots=True)
class Session:
    """Identity of the connected bot, used to drop its own echoes."""

    user_id: str
    bot_id: Optional[str] = None
    team_id: Optional[str] = None

    @classmethod
    def from_auth_test(cls, response: Dict[str, Any]) -> "Session":
        return cls(
            user_id=str(response["user_id"]),
            bot_id=response.get("bot_id"),
            team_id=response.get("team_id"),
        )


def _next_cursor(response: Any) -> Optional[str]:
    meta = response.get("response_metadata") or {}
    return meta.get("next_cursor") or None


class SlackClient:
    """
    Raw Slack lookups plus their cached, resolved counterparts.

    ``fetch_*`` methods always hit the Web API and raise
    :class:`UpstreamLookupError` on any failure. The resolved accessors
    (``user_by_id``, ``conversation_by_id``, ...) go through ``store`` so
    concurrent callers share one request per key.
    """

    def __init__(
        self,
        web: AsyncWebClient,
        store: CacheStore | None = None,
        *,
        bot_map: BotUserMap | None = None,
        page_size: int = 100,
        conversation_types: str = "public_channel,private_channel,mpim,im",
        bucket_options: Dict[str, dict] | None = None,
    ) -> None:
        self.web = web
        self.store = store or CacheStore()
        self.bot_map = bot_map or BotUserMap()
        self.page_size = page_size
        self.conversation_types = conversation_types

        options = bucket_options or {}
        for name in BUCKET_NAMES:
            self.store.create_bucket(name, **options.get(name, {}))

    @classmethod
    def from_config(cls, store: CacheStore | None = None) -> "SlackClient":
        """Build a client from ``slack_bridge.config``."""

        from slack_bridge.config import cache as cache_cfg, core

        web = AsyncWebClient(token=core.SLACK_BOT_TOKEN)
        logger.debug("Slack client initialized (page_size=%d)", core.PAGE_SIZE)
        return cls(
            web,
            store,
            page_size=core.PAGE_SIZE,
            conversation_types=core.CONVERSATION_TYPES,
            bucket_options={name: cache_cfg.bucket_options(name) for name in BUCKET_NAMES},
        )

    # ------------------------------------------------------------------ #
    # RAW Web API calls
    # ------------------------------------------------------------------ #

    async def _call(self, method: str, key: Optional[str], request: Awaitable[Any]) -> Any:
        try:
            response = await request
        except SlackApiError as exc:
            error = exc.response.get("error") if exc.response is not None else None
            raise UpstreamLookupError(method, key, error or str(exc)) from exc
        except SlackClientError as exc:
            raise UpstreamLookupError(method, key, str(exc) or repr(exc)) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise UpstreamLookupError(method, key, repr(exc)) from exc

        if not response.get("ok"):
            raise UpstreamLookupError(method, key, response.get("error") or "not ok")
        return response

    async def session(self) -> Session:
        """Describe the connected identity via ``auth.test``."""

        response = await self._call("auth.test", None, self.web.auth_test())
        return Session.from_auth_test(response)

    async def fetch_user_info(self, user_id: str) -> Dict[str, Any]:
        response = await self._call("users.info", user_id, self.web.users_info(user=user_id))
        return response["user"]

    async def fetch_bot_info(self, bot_id: str) -> Dict[str, Any]:
        response = await self._call("bots.info", bot_id, self.web.bots_info(bot=bot_id))
        return response["bot"]

    async def fetch_conversation_info(self, conversation_id: str) -> Dict[str, Any]:
        response = await self._call(
            "conversations.info",
            conversation_id,
            self.web.conversations_info(channel=conversation_id),
        )
        return response["channel"]

    async def fetch_users_page(self, cursor: Optional[str] = None) -> Page[Dict[str, Any]]:
        response = await self._call(
            "users.list", cursor, self.web.users_list(limit=self.page_size, cursor=cursor)
        )
        return Page(list(response.get("members") or []), _next_cursor(response))

    async def fetch_conversations_page(
        self, cursor: Optional[str] = None
    ) -> Page[Dict[str, Any]]:
        response = await self._call(
            "conversations.list",
            cursor,
            self.web.conversations_list(
                limit=self.page_size,
                cursor=cursor,
                types=self.conversation_types,
                exclude_archived=True,
            ),
        )
        return Page(list(response.get("channels") or []), _next_cursor(response))

    # ------------------------------------------------------------------ #
    # CACHED lookups
    # ------------------------------------------------------------------ #

    async def user_by_id(self, user_id: str) -> HumanUser:
        async def _fetch() -> HumanUser:
            return HumanUser.from_payload(await self.fetch_user_info(user_id))

        return await self.store.get_or_populate("user_by_id", user_id, _fetch)

    async def bot_by_id(self, bot_id: str) -> Dict[str, Any]:
        return await self.store.get_or_populate(
            "bot_by_id", bot_id, lambda: self.fetch_bot_info(bot_id)
        )

    async def conversation_by_id(self, conversation_id: str) -> Conversation:
        async def _fetch() -> Conversation:
            return Conversation.from_payload(
                await self.fetch_conversation_info(conversation_id)
            )

        return await self.store.get_or_populate("conversation_by_id", conversation_id, _fetch)

    async def load_users(self) -> List[Dict[str, Any]]:
        """Return every workspace member, cached as one aggregate."""

        return await self.store.get_or_populate(
            "user_list", _ALL, lambda: load_all(self.fetch_users_page)
        )

    async def load_conversations(self) -> List[Dict[str, Any]]:
        """Return every visible conversation, cached as one aggregate."""

        return await self.store.get_or_populate(
            "conversation_list", _ALL, lambda: load_all(self.fetch_conversations_page)
        )

    async def conversation_by_name(self, name: str) -> Conversation | None:
        """
        Find a conversation by name (``#general`` or ``general``).

        A failed page fails the whole lookup rather than searching a partial
        list.
        """
        target = name.lstrip("#")
        for payload in await self.load_conversations():
            if payload.get("name") == target:
                return Conversation.from_payload(payload)
        return None

    async def sync_users(self, users: UserStore) -> int:
        """Upsert every workspace member into ``users``; return the count."""

        members = await self.load_users()
        for member in members:
            user = HumanUser.from_payload(member)
            users.upsert(user.id, user.to_attributes())
        logger.info("Synced %d Slack users", len(members))
        return len(members)


__all__ = ["Session", "SlackClient"]

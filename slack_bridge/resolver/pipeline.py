"""
Event resolution pipeline.

:class:`EventResolver` turns one raw Slack frame into at most one
:class:`~slack_bridge.messages.ResolvedMessage`:

1. drop the bot's own echoes
2. short-circuit ``user_change`` frames carrying a full user object
3. resolve the actor and the conversation (concurrently)
4. upsert the actor, with its ``room``, into the host user store
5. hand the message to the registered consumer

Lookup failures and malformed frames only drop the frame at hand; they are
logged here and never raised to the transport.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from slack_bridge.clients.slack import Session, SlackClient
from slack_bridge.errors import MalformedEventError, UpstreamLookupError
from slack_bridge.messages import MessageKind, ResolvedMessage
from slack_bridge.users import MemoryUserStore, UserStore

from . import events as ev
from .bot_map import BotMapping
from .conversation import Conversation, is_conversation_payload
from .events import Event
from .identity import AnonymousActor, BotActor, HumanUser, Identity, is_user_payload

logger = logging.getLogger(__name__)

ResolvedCallback = Callable[[ResolvedMessage], Union[None, Awaitable[None]]]

_MEMBERSHIP_KINDS = {
    ev.MEMBER_JOINED: MessageKind.ENTER,
    ev.MEMBER_LEFT: MessageKind.LEAVE,
}
_REACTION_TYPES = frozenset({ev.REACTION_ADDED, ev.REACTION_REMOVED})
_EMITTED_TYPES = frozenset({ev.MESSAGE, *_MEMBERSHIP_KINDS, *_REACTION_TYPES})


class EventResolver:
    """Resolve identities and conversations for inbound Slack events."""

    def __init__(
        self,
        client: SlackClient,
        session: Session,
        users: UserStore | None = None,
    ) -> None:
        self.client = client
        self.session = session
        self.users = users if users is not None else MemoryUserStore()
        self._handler: Optional[ResolvedCallback] = None

    def on_resolved(self, callback: ResolvedCallback) -> None:
        """Register the single consumer of resolved messages."""

        self._handler = callback

    # ------------------------------------------------------------------ #
    # ENTRY point
    # ------------------------------------------------------------------ #

    async def resolve_and_emit(self, payload: Union[Event, Dict[str, Any]]) -> ResolvedMessage | None:
        """
        Resolve one inbound frame and pass the result to the consumer.

        :returns: The emitted message, or ``None`` when the frame was dropped,
            consumed as a user update, or has a type that is not emitted.
        """
        try:
            event = payload if isinstance(payload, Event) else Event.from_payload(payload)
        except MalformedEventError as exc:
            logger.warning("Dropping malformed event: %s", exc)
            return None

        logger.debug("Event %s: %s", event.type, event)

        if self._is_own_echo(event):
            logger.debug("Ignoring own %s event", event.type)
            return None

        if event.type == ev.USER_CHANGE and is_user_payload(event.user):
            self._update_user(event.user)
            return None

        try:
            message = await self._resolve(event)
        except UpstreamLookupError as exc:
            logger.error("Dropping %s event %s: %s", event.type, event.event_ts, exc)
            return None
        except MalformedEventError as exc:
            logger.warning("Dropping malformed %s event: %s", event.type, exc)
            return None

        if message is None:
            return None
        await self._emit(message)
        return message

    def _is_own_echo(self, event: Event) -> bool:
        if event.user_id is not None and event.user_id == self.session.user_id:
            return True
        return (
            event.user is None
            and self.session.bot_id is not None
            and event.bot_id == self.session.bot_id
        )

    def _update_user(self, payload: Dict[str, Any]) -> None:
        user = HumanUser.from_payload(payload)
        self.client.store.reset("user_by_id", user.id)
        self.users.upsert(user.id, user.to_attributes())
        logger.info("Updated user %s from user_change", user.id)

    # ------------------------------------------------------------------ #
    # RESOLUTION
    # ------------------------------------------------------------------ #

    async def _resolve(self, event: Event) -> ResolvedMessage | None:
        if event.type not in _EMITTED_TYPES:
            # Inline user payloads still reach the store.
            if is_user_payload(event.user):
                await self.resolve_identity(event)
            logger.debug("No message type for %s event", event.type)
            return None
        if event.event_ts is None:
            raise MalformedEventError(f"{event.type} event has no event_ts", event)

        identity, conversation, item_user = await asyncio.gather(
            self.resolve_identity(event),
            self.resolve_conversation(event),
            self._resolve_item_user(event),
        )

        attributes = identity.to_attributes()
        attributes["room"] = conversation.to_room() if conversation else None
        # Clears a bot_id merged in by an earlier bot-authored event
        attributes.setdefault("bot_id", None)
        user = self.users.upsert(identity.id, attributes)
        return self._build_message(event, user, item_user)

    async def resolve_identity(self, event: Event) -> Identity:
        """Attribute ``event`` to a user, a bot actor, or an anonymous actor."""

        if is_user_payload(event.user):
            user = HumanUser.from_payload(event.user)
            self.users.upsert(user.id, user.to_attributes())
            return user
        if event.user_id is not None:
            return await self.client.user_by_id(event.user_id)
        if event.bot_id:
            return await self.resolve_bot(event.bot_id, event.team_id)
        return AnonymousActor()

    async def resolve_bot(self, bot_id: str, team_id: Optional[str] = None) -> Identity:
        """
        Resolve a bot id through the bot user map.

        Bots already known to have no user are answered without a lookup.
        Otherwise ``bots.info`` decides: a ``user_id`` yields a
        :class:`BotActor` and a permanent mapping, its absence yields an
        :class:`AnonymousActor` and a permanent ``False``.
        """
        bot_map = self.client.bot_map
        entry = bot_map.get(bot_id)

        if entry is False:
            return AnonymousActor(bot_id=bot_id, team_id=team_id)

        if isinstance(entry, BotMapping):
            user = await self.client.user_by_id(entry.user_id)
            return BotActor(bot_id=bot_id, user=user)

        bot = await self.client.bot_by_id(bot_id)
        user_id = bot.get("user_id")
        if not user_id:
            bot_map.mark_userless(bot_id)
            logger.debug("Bot %s has no user; treating as anonymous", bot_id)
            return AnonymousActor(bot_id=bot_id, team_id=team_id)

        user = await self.client.user_by_id(user_id)
        bot_map.record(bot_id, user.id)
        return BotActor(bot_id=bot_id, user=user, bot=dict(bot))

    async def resolve_conversation(self, event: Event) -> Conversation | None:
        if event.channel is None:
            return None
        if is_conversation_payload(event.channel):
            return Conversation.from_payload(event.channel)
        return await self.client.conversation_by_id(str(event.channel))

    async def _resolve_item_user(self, event: Event) -> HumanUser | None:
        if event.type not in _REACTION_TYPES or not event.item_user:
            return None
        return await self.client.user_by_id(event.item_user)

    # ------------------------------------------------------------------ #
    # EMISSION
    # ------------------------------------------------------------------ #

    def _build_message(
        self, event: Event, user: Dict[str, Any], item_user: HumanUser | None
    ) -> ResolvedMessage:
        ts = str(event.event_ts)
        room = user.get("room") or {}

        kind = _MEMBERSHIP_KINDS.get(event.type)
        if kind is not None:
            logger.debug(
                "%s %s %s",
                user.get("name"),
                "joined" if kind is MessageKind.ENTER else "left",
                room.get("name") or event.channel,
            )
            return ResolvedMessage(kind, user, ts)

        if event.type in _REACTION_TYPES:
            return ResolvedMessage(
                MessageKind.REACTION,
                user,
                ts,
                payload={
                    "reaction": event.reaction,
                    "item": event.item,
                    "item_user": item_user.to_attributes() if item_user else None,
                    "added": event.type == ev.REACTION_ADDED,
                },
            )

        if event.is_rich:
            logger.debug("Rich message from %s", user.get("name"))
            attachments = event.attachments if isinstance(event.attachments, list) else event.files
            return ResolvedMessage(
                MessageKind.RICH,
                user,
                ts,
                text=event.text,
                payload={"attachments": attachments, "text": event.text},
            )

        return ResolvedMessage(MessageKind.TEXT, user, ts, text=event.text)

    async def _emit(self, message: ResolvedMessage) -> None:
        if self._handler is None:
            logger.debug("No consumer registered; dropping %s message", message.kind.value)
            return
        try:
            result = self._handler(message)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Consumer failed on %s message %s", message.kind.value, message.id
            )

"""
Inbound RTM / Events API frames.

:class:`Event` promotes the fields the resolver reads to attributes and keeps
everything else in ``extra``. Envelopes are built once per frame with
:meth:`Event.from_payload` and discarded after resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from slack_bridge.errors import MalformedEventError

MESSAGE = "message"
REACTION_ADDED = "reaction_added"
REACTION_REMOVED = "reaction_removed"
MEMBER_JOINED = "member_joined_channel"
MEMBER_LEFT = "member_left_channel"
USER_CHANGE = "user_change"
PRESENCE_CHANGE = "presence_change"

# Types whose emitted message needs the event timestamp as its id
_TIMESTAMPED = frozenset({MESSAGE, REACTION_ADDED, REACTION_REMOVED, MEMBER_JOINED, MEMBER_LEFT})

_PROMOTED = frozenset(
    {
        "type",
        "user",
        "bot_id",
        "team",
        "team_id",
        "channel",
        "event_ts",
        "ts",
        "text",
        "attachments",
        "files",
        "reaction",
        "item",
        "item_user",
    }
)

UserRef = Union[str, Dict[str, Any]]
ChannelRef = Union[str, Dict[str, Any]]


@dataclass(slots=True)
class Event:
    type: str
    user: Optional[UserRef] = None
    bot_id: Optional[str] = None
    team_id: Optional[str] = None
    channel: Optional[ChannelRef] = None
    event_ts: Optional[str] = None
    text: Optional[str] = None
    attachments: Optional[List[Any]] = None
    files: Optional[List[Any]] = None
    reaction: Optional[str] = None
    item: Optional[Dict[str, Any]] = None
    item_user: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Event":
        """
        Build an event from a decoded Slack frame.

        :raises MalformedEventError: If the frame has no ``type``, or a
            message-like type arrives without ``event_ts``/``ts``, or an
            inline channel object has no ``id``.
        """
        if not isinstance(payload, dict):
            raise MalformedEventError("event payload is not an object", payload)

        event_type = payload.get("type")
        if not event_type:
            raise MalformedEventError("event has no type", payload)

        ts = payload.get("event_ts") or payload.get("ts")
        if ts is None and event_type in _TIMESTAMPED:
            raise MalformedEventError(f"{event_type} event has no event_ts", payload)

        channel = payload.get("channel")
        item = payload.get("item")
        # Reactions carry the conversation on the reacted-to item
        if channel is None and isinstance(item, dict):
            channel = item.get("channel")
        if isinstance(channel, dict) and channel.get("id") is None:
            raise MalformedEventError("inline channel has no id", payload)

        return cls(
            type=str(event_type),
            user=payload.get("user") or None,
            bot_id=payload.get("bot_id") or None,
            team_id=payload.get("team_id", payload.get("team")),
            channel=channel or None,
            event_ts=None if ts is None else str(ts),
            text=payload.get("text"),
            attachments=payload.get("attachments"),
            files=payload.get("files"),
            reaction=payload.get("reaction"),
            item=item,
            item_user=payload.get("item_user") or None,
            extra={k: v for k, v in payload.items() if k not in _PROMOTED},
        )

    @property
    def user_id(self) -> Optional[str]:
        """Return the acting user id whether ``user`` is inline or bare."""

        if isinstance(self.user, dict):
            uid = self.user.get("id")
            return None if uid is None else str(uid)
        return self.user

    @property
    def is_rich(self) -> bool:
        return isinstance(self.attachments, list) or isinstance(self.files, list)


__all__ = [
    "Event",
    "MESSAGE",
    "REACTION_ADDED",
    "REACTION_REMOVED",
    "MEMBER_JOINED",
    "MEMBER_LEFT",
    "USER_CHANGE",
    "PRESENCE_CHANGE",
]

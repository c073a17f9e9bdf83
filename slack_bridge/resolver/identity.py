"""
Resolved actor identities.

Every inbound event is attributed to exactly one of:

``HumanUser``
    A Slack user profile (``users.info`` payload or inline ``user`` object).
``BotActor``
    A bot integration whose ``bots.info`` record names an underlying user.
``AnonymousActor``
    Anything else: a bot without a user, or an event with no actor at all.

:meth:`to_attributes` yields the dict handed to the host user store, so each
variant controls which fields downstream consumers see.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

NULL_ACTOR_ID = "null"


def is_user_payload(value: Any) -> bool:
    """Return ``True`` when ``value`` is a full Slack user object."""

    return isinstance(value, dict) and "id" in value and "profile" in value


@dataclass(slots=True)
class HumanUser:
    id: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "HumanUser":
        return cls(id=str(payload["id"]), attributes=dict(payload))

    @property
    def name(self) -> Optional[str]:
        return self.attributes.get("name")

    def to_attributes(self) -> Dict[str, Any]:
        attrs = dict(self.attributes)
        attrs["id"] = self.id
        return attrs


@dataclass(slots=True)
class BotActor:
    """Bot integration acting on behalf of ``user``."""

    bot_id: str
    user: HumanUser
    bot: Dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def name(self) -> Optional[str]:
        return self.user.name

    def to_attributes(self) -> Dict[str, Any]:
        attrs = self.user.to_attributes()
        attrs["bot_id"] = self.bot_id
        return attrs


@dataclass(slots=True)
class AnonymousActor:
    """Actor with nothing richer than the raw ids found on the event."""

    bot_id: Optional[str] = None
    team_id: Optional[str] = None

    @property
    def id(self) -> str:
        return self.bot_id or NULL_ACTOR_ID

    @property
    def name(self) -> Optional[str]:
        return None

    def to_attributes(self) -> Dict[str, Any]:
        attrs: Dict[str, Any] = {"id": self.id}
        if self.team_id is not None:
            attrs["team_id"] = self.team_id
        return attrs


Identity = Union[HumanUser, BotActor, AnonymousActor]

__all__ = [
    "NULL_ACTOR_ID",
    "is_user_payload",
    "HumanUser",
    "BotActor",
    "AnonymousActor",
    "Identity",
]

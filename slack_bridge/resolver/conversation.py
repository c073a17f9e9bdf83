"""Conversation records and kind classification."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

UNKNOWN_TYPE = "unknown"

# First flag set wins
_KIND_PRECEDENCE = (
    ("is_channel", "channel"),
    ("is_im", "im"),
    ("is_mpim", "mpim"),
    ("is_shared", "shared"),
    ("is_group", "group"),
    ("is_private", "private"),
)


def is_conversation_payload(value: Any) -> bool:
    """Return ``True`` when ``value`` is an inline conversation object."""

    return isinstance(value, dict) and "id" in value


def conversation_type(flags: Dict[str, Any]) -> str:
    """Reduce Slack's ``is_*`` flags to a single label."""

    for flag, label in _KIND_PRECEDENCE:
        if flags.get(flag):
            return label
    return UNKNOWN_TYPE


@dataclass(slots=True)
class Conversation:
    id: str
    name: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Conversation":
        return cls(
            id=str(payload["id"]),
            name=payload.get("name"),
            attributes=dict(payload),
        )

    @property
    def type(self) -> str:
        return conversation_type(self.attributes)

    def to_room(self) -> Dict[str, Any]:
        """Return the ``room`` attribute attached to resolved actors."""

        return {"id": self.id, "name": self.name, "type": self.type}


__all__ = [
    "UNKNOWN_TYPE",
    "Conversation",
    "conversation_type",
    "is_conversation_payload",
]

"""Messages handed to the downstream consumer after resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class MessageKind(str, Enum):
    ENTER = "enter"
    LEAVE = "leave"
    TEXT = "text"
    RICH = "rich"
    REACTION = "reaction"


@dataclass(slots=True)
class ResolvedMessage:
    """
    Enriched event ready for the consumer.

    ``user`` is the canonical record returned by the host user store, carrying
    a ``room`` attribute when the event named a conversation. ``id`` is the
    event's timestamp token.
    """

    kind: MessageKind
    user: Dict[str, Any]
    id: str
    text: str | None = None
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def room(self) -> Dict[str, Any] | None:
        return self.user.get("room")

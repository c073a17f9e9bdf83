"""
Bot id to user mapping.

Slack attributes messages from custom integrations and apps without a bot
user to a ``B…`` bot id instead of a ``U…`` user id. ``BotUserMap`` remembers,
for the lifetime of the process, whether each bot id maps onto a real user
(``BotMapping``) or is confirmed to have none (``False``). Entries never
expire; :meth:`forget` is the only way to drop one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Optional, Union

# Slackbot posts as B01 without a bots.info record
_SEED = {"B01": "USLACKBOT"}


@dataclass(frozen=True, slots=True)
class BotMapping:
    bot_id: str
    user_id: str


MapEntry = Union[BotMapping, Literal[False]]


class BotUserMap:
    def __init__(self, seed: Optional[Dict[str, str]] = None) -> None:
        self._entries: Dict[str, MapEntry] = {}
        for bot_id, user_id in (_SEED if seed is None else seed).items():
            self.record(bot_id, user_id)

    def __len__(self) -> int:
        return len(self._entries)

    def is_known(self, bot_id: str) -> bool:
        """Return ``True`` if ``bot_id`` was mapped or marked userless."""

        return bot_id in self._entries

    def get(self, bot_id: str) -> Optional[MapEntry]:
        """Return the mapping, ``False`` for userless bots, ``None`` if unknown."""

        return self._entries.get(bot_id)

    def record(self, bot_id: str, user_id: str) -> BotMapping:
        mapping = BotMapping(bot_id=bot_id, user_id=user_id)
        self._entries[bot_id] = mapping
        return mapping

    def mark_userless(self, bot_id: str) -> None:
        self._entries[bot_id] = False

    def forget(self, bot_id: str) -> None:
        self._entries.pop(bot_id, None)


__all__ = ["BotMapping", "BotUserMap", "MapEntry"]

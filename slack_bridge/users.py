"""
Host user store.

The resolver never owns user records; it hands attributes to a
:class:`UserStore` and attaches whatever record the store returns to the
outgoing message. :class:`MemoryUserStore` is the in-process implementation
used when no host framework supplies one.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol

logger = logging.getLogger(__name__)


class UserStore(Protocol):
    def upsert(self, user_id: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """Merge ``attributes`` into the record for ``user_id`` and return it."""
        ...


class MemoryUserStore:
    """One canonical dict per user id, updated in place on every upsert."""

    def __init__(self) -> None:
        self._records: dict[str, Dict[str, Any]] = {}

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, user_id: str) -> Dict[str, Any] | None:
        return self._records.get(user_id)

    def upsert(self, user_id: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        record = self._records.get(user_id)
        if record is None:
            record = self._records[user_id] = {"id": user_id}
            logger.info("Added user %s to memory", user_id)
        record.update(attributes)
        record["id"] = user_id
        return record

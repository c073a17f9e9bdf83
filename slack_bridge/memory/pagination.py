"""Cursor pagination helpers for Slack collection endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from slack_bridge.errors import UpstreamLookupError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class Page(Generic[T]):
    """One page of a collection plus the cursor for the next one."""

    items: List[T] = field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def is_last(self) -> bool:
        return not self.items or not self.next_cursor


FetchPage = Callable[[Optional[str]], Awaitable[Page[T]]]


async def load_all(fetch_page: FetchPage[T], *, max_pages: int | None = None) -> list[T]:
    """
    Call ``fetch_page`` until the collection is exhausted and return every item.

    The first call receives ``None``. Loading stops after a page with no items
    or with a missing/empty ``next_cursor``. Any exception raised by
    ``fetch_page`` aborts the load; nothing collected so far is returned.

    :param fetch_page: Coroutine function taking the cursor to request.
    :param max_pages: Optional upper bound on requests. Exceeding it raises
        :class:`UpstreamLookupError` instead of looping on a repeating cursor.
    :returns: Items from every page, in page order.
    """
    items: list[T] = []
    cursor: Optional[str] = None
    pages = 0

    while True:
        if max_pages is not None and pages >= max_pages:
            raise UpstreamLookupError(
                "load_all", cursor, f"exceeded {max_pages} pages"
            )
        page = await fetch_page(cursor)
        pages += 1
        items.extend(page.items)
        if page.is_last:
            break
        cursor = page.next_cursor

    logger.debug("Loaded %d items across %d pages", len(items), pages)
    return items


__all__ = ["Page", "FetchPage", "load_all"]

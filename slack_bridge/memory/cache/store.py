"""
Named cache buckets with single-flight population.

Each bucket is a :class:`cachetools.TTLCache`, so capacity-bounded LRU
eviction and lazy expiry come from the same structure:
    - a read hit (``get`` / ``get_or_populate``) refreshes the entry's LRU slot
    - ``has`` only peeks and never reorders
    - expired entries are treated as absent and purged on the next access

In-flight populations are tracked per ``(bucket, key)`` as a shared
:class:`asyncio.Task`. The marker is installed before the first ``await``, so
two coroutines interleaving on the event loop can never both start ``compute``
for the same key. Failures are handed to every waiter and never stored.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from typing import Any, Awaitable, Callable, Hashable, TypeVar

from cachetools import TTLCache

from slack_bridge.errors import UnknownBucketError

from .policy import DEFAULT_MAX_ENTRIES, DEFAULT_TTL, BucketPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

_Slot = tuple[str, Hashable]


class CacheStore:
    """Registry of named buckets shared by every Slack lookup."""

    def __init__(self, timer: Callable[[], float] = time.monotonic) -> None:
        self._timer = timer
        self._policies: dict[str, BucketPolicy] = {}
        self._buckets: dict[str, TTLCache] = {}
        self._pending: dict[_Slot, asyncio.Task] = {}

    # ------------------------------------------------------------------ #
    # BUCKET management
    # ------------------------------------------------------------------ #

    def create_bucket(
        self,
        name: str,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl: float = DEFAULT_TTL,
    ) -> BucketPolicy:
        """
        Register bucket ``name`` with the given capacity and TTL (seconds).

        Re-creating a bucket with an identical policy keeps its entries.
        A different policy replaces the bucket, which drops every cached entry
        and detaches in-flight populations so their results are discarded.

        :raises ConfigurationError: If ``max_entries < 1`` or ``ttl < 0``.
        :returns: The policy now in force.
        """
        policy = BucketPolicy(max_entries=max_entries, ttl=ttl)
        current = self._policies.get(name)
        if current == policy:
            return current

        if current is not None:
            logger.info(
                "Cache bucket %s policy changed (%s -> %s); clearing entries",
                name,
                current,
                policy,
            )
            self._detach_pending(name)

        self._buckets[name] = TTLCache(
            maxsize=policy.max_entries, ttl=policy.ttl, timer=self._timer
        )
        self._policies[name] = policy
        return policy

    def buckets(self) -> list[str]:
        """Return configured bucket names in creation order."""

        return list(self._buckets)

    def policy(self, name: str) -> BucketPolicy:
        self._bucket(name)
        return self._policies[name]

    def bucket_size(self, name: str) -> int:
        """Return the number of live (unexpired) entries in ``name``."""

        return len(self._bucket(name))

    def _bucket(self, name: str) -> TTLCache:
        try:
            cache = self._buckets[name]
        except KeyError:
            raise UnknownBucketError(name) from None
        cache.expire()
        return cache

    # ------------------------------------------------------------------ #
    # READ helpers
    # ------------------------------------------------------------------ #

    def has(self, bucket: str, key: Hashable) -> bool:
        """Return ``True`` if ``key`` holds an unexpired value."""

        return key in self._bucket(bucket)

    def get(self, bucket: str, key: Hashable, default: Any = None) -> Any:
        """Return the fresh cached value for ``key`` without populating it."""

        cache = self._bucket(bucket)
        try:
            return cache[key]
        except KeyError:
            return default

    def is_pending(self, bucket: str, key: Hashable) -> bool:
        """Return ``True`` while a population for ``key`` is in flight."""

        self._bucket(bucket)
        return (bucket, key) in self._pending

    async def get_or_populate(
        self,
        bucket: str,
        key: Hashable,
        compute: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Return the cached value for ``key``, computing it at most once.

        Concurrent callers for the same ``(bucket, key)`` share one call to
        ``compute`` and observe the same result or exception. A caller being
        cancelled does not cancel the shared computation.
        """
        cache = self._bucket(bucket)
        try:
            return cache[key]
        except KeyError:
            pass

        slot = (bucket, key)
        task = self._pending.get(slot)
        if task is None:
            logger.debug("Populating %s[%s]", bucket, key)
            task = asyncio.ensure_future(compute())
            self._pending[slot] = task
            task.add_done_callback(functools.partial(self._settle, slot))
        else:
            logger.debug("Joining in-flight population of %s[%s]", bucket, key)

        return await asyncio.shield(task)

    def _settle(self, slot: _Slot, task: asyncio.Task) -> None:
        """Store a finished population unless it was detached meanwhile."""

        if self._pending.get(slot) is not task:
            # Reset or policy change while in flight; drop the stale result.
            if not task.cancelled():
                task.exception()
            return
        del self._pending[slot]

        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Population of %s[%s] failed: %s", slot[0], slot[1], exc)
            return

        bucket, key = slot
        cache = self._buckets.get(bucket)
        if cache is not None:
            cache[key] = task.result()

    # ------------------------------------------------------------------ #
    # MAINTENANCE
    # ------------------------------------------------------------------ #

    def reset(self, bucket: str, key: Hashable | None = None) -> None:
        """Drop ``key`` from ``bucket``, or every entry when ``key`` is ``None``."""

        cache = self._bucket(bucket)
        if key is None:
            cache.clear()
            self._detach_pending(bucket)
            return
        cache.pop(key, None)
        self._pending.pop((bucket, key), None)

    def reset_all(self) -> None:
        """Clear every bucket."""

        for cache in self._buckets.values():
            cache.clear()
        self._pending.clear()

    def _detach_pending(self, bucket: str) -> None:
        for slot in [s for s in self._pending if s[0] == bucket]:
            del self._pending[slot]

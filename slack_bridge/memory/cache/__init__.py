"""
Keyed asynchronous lookup cache.

Modules
=======

``store``
    Defines :class:`~slack_bridge.memory.cache.store.CacheStore`, the
    bucket registry that memoizes Slack lookups with per-bucket TTL, LRU
    eviction and single-flight population.
``policy``
    Provides :class:`~slack_bridge.memory.cache.policy.BucketPolicy`, the
    validated capacity/TTL pair each bucket is created with, and
    ``BUCKET_NAMES``, the buckets the Slack client registers.
"""

from .policy import BUCKET_NAMES, BucketPolicy
from .store import CacheStore

__all__ = ["BUCKET_NAMES", "BucketPolicy", "CacheStore"]

"""
Bucket policy helpers.

A :class:`BucketPolicy` is the immutable pair of capacity and maximum age that
governs one named bucket. :class:`~slack_bridge.memory.cache.store.CacheStore`
compares policies when a bucket is re-created so it can tell a harmless
repeat registration from a policy change.
"""

from __future__ import annotations

from dataclasses import dataclass

from slack_bridge.errors import ConfigurationError

DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL = 300.0  # seconds

# Buckets the Slack client creates on startup
BUCKET_NAMES = (
    "user_by_id",
    "bot_by_id",
    "conversation_by_id",
    "conversation_list",
    "user_list",
)


@dataclass(frozen=True, slots=True)
class BucketPolicy:
    """Capacity and TTL applied uniformly to every entry in a bucket."""

    max_entries: int = DEFAULT_MAX_ENTRIES
    ttl: float = DEFAULT_TTL

    def __post_init__(self) -> None:
        if self.max_entries < 1:
            raise ConfigurationError(
                f"max_entries must be >= 1 (got {self.max_entries})"
            )
        if self.ttl < 0:
            raise ConfigurationError(f"ttl must be >= 0 (got {self.ttl})")

"""Error taxonomy shared by the cache, pagination and resolver layers."""

from __future__ import annotations

from typing import Any


class BridgeError(Exception):
    """Base class for every error raised by ``slack_bridge``."""


class ConfigurationError(BridgeError):
    """Programmer or deployment error. Not transient, never retried."""


class UnknownBucketError(ConfigurationError, KeyError):
    """A cache bucket was referenced before :meth:`CacheStore.create_bucket`."""

    def __init__(self, bucket: str) -> None:
        super().__init__(f"Cache bucket '{bucket}' is not configured.")
        self.bucket = bucket

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message instead.
        return str(self.args[0])


class UpstreamLookupError(BridgeError):
    """A Slack Web API lookup failed or answered with ``ok: false``."""

    def __init__(self, method: str, key: str | None = None, reason: str = "") -> None:
        self.method = method
        self.key = key
        self.reason = reason
        target = f"{method}({key})" if key is not None else method
        super().__init__(f"{target} failed: {reason}" if reason else f"{target} failed")


class MalformedEventError(BridgeError):
    """An inbound event lacks the fields its declared type requires."""

    def __init__(self, reason: str, payload: Any = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.payload = payload


__all__ = [
    "BridgeError",
    "ConfigurationError",
    "UnknownBucketError",
    "UpstreamLookupError",
    "MalformedEventError",
]

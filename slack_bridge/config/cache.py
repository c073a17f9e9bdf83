import os

from slack_bridge.memory.cache.policy import BUCKET_NAMES

from .loader import section


class Cache:
    def __init__(self, config: dict | None = None) -> None:
        cache_cfg = section(config, "cache")
        bucket_cfg = section(config, "cache", "buckets")

        self.DEFAULT_MAX_ENTRIES: int = int(
            cache_cfg.get("max_entries", os.getenv("CACHE_MAX_ENTRIES", "100"))
        )
        self.DEFAULT_TTL: float = float(cache_cfg.get("ttl", os.getenv("CACHE_TTL", "300")))

        self.BUCKETS: dict[str, dict] = {}
        for name in BUCKET_NAMES:
            overrides = bucket_cfg.get(name, {})
            env_prefix = name.upper()
            self.BUCKETS[name] = {
                "max_entries": int(
                    overrides.get(
                        "max_entries",
                        os.getenv(f"{env_prefix}_MAX_ENTRIES", self.DEFAULT_MAX_ENTRIES),
                    )
                ),
                "ttl": float(
                    overrides.get("ttl", os.getenv(f"{env_prefix}_TTL", self.DEFAULT_TTL))
                ),
            }

    def bucket_options(self, name: str) -> dict:
        """Return ``create_bucket`` keyword arguments for ``name``."""

        return dict(
            self.BUCKETS.get(
                name, {"max_entries": self.DEFAULT_MAX_ENTRIES, "ttl": self.DEFAULT_TTL}
            )
        )

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict

ROOT_TABLE = "slack_bridge"
DEFAULT_CONFIG_PATH = Path(os.getenv("SLACK_BRIDGE_CONFIG", "config.toml"))


def load_raw_config(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Read ``config.toml`` (or ``$SLACK_BRIDGE_CONFIG``) into a dict.

    A missing file yields ``{}`` so every setting falls back to its
    environment variable.
    """
    target = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not target.is_file():
        return {}

    with target.open("rb") as handle:
        return tomllib.load(handle)


def section(config: Dict[str, Any] | None, *keys: str) -> Dict[str, Any]:
    """Return the ``[slack_bridge.<keys>]`` table, or ``{}`` when absent."""

    node: Any = (config or {}).get(ROOT_TABLE, {})
    for key in keys:
        node = node.get(key, {}) if isinstance(node, dict) else {}
    return node if isinstance(node, dict) else {}


__all__ = ["load_raw_config", "section", "DEFAULT_CONFIG_PATH"]

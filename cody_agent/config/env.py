"""cody_agent.config.env
=====================

Environment variable mapping for the assistant configuration.

Purpose
-------
- Single source of truth for the names of the environment variables that
  override configuration fields.
- Small helpers to read them without raising; conversion and validation
  are left to the pydantic model in :mod:`cody_agent.config.settings`.
"""

from __future__ import annotations

import os
from typing import Dict, Optional

# Config field -> environment variable
ENV_MAP: Dict[str, str] = {
    "api_url": "CODY_API_URL",
    "api_key": "CODY_API_KEY",  # pragma: allowlist secret - env var name, not a secret
    "model": "CODY_MODEL",
    "max_tokens": "CODY_MAX_TOKENS",
    "temperature": "CODY_TEMPERATURE",
    "timeout_seconds": "CODY_TIMEOUT",
}


def is_placeholder(val: Optional[str]) -> bool:
    """Return True if the value looks like a placeholder rather than a real key.

    Heuristics: contains 'placeholder', 'changeme', 'example', or starts with
    'test_' (case-insensitive).
    """
    if val is None:
        return False
    v = str(val).strip().lower()
    return "placeholder" in v or "changeme" in v or "example" in v or v.startswith("test_")


def env_overrides() -> Dict[str, str]:
    """Return config fields that have a non-empty environment override."""
    out: Dict[str, str] = {}
    for field, name in ENV_MAP.items():
        val = os.environ.get(name)
        if val is not None and val.strip():
            out[field] = val.strip()
    return out


__all__ = ["ENV_MAP", "is_placeholder", "env_overrides"]

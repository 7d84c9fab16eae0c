"""Persistent assistant configuration and session state.

Purpose
-------
Hold the static configuration record consumed by the completion client
(endpoint, key, model, token budget, temperature, timeout) and persist it,
together with the last-session marker and the cached model list, across runs.

Merge order (later wins)
------------------------
1. Built-in defaults (:mod:`cody_agent.config.defaults`)
2. Saved JSON file ``$XDG_CONFIG_HOME/cody/config.json``
3. Environment variables (see :data:`cody_agent.config.env.ENV_MAP`)
4. Explicit overrides passed to :func:`load_config`

Validation is done by pydantic; a bad value from any layer raises
``pydantic.ValidationError`` at load time rather than failing mid-request.

Files
-----
- Config lives under the XDG config directory; the session marker and the
  models cache live under the XDG state directory. Writes are atomic
  (temp file + ``os.replace``).
"""

from __future__ import annotations

import contextlib
import json
import os
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .defaults import (
    APP_DIR_NAME,
    CACHE_TTL_SECONDS,
    CONFIG_FILE_NAME,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_SECONDS,
    MODELS_CACHE_FILE_NAME,
    SESSION_FILE_NAME,
)
from .env import env_overrides


def xdg_config_dir() -> Path:
    """Return ``$XDG_CONFIG_HOME/cody`` (``~/.config/cody`` when unset)."""
    root = os.environ.get("XDG_CONFIG_HOME")
    base = Path(root).expanduser() if root else Path.home() / ".config"
    return base / APP_DIR_NAME


def xdg_state_dir() -> Path:
    """Return ``$XDG_STATE_HOME/cody`` (``~/.local/state/cody`` when unset)."""
    root = os.environ.get("XDG_STATE_HOME")
    base = Path(root).expanduser() if root else Path.home() / ".local" / "state"
    return base / APP_DIR_NAME


def config_file_path() -> Path:
    return xdg_config_dir() / CONFIG_FILE_NAME


class AgentConfig(BaseModel):
    """Static configuration record for one assistant session.

    Attributes:
        api_url: Base URL of an OpenAI-compatible endpoint (no trailing slash).
        api_key: Bearer token; empty means no ``Authorization`` header.
        model: Model identifier sent with each request.
        max_tokens: Completion token budget.
        temperature: Sampling temperature.
        timeout_seconds: Bound on one whole request/response exchange.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    api_url: str = ""
    api_key: str = ""
    model: str = ""
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)

    @field_validator("api_url")
    @classmethod
    def _strip_url(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("api_key", "model")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        return value.strip()

    @property
    def chat_url(self) -> str:
        return f"{self.api_url}/chat/completions"

    @property
    def models_url(self) -> str:
        return f"{self.api_url}/models"

    def is_ready(self) -> bool:
        """True when enough is configured to send a request."""
        return bool(self.api_url and self.model)

    def redacted(self) -> Dict[str, Any]:
        """Dump suitable for logs and ``/status`` (key never shown)."""
        data = self.model_dump()
        data["api_key"] = "set" if self.api_key else ""
        return data


def _read_json(path: Path) -> Dict[str, Any]:
    with contextlib.suppress(OSError, ValueError):
        if path.is_file():
            data = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return data
    return {}


def _write_json_atomic(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp_path, path)


def load_config(overrides: Optional[Dict[str, Any]] = None) -> AgentConfig:
    """Return the merged configuration (defaults < file < env < overrides)."""
    merged: Dict[str, Any] = {}
    merged |= {k: v for k, v in _read_json(config_file_path()).items() if k in AgentConfig.model_fields}
    merged |= env_overrides()
    if overrides:
        merged |= {k: v for k, v in overrides.items() if v is not None}
    return AgentConfig(**merged)


def save_config(config: AgentConfig) -> Tuple[bool, str | None]:
    """Persist ``config`` to the XDG config file atomically.

    Returns
    -------
    (ok, error)
        Tuple indicating success and optional error message.
    """
    try:
        _write_json_atomic(config_file_path(), config.model_dump())
        return True, None
    except OSError as exc:
        return False, str(exc)


@dataclass
class SavedSession:
    """Marker of the last session, shown on the next start."""

    last_project: str
    last_model: str
    timestamp: float


def save_session(project_dir: str, model: str) -> None:
    """Record the current project directory and model (best-effort)."""
    with contextlib.suppress(OSError):
        session = SavedSession(last_project=project_dir, last_model=model, timestamp=time.time())
        _write_json_atomic(xdg_state_dir() / SESSION_FILE_NAME, asdict(session))


def load_session(max_age_seconds: float = CACHE_TTL_SECONDS) -> Optional[SavedSession]:
    """Return the last session when it is younger than ``max_age_seconds``."""
    data = _read_json(xdg_state_dir() / SESSION_FILE_NAME)
    try:
        session = SavedSession(
            last_project=str(data["last_project"]),
            last_model=str(data["last_model"]),
            timestamp=float(data["timestamp"]),
        )
    except (KeyError, TypeError, ValueError):
        return None
    if time.time() - session.timestamp >= max_age_seconds:
        return None
    return session


def load_cached_models(api_url: str, max_age_seconds: float = CACHE_TTL_SECONDS) -> List[str]:
    """Return cached model ids for ``api_url`` if the cache is fresh."""
    data = _read_json(xdg_state_dir() / MODELS_CACHE_FILE_NAME)
    if data.get("api_url") != api_url:
        return []
    try:
        if time.time() - float(data.get("timestamp", 0)) >= max_age_seconds:
            return []
    except (TypeError, ValueError):
        return []
    models = data.get("models")
    return [str(m) for m in models] if isinstance(models, list) else []


def save_cached_models(api_url: str, models: List[str]) -> None:
    """Cache the model list for ``api_url`` (best-effort)."""
    with contextlib.suppress(OSError):
        _write_json_atomic(
            xdg_state_dir() / MODELS_CACHE_FILE_NAME,
            {"api_url": api_url, "models": list(models), "timestamp": time.time()},
        )


__all__ = [
    "AgentConfig",
    "SavedSession",
    "config_file_path",
    "load_cached_models",
    "load_config",
    "load_session",
    "save_cached_models",
    "save_config",
    "save_session",
    "xdg_config_dir",
    "xdg_state_dir",
]

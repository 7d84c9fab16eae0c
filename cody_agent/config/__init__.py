"""Configuration layer.

Public API
----------
* AgentConfig, load_config(overrides=None), save_config(config)
* load_session()/save_session(), load_cached_models()/save_cached_models()
"""
from __future__ import annotations

from .settings import (
    AgentConfig,
    SavedSession,
    config_file_path,
    load_cached_models,
    load_config,
    load_session,
    save_cached_models,
    save_config,
    save_session,
    xdg_config_dir,
    xdg_state_dir,
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

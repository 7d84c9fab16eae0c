"""cody_agent.config.defaults
==========================

Central place for small, stable default values. These defaults can be
overridden via environment variables or the saved configuration file, but
provide sensible fallbacks for local development and tests.

Only plain constants live here; no I/O and no imports from other packages.
"""

from __future__ import annotations

# ---- Endpoint / sampling ----
# Token budget sent as ``max_tokens``; local servers otherwise use their own.
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7
# Whole-exchange bound for one request (seconds).
DEFAULT_TIMEOUT_SECONDS = 120.0

# ---- Files on disk ----
APP_DIR_NAME = "cody"
CONFIG_FILE_NAME = "config.json"
SESSION_FILE_NAME = "session.json"
MODELS_CACHE_FILE_NAME = "models.json"
LOG_FILE_NAME = "cody.log"
# Saved sessions and the model list are considered fresh for one day.
CACHE_TTL_SECONDS = 24 * 60 * 60

# ---- Project structure listing ----
STRUCTURE_MAX_DEPTH = 4
STRUCTURE_MAX_ENTRIES_PER_DIR = 30
STRUCTURE_SKIP_DIRS = (
    "node_modules",
    "__pycache__",
    "dist",
    "build",
    "venv",
    ".git",
    "coverage",
    ".next",
    ".cache",
)

# ---- Confirmation preview ----
PREVIEW_LINES = 10

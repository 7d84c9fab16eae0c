"""Unified timeout utilities for the assistant.

This module centralizes timeout values used across the completion client,
the process runner and the shell, and exposes a watchdog context manager that
bounds a whole request/response exchange.

Key Components
--------------
TimeoutConfig
    Dataclass capturing normalized timeout values (seconds).

get_timeout_config()
    Returns a process-cached configuration, parsing environment overrides on
    first use only. Supported environment variables (all optional):
        CODY_TIMEOUT_SECONDS
        CODY_COMMAND_TIMEOUT_SECONDS
        CODY_LIST_MODELS_TIMEOUT_SECONDS

exchange_deadline(seconds, token)
    Context manager arming a ``threading.Timer`` that cancels ``token`` with
    :data:`DEADLINE_REASON` when the deadline elapses. Because the client
    registers ``response.close`` on the token, expiry interrupts a blocked
    read instead of waiting for the network. The yielded :class:`Deadline`
    tells the caller whether a cancellation came from the clock or from the
    user.

Design Constraints
------------------
1. No hard-coded ad-hoc timeouts outside this module and ``config.defaults``.
2. Avoid per-call env parsing (cache after first read).
3. Works from any thread; no signals.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import os
import threading
from typing import Iterator

from .cancellation import CancellationToken

DEADLINE_REASON = "deadline exceeded"


@dataclass(frozen=True)
class TimeoutConfig:
    """Container for normalized timeout values (seconds).

    Attributes:
        request_timeout_seconds: Bound on one whole exchange with the
            completion endpoint (connect + full drain).
        command_timeout_seconds: Hard limit for shell commands started from
            the assistant.
        list_models_timeout_seconds: Bound on the model listing request.
    """

    request_timeout_seconds: float = 120.0
    command_timeout_seconds: float = 30.0
    list_models_timeout_seconds: float = 30.0


_CACHED: TimeoutConfig | None = None
_ENV_GUARD: str | None = None
_ENV_NAMES = (
    "CODY_TIMEOUT_SECONDS",
    "CODY_COMMAND_TIMEOUT_SECONDS",
    "CODY_LIST_MODELS_TIMEOUT_SECONDS",
)


def _parse_env_float(name: str, default: float) -> float:
    """Parse an environment variable as a positive float with a fallback default."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        val = float(raw)
        return val if val > 0 else default
    except ValueError:
        return default


def get_timeout_config() -> TimeoutConfig:
    """Return process-cached `TimeoutConfig` instance.

    The cache is refreshed when any of the supported environment variables
    changed since the last call, so tests can adjust them at runtime.
    """
    global _CACHED, _ENV_GUARD  # noqa: PLW0603 - intentional, documented module cache
    cur_guard = "/".join(os.getenv(name, "") for name in _ENV_NAMES)
    if _CACHED is not None and _ENV_GUARD == cur_guard:
        return _CACHED
    defaults = TimeoutConfig()
    _CACHED = TimeoutConfig(
        request_timeout_seconds=_parse_env_float("CODY_TIMEOUT_SECONDS", defaults.request_timeout_seconds),
        command_timeout_seconds=_parse_env_float("CODY_COMMAND_TIMEOUT_SECONDS", defaults.command_timeout_seconds),
        list_models_timeout_seconds=_parse_env_float(
            "CODY_LIST_MODELS_TIMEOUT_SECONDS", defaults.list_models_timeout_seconds
        ),
    )
    _ENV_GUARD = cur_guard
    return _CACHED


class Deadline:
    """Observable state of an armed exchange deadline."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        self._expired = threading.Event()

    @property
    def expired(self) -> bool:
        return self._expired.is_set()

    def _expire(self) -> None:
        self._expired.set()


@contextmanager
def exchange_deadline(seconds: float, token: CancellationToken) -> Iterator[Deadline]:
    """Cancel ``token`` with :data:`DEADLINE_REASON` once ``seconds`` elapse.

    If ``seconds`` <= 0 the guard is inert (the deadline never expires).
    The timer is disarmed when the context exits, whether normally or by an
    exception, including ``GeneratorExit`` from an abandoned stream.
    """
    deadline = Deadline(seconds)
    if seconds <= 0:
        yield deadline
        return

    def _fire() -> None:
        deadline._expire()
        token.cancel(DEADLINE_REASON)

    timer = threading.Timer(seconds, _fire)
    timer.daemon = True
    timer.start()
    try:
        yield deadline
    finally:
        timer.cancel()


__all__ = [
    "DEADLINE_REASON",
    "TimeoutConfig",
    "get_timeout_config",
    "Deadline",
    "exchange_deadline",
]

"""Shared HTTP client pool.

Purpose:
    Provide a thread-safe pool of reusable ``httpx.Client`` instances so the
    completion client keeps its keep-alive connection between turns instead of
    paying a TLS handshake for every message.

External dependencies:
    - ``httpx`` for the underlying synchronous HTTP client.

Timeout strategy:
    - Pooled clients carry no default timeout of their own. Every request
      passes an explicit ``httpx.Timeout`` built from the active
      configuration, and the whole exchange is additionally bounded by
      :func:`cody_agent.base.timeouts.exchange_deadline`.

Lifecycle & cleanup:
    - Clients are cached by ``(base_url, purpose)``. Purposes allow distinct
      pools (e.g., "chat" vs "models").
    - All clients are closed at interpreter exit via ``atexit``. Tests may also
      call :func:`close_all_clients` explicitly.
"""

from __future__ import annotations

import atexit
import threading
from contextlib import suppress
from typing import Dict, Optional, Tuple

import httpx

# Internal cache keyed by (base_url, purpose)
_CLIENTS: Dict[Tuple[Optional[str], str], httpx.Client] = {}
_LOCK = threading.RLock()


def get_httpx_client(base_url: Optional[str], purpose: str) -> httpx.Client:
    """Return a pooled ``httpx.Client`` for the given base URL and purpose.

    Parameters:
        base_url: Optional API base URL set on the client so relative request
            paths can be used. ``None`` groups clients under a shared key.
        purpose: A short string discriminating separate pools.

    Returns:
        A reusable ``httpx.Client`` instance.
    """
    key = (base_url, purpose)
    client = _CLIENTS.get(key)
    if client is not None and not client.is_closed:
        return client

    with _LOCK:
        client = _CLIENTS.get(key)
        if client is not None and not client.is_closed:
            return client
        client = httpx.Client(base_url=base_url, timeout=None) if base_url else httpx.Client(timeout=None)
        _CLIENTS[key] = client
        return client


def close_all_clients() -> None:
    """Close and clear all pooled HTTP clients."""
    with _LOCK:
        for c in _CLIENTS.values():
            # Teardown failures are non-actionable.
            with suppress(Exception):
                c.close()
        _CLIENTS.clear()


atexit.register(close_all_clients)

__all__ = ["get_httpx_client", "close_all_clients"]

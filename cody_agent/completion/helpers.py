"""Completion client helpers.

Purpose:
- Keep ``client.py`` focused on the exchange lifecycle by hosting the small
  side-effect-free pieces: header construction, response-body parsing and
  the mapping of httpx failures onto the assistant's error taxonomy.

Failure semantics:
- ``message_content`` raises :class:`ProtocolError` on an unexpected body
  shape; the client recovers by treating the content as absent.
- ``release_response`` shuts the underlying socket down before closing the
  response; a plain ``close`` from another thread does not wake a blocked
  ``recv``.
- ``map_transport_failure`` decides whether an httpx failure was caused by an
  abort, an expired deadline or the network, in that order.
"""

from __future__ import annotations

import socket
from contextlib import suppress
from typing import Any, Dict, List, Optional

import httpx

from ..base.cancellation import CancellationToken, CancelledError
from ..base.errors import CompletionError, ProtocolError, RequestTimeoutError, TransportError
from ..base.timeouts import Deadline


def build_headers(api_key: str) -> Dict[str, str]:
    """Return request headers; ``Authorization`` only when a key is set."""
    headers = {
        "Content-Type": "application/json",
        "Connection": "keep-alive",
    }
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def message_content(data: Any) -> str:
    """Return ``choices[0].message.content`` of a non-streaming response.

    Raises:
        ProtocolError: when the body is not shaped like a chat completion or
            the content field is absent.
    """
    if not isinstance(data, dict):
        raise ProtocolError("response body is not a JSON object")
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ProtocolError("response has no choices")
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        raise ProtocolError("choices[0] has no message")
    content = message.get("content")
    if content is None:
        raise ProtocolError("choices[0].message.content is absent")
    if not isinstance(content, str):
        raise ProtocolError("choices[0].message.content is not a string")
    return content


def model_ids(data: Any) -> List[str]:
    """Extract model ids from a ``GET /models`` body (``{"data": [{"id"}]}``)."""
    items = data.get("data") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ProtocolError("model list is not an array")
    ids: List[str] = []
    for item in items:
        if isinstance(item, dict) and isinstance(item.get("id"), str):
            ids.append(item["id"])
        elif isinstance(item, str):
            ids.append(item)
    return sorted(set(ids))


def release_response(response: httpx.Response) -> None:
    """Close ``response`` so that a read blocked in another thread returns.

    Registered as the cancel hook of an exchange. Responses without a
    network stream (mock transports) are simply closed.
    """
    stream = response.extensions.get("network_stream")
    sock = stream.get_extra_info("socket") if stream is not None else None
    if sock is not None:
        with suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
    response.close()


def raise_if_stopped(token: CancellationToken, deadline: Deadline, *, model: Optional[str]) -> None:
    """Raise the terminal error for a stopped exchange, if it was stopped.

    A deadline expiry is reported as :class:`RequestTimeoutError` even though
    it travels through the token; only a user abort is a ``CancelledError``.
    """
    if deadline.expired:
        raise RequestTimeoutError(deadline.seconds, model=model)
    token.raise_if_cancelled()


def map_transport_failure(
    exc: Exception,
    token: CancellationToken,
    deadline: Deadline,
    *,
    model: Optional[str],
) -> BaseException:
    """Translate an httpx (or socket) failure into the error to raise."""
    if isinstance(exc, (CompletionError, CancelledError)):
        return exc
    if deadline.expired:
        return RequestTimeoutError(deadline.seconds, model=model, raw=exc)
    if token.cancelled:
        return CancelledError(token.reason or "request aborted")
    if isinstance(exc, httpx.TimeoutException):
        return RequestTimeoutError(deadline.seconds, model=model, raw=exc)
    return TransportError(None, str(exc) or type(exc).__name__, model=model, raw=exc)


__all__ = [
    "build_headers",
    "map_transport_failure",
    "message_content",
    "model_ids",
    "raise_if_stopped",
    "release_response",
]

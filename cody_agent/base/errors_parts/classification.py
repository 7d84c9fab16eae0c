"""
Error classification helpers mapping exceptions to normalized ErrorCode values.

Implements HTTP status extraction and a message-based fallback so that
logging can tag arbitrary failures (httpx errors, builtin timeouts, OS
errors) with a stable code.
"""
from __future__ import annotations

from typing import Optional

import httpx

from ..cancellation_parts.cancelled_error import CancelledError
from .completion_error import CompletionError
from .error_code import ErrorCode
from .transport_error import HTTP_STATUS_CODES


def _extract_status(exc: Exception) -> Optional[int]:
    """Attempt to extract an HTTP status code from an exception.

    Supported attribute shapes (checked in order):
    - ``exc.status_code``
    - ``exc.response.status_code``
    Returns ``None`` if no valid status can be found.
    """
    val = getattr(exc, "status_code", None)
    if isinstance(val, int) and 100 <= val < 600:
        return val
    resp = getattr(exc, "response", None)
    if resp is not None:
        sc = getattr(resp, "status_code", None)
        if isinstance(sc, int) and 100 <= sc < 600:
            return sc
    return None


def _heuristic_from_message(msg: str) -> Optional[ErrorCode]:
    """Substring heuristic mapping for exceptions without structure."""
    PATTERN_GROUPS = (
        (ErrorCode.TIMEOUT, ("timeout", "timed out")),
        (ErrorCode.AUTH, ("unauthorized", "forbidden", "api key")),
        (ErrorCode.NOT_FOUND, ("not found",)),
        (ErrorCode.UNAVAILABLE, ("unavailable",)),
        (ErrorCode.TRANSPORT, ("connection", "refused", "reset")),
    )
    for code, patterns in PATTERN_GROUPS:
        if any(p in msg for p in patterns):
            return code
    return None


def classify_exception(exc: BaseException) -> ErrorCode:
    """Classify an exception into a normalized :class:`ErrorCode`.

    Precedence:
        1. CompletionError passthrough.
        2. Cancellation.
        3. Timeout exceptions (builtin and httpx).
        4. HTTP status mapping.
        5. httpx transport failures.
        6. Substring heuristics, then ``UNKNOWN``.
    """
    if isinstance(exc, CompletionError):
        return exc.code
    if isinstance(exc, CancelledError):
        return ErrorCode.CANCELLED
    if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
        return ErrorCode.TIMEOUT
    if not isinstance(exc, Exception):
        return ErrorCode.UNKNOWN
    status = _extract_status(exc)
    if status is not None and status in HTTP_STATUS_CODES:
        return HTTP_STATUS_CODES[status]
    if isinstance(exc, (httpx.TransportError, httpx.StreamError)):
        return ErrorCode.TRANSPORT
    code = _heuristic_from_message(str(exc).lower())
    return code if code is not None else ErrorCode.UNKNOWN


__all__ = [
    "classify_exception",
    "_extract_status",
]

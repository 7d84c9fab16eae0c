"""Exchange exceeded the configured duration."""
from __future__ import annotations

from typing import Optional

from .completion_error import CompletionError
from .error_code import ErrorCode


class RequestTimeoutError(CompletionError):
    """Raised when a request/response exchange outlives its timeout.

    Distinct from :class:`TransportError`: the endpoint may be healthy but
    slow, so the user is pointed at ``/timeout`` rather than at the URL.
    """

    def __init__(self, seconds: float, *, model: Optional[str] = None, raw: Optional[Exception] = None) -> None:
        super().__init__(
            code=ErrorCode.TIMEOUT,
            message=f"request exceeded {seconds:g}s",
            model=model,
            retryable=True,
            raw=raw,
        )
        self.seconds = seconds


__all__ = ["RequestTimeoutError"]

"""Transport-level failure: non-2xx status or a broken connection."""
from __future__ import annotations

from typing import Optional

from .completion_error import CompletionError
from .error_code import ErrorCode

# Response bodies are echoed into messages; keep them bounded.
BODY_PREVIEW_CHARS = 2000

HTTP_STATUS_CODES = {
    400: ErrorCode.VALIDATION,
    401: ErrorCode.AUTH,
    403: ErrorCode.AUTH,
    404: ErrorCode.NOT_FOUND,
    408: ErrorCode.TIMEOUT,
    422: ErrorCode.VALIDATION,
    429: ErrorCode.RATE_LIMIT,
    500: ErrorCode.SERVER_ERROR,
    502: ErrorCode.UNAVAILABLE,
    503: ErrorCode.UNAVAILABLE,
    504: ErrorCode.TIMEOUT,
}


def code_for_status(status_code: Optional[int]) -> ErrorCode:
    """Map an HTTP status (or ``None`` for connection failures) to an ErrorCode."""
    if status_code is None:
        return ErrorCode.TRANSPORT
    if status_code in HTTP_STATUS_CODES:
        return HTTP_STATUS_CODES[status_code]
    return ErrorCode.SERVER_ERROR if status_code >= 500 else ErrorCode.TRANSPORT


class TransportError(CompletionError):
    """Raised when the endpoint answers with a non-success status.

    ``status_code`` is ``None`` when no HTTP response was obtained at all
    (DNS failure, refused connection, reset mid-stream).
    """

    def __init__(self, status_code: Optional[int], body: str, *, model: Optional[str] = None, raw: Optional[Exception] = None) -> None:
        code = code_for_status(status_code)
        label = f"API Error ({status_code})" if status_code is not None else "Connection error"
        super().__init__(
            code=code,
            message=f"{label}: {body[:BODY_PREVIEW_CHARS]}",
            model=model,
            retryable=code in (ErrorCode.RATE_LIMIT, ErrorCode.UNAVAILABLE, ErrorCode.TRANSPORT),
            raw=raw,
        )
        self.status_code = status_code
        self.body = body


__all__ = ["TransportError", "code_for_status", "HTTP_STATUS_CODES"]

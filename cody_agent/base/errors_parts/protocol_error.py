"""Malformed or unexpected payload shape from the endpoint."""
from __future__ import annotations

from typing import Optional

from .completion_error import CompletionError
from .error_code import ErrorCode


class ProtocolError(CompletionError):
    """Raised by payload parsers; callers recover by treating data as absent."""

    def __init__(self, message: str, *, model: Optional[str] = None, raw: Optional[Exception] = None) -> None:
        super().__init__(code=ErrorCode.PROTOCOL, message=message, model=model, retryable=False, raw=raw)


__all__ = ["ProtocolError"]

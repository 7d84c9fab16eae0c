"""
Structured completion error exception type.

Base class for failures surfaced by the completion client. Carries a
normalized `ErrorCode` for consistent handling and structured logging.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .error_code import ErrorCode


@dataclass
class CompletionError(Exception):
    """Represents a structured completion failure with a normalized error code.

    Attributes:
        code: Normalized :class:`ErrorCode` classification for the failure.
        message: Human-readable error message suitable for logging.
        model: Optional model name associated with the failure.
        retryable: Hint for the caller (the client itself never retries).
        raw: Optional original exception for diagnostics.
    """

    code: ErrorCode
    message: str
    model: Optional[str] = None
    retryable: bool = False
    raw: Optional[Exception] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code.value}: {self.message}"


__all__ = ["CompletionError"]

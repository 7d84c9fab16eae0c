"""Cancellation error type.

Defines the public ``CancelledError`` used to signal an explicit user abort.
Kept isolated to satisfy one-class-per-file policy.
"""

from __future__ import annotations


class CancelledError(RuntimeError):
    """Raised when an operation is cancelled cooperatively.

    This specialized error distinguishes an abort from transport or timeout
    failures, so the shell can report it quietly and the session can roll
    back without treating it as an endpoint problem.
    """

__all__ = ["CancelledError"]

"""Errors parts package public surface.

Re-exports individual error taxonomy components for optional direct imports.
Prefer importing from `cody_agent.base.errors` for the stable surface.
"""

from .error_code import ErrorCode
from .completion_error import CompletionError
from .transport_error import TransportError, code_for_status
from .protocol_error import ProtocolError
from .request_timeout_error import RequestTimeoutError
from .classification import classify_exception

__all__ = [
    "ErrorCode",
    "CompletionError",
    "TransportError",
    "ProtocolError",
    "RequestTimeoutError",
    "code_for_status",
    "classify_exception",
]

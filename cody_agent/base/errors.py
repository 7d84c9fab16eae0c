"""Unified completion error taxonomy public surface.

This module re-exports the one-class-per-file implementations under
``cody_agent.base.errors_parts`` to keep a stable import path.
"""

from .errors_parts.error_code import ErrorCode
from .errors_parts.completion_error import CompletionError
from .errors_parts.transport_error import TransportError
from .errors_parts.protocol_error import ProtocolError
from .errors_parts.request_timeout_error import RequestTimeoutError
from .errors_parts.classification import classify_exception

__all__ = [
    "ErrorCode",
    "CompletionError",
    "TransportError",
    "ProtocolError",
    "RequestTimeoutError",
    "classify_exception",
]

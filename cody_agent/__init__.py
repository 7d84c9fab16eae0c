"""cody_agent package

Terminal coding assistant for OpenAI-compatible chat-completion endpoints.

Purpose:
    Stream answers from a remote model, show the chat text as it arrives and
    turn fenced ```` ```lang:path ```` blocks into files the user confirms.

Public API (re-exported):
    - Version: ``__version__``
    - Configuration: :class:`AgentConfig`, :func:`load_config`
    - Client: :class:`CompletionClient`
    - Extraction: :class:`CodeBlockExtractor`, :class:`PendingFileInstruction`
    - Orchestration: :class:`ChatSession`, :class:`Conversation`
    - Errors: :class:`CompletionError`, :class:`TransportError`,
      :class:`ProtocolError`, :class:`RequestTimeoutError`,
      :class:`CancelledError`, :class:`ErrorCode`
"""

from .base.cancellation import CancellationToken, CancelledError
from .base.errors import (
    CompletionError,
    ErrorCode,
    ProtocolError,
    RequestTimeoutError,
    TransportError,
)
from .completion import CompletionClient
from .config import AgentConfig, load_config
from .extraction import CodeBlockExtractor, PendingFileInstruction
from .service.conversation import Conversation
from .service.session import ChatSession

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AgentConfig",
    "CancellationToken",
    "CancelledError",
    "ChatSession",
    "CodeBlockExtractor",
    "CompletionClient",
    "CompletionError",
    "Conversation",
    "ErrorCode",
    "PendingFileInstruction",
    "ProtocolError",
    "RequestTimeoutError",
    "TransportError",
    "load_config",
]

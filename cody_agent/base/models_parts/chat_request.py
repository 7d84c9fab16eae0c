"""
ChatRequest DTO for one chat-completion call.

The request carries the full ordered conversation plus sampling parameters
and maps itself to the JSON body expected by ``<endpoint>/chat/completions``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .message import Message


@dataclass
class ChatRequest:
    """Normalized chat request.

    Attributes:
        model: Target model identifier.
        messages: Ordered list of `Message` instances (system first).
        max_tokens: Token budget for the completion; omitted when ``None``.
        temperature: Sampling temperature; omitted when ``None``.
        stream: Request an incremental (server-sent events) response.
    """

    model: str
    messages: List[Message]
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    stream: bool = False

    @classmethod
    def from_history(
        cls,
        history: Sequence[Message],
        *,
        model: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        stream: bool = False,
    ) -> "ChatRequest":
        """Build a request from a snapshot of the conversation."""
        return cls(
            model=model,
            messages=list(history),
            max_tokens=max_tokens,
            temperature=temperature,
            stream=stream,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON body; optional fields are left out when unset."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
        }
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.stream:
            payload["stream"] = True
        return payload


__all__ = [
    "ChatRequest",
]

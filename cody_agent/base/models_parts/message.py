"""
Message DTO used by the conversation store and the completion client.

Defines the `Message` dataclass and the `Role` literal. Messages are frozen:
once appended to a conversation they are never edited in place; the
in-progress assistant text lives outside the conversation until committed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal


Role = Literal["system", "user", "assistant"]

ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class Message:
    """A chat message exchanged with the completion endpoint.

    Attributes:
        role: The role of the message author (``"system"``, ``"user"`` or
            ``"assistant"``).
        content: Plain text content.
    """

    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"unknown message role: {self.role!r}")

    def to_dict(self) -> Dict[str, str]:
        """Return the wire representation ``{"role", "content"}``."""
        return {"role": self.role, "content": self.content}


__all__ = [
    "Message",
    "Role",
    "ROLES",
]

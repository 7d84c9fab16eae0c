"""Conversation store: ordered role-tagged messages with rollback.

Invariants:
- The first message is always the system prompt.
- At most one user message is in flight (appended but not answered).
  ``rollback`` restores the store to exactly its state before that message
  was appended; ``commit_assistant`` closes the turn.
"""

from __future__ import annotations

from typing import List, Optional

from ..base.models import Message
from .prompts import SYSTEM_PROMPT


class ConversationStateError(RuntimeError):
    """Raised when a turn is started or finished out of order."""


class Conversation:
    def __init__(self, system_prompt: str = SYSTEM_PROMPT) -> None:
        self._system_prompt = system_prompt
        self._messages: List[Message] = [Message("system", system_prompt)]
        self._pending: Optional[Message] = None

    # ---- Turn protocol ----
    def begin_user(self, content: str) -> Message:
        """Append the user message of a new turn."""
        if self._pending is not None:
            raise ConversationStateError("a user message is already in flight")
        message = Message("user", content)
        self._messages.append(message)
        self._pending = message
        return message

    def commit_assistant(self, content: str) -> Message:
        """Append the assistant answer and close the in-flight turn."""
        if self._pending is None:
            raise ConversationStateError("no user message in flight")
        message = Message("assistant", content)
        self._messages.append(message)
        self._pending = None
        return message

    def rollback(self) -> bool:
        """Remove the in-flight user message; False when there was none."""
        if self._pending is None:
            return False
        # Identity, not equality: an earlier turn may carry the same text.
        for idx in range(len(self._messages) - 1, 0, -1):
            if self._messages[idx] is self._pending:
                del self._messages[idx]
                break
        self._pending = None
        return True

    @property
    def in_flight(self) -> bool:
        return self._pending is not None

    # ---- Queries ----
    def history(self) -> List[Message]:
        """Snapshot of all messages, system prompt first."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def message_count(self) -> int:
        """Number of non-system messages."""
        return sum(1 for m in self._messages if m.role != "system")

    def last_assistant(self) -> str:
        for message in reversed(self._messages):
            if message.role == "assistant":
                return message.content
        return ""

    # ---- Mutation outside a turn ----
    def clear(self) -> None:
        """Drop everything except a fresh system prompt."""
        self._messages = [Message("system", self._system_prompt)]
        self._pending = None


__all__ = ["Conversation", "ConversationStateError"]

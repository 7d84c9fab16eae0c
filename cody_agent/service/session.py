"""Session orchestrator: one request/response cycle per call.

Protocol per turn:
  1. Append the user message (wrapped with the project structure on the
     first turn of a conversation).
  2. Drain the completion client; every delta goes to the extractor in
     arrival order and the extractor's display text goes to the sink.
  3. On a clean end: flush the extractor, commit the assistant text, then
     hand the collected file instructions to the apply collaborator.
  4. On any failure or abort, including after partial text was shown:
     discard extractor state, roll the user message back and re-raise.
     No partial assistant text is ever committed.

Turn states: ``IDLE -> SENDING -> STREAMING -> COMMITTED | ROLLED_BACK``.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from ..base.cancellation import CancellationToken, CancelledError
from ..base.errors import CompletionError, classify_exception
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import Message
from ..completion import CompletionClient
from ..extraction import CodeBlockExtractor, ExtractionResult, PendingFileInstruction
from .apply_workflow import AppliedFile
from .conversation import Conversation, ConversationStateError
from .prompts import file_context, first_message, structure_update
from .session_context import SessionContext


class TurnState(str, enum.Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class TurnResult:
    """Outcome of a committed turn."""

    text: str
    turn_id: str
    instructions: List[PendingFileInstruction] = field(default_factory=list)
    applied: List[AppliedFile] = field(default_factory=list)


DisplaySink = Callable[[str], None]
FileApplier = Callable[[List[PendingFileInstruction]], Sequence[AppliedFile]]
_Producer = Callable[[List[Message], CancellationToken], Iterable[str]]


class ChatSession:
    """Drives turns against a :class:`CompletionClient`.

    Parameters
    ----------
    client:
        Completion client used for every turn.
    context:
        Session state (directory, flags, last user text).
    apply_files:
        Collaborator receiving the instructions of a committed turn.
    notify_changes:
        After files were written, tell the model the new project structure
        with an ``[Updated]`` turn (best-effort).
    """

    def __init__(
        self,
        client: CompletionClient,
        *,
        context: Optional[SessionContext] = None,
        conversation: Optional[Conversation] = None,
        extractor: Optional[CodeBlockExtractor] = None,
        apply_files: Optional[FileApplier] = None,
        notify_changes: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._context = context or SessionContext()
        self._conversation = conversation or Conversation()
        self._extractor = extractor or CodeBlockExtractor()
        self._apply_files = apply_files
        self._notify_changes = notify_changes
        self._logger = logger or get_logger("cody.session")
        self._state = TurnState.IDLE
        self._token: Optional[CancellationToken] = None

    @property
    def client(self) -> CompletionClient:
        return self._client

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def conversation(self) -> Conversation:
        return self._conversation

    @property
    def state(self) -> TurnState:
        return self._state

    # ---- Turns ----
    def send(
        self,
        text: str,
        *,
        sink: Optional[DisplaySink] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> TurnResult:
        """Run one streamed turn for ``text``.

        Raises whatever the client raised (``TransportError``,
        ``RequestTimeoutError``, ``CancelledError``) after rolling back.
        """
        return self._turn(text, self._streamed, sink=sink, cancel=cancel)

    def send_blocking(
        self,
        text: str,
        *,
        sink: Optional[DisplaySink] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> TurnResult:
        """Same as :meth:`send` over a non-streaming request."""
        return self._turn(text, self._blocking, sink=sink, cancel=cancel)

    def retry(self, *, sink: Optional[DisplaySink] = None, cancel: Optional[CancellationToken] = None) -> TurnResult:
        """Resubmit the last user text."""
        if not self._context.last_user_text:
            raise ConversationStateError("no message to retry")
        return self.send(self._context.last_user_text, sink=sink, cancel=cancel)

    def share_file(
        self,
        name: str,
        content: str,
        *,
        sink: Optional[DisplaySink] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> TurnResult:
        """Send a file's content as a turn (not remembered for ``retry``)."""
        return self._turn(file_context(name, content), self._streamed, sink=sink, cancel=cancel, remember=False)

    def notify_structure_change(self) -> bool:
        """Send the refreshed project structure; False (logged) on failure."""
        structure = self._context.refresh_structure()
        try:
            self._turn(
                structure_update(structure),
                self._blocking,
                remember=False,
                wrap=False,
                apply=False,
            )
        except (CompletionError, CancelledError, ConversationStateError) as exc:
            normalized_log_event(
                self._logger,
                "turn.structure_update_failed",
                LogContext(model=self._client.config.model),
                phase="finalize",
                level=logging.WARNING,
                error_code=classify_exception(exc).value,
                error=str(exc),
            )
            return False
        return True

    def abort(self, reason: str = "aborted by user") -> None:
        """Cancel the running turn, if any. Safe from a signal handler."""
        token = self._token
        if token is not None:
            token.cancel(reason)

    def clear(self) -> None:
        self._conversation.clear()
        self._context.reset_conversation()
        self._state = TurnState.IDLE

    # ---- Internals ----
    def _streamed(self, history: List[Message], token: CancellationToken) -> Iterable[str]:
        return self._client.stream_chat(history, cancel=token)

    def _blocking(self, history: List[Message], token: CancellationToken) -> Iterable[str]:
        return (self._client.chat(history, cancel=token),)

    def _turn(
        self,
        text: str,
        produce: _Producer,
        *,
        sink: Optional[DisplaySink] = None,
        cancel: Optional[CancellationToken] = None,
        remember: bool = True,
        wrap: bool = True,
        apply: bool = True,
    ) -> TurnResult:
        if self._conversation.in_flight:
            raise ConversationStateError("a turn is already in progress")
        if remember:
            self._context.last_user_text = text
        content = text
        if wrap and self._context.first_message:
            content = first_message(self._context.refresh_structure(), text)

        turn_id = uuid.uuid4().hex[:12]
        ctx = LogContext(model=self._client.config.model, turn_id=turn_id)
        token = cancel.child() if cancel is not None else CancellationToken()
        self._token = token
        self._state = TurnState.SENDING
        self._conversation.begin_user(content)
        self._extractor.reset()
        parts: List[str] = []
        instructions: List[PendingFileInstruction] = []
        deltas: Optional[Iterable[str]] = None
        try:
            deltas = produce(self._conversation.history(), token)
            for delta in deltas:
                self._state = TurnState.STREAMING
                parts.append(delta)
                self._forward(self._extractor.process(delta), sink, instructions)
            self._forward(self._extractor.flush(), sink, instructions)
        except BaseException as exc:
            self._extractor.reset()
            self._conversation.rollback()
            self._state = TurnState.ROLLED_BACK
            normalized_log_event(
                self._logger,
                "turn.rollback",
                ctx,
                phase="finalize",
                emitted=len(parts),
                error_code=classify_exception(exc).value,
                error=str(exc),
            )
            raise
        finally:
            self._token = None
            close = getattr(deltas, "close", None)
            if close is not None:
                close()

        answer = "".join(parts)
        self._conversation.commit_assistant(answer)
        if wrap:
            self._context.first_message = False
        self._state = TurnState.COMMITTED
        normalized_log_event(
            self._logger,
            "turn.commit",
            ctx,
            phase="finalize",
            emitted=len(parts),
            chars=len(answer),
            files=len(instructions),
        )
        result = TurnResult(text=answer, turn_id=turn_id, instructions=instructions)
        if apply and instructions and self._apply_files is not None:
            result.applied = list(self._apply_files(list(instructions)))
            if self._notify_changes and any(a.written for a in result.applied):
                self.notify_structure_change()
        return result

    @staticmethod
    def _forward(
        result: ExtractionResult,
        sink: Optional[DisplaySink],
        instructions: List[PendingFileInstruction],
    ) -> None:
        if result.display and sink is not None:
            sink(result.display)
        instructions.extend(result.instructions)


__all__ = ["ChatSession", "DisplaySink", "FileApplier", "TurnResult", "TurnState"]

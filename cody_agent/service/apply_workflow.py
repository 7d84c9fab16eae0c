"""Confirmation workflow for extracted file instructions.

Runs only after a turn has been committed, i.e. after the extractor flushed,
so paths and contents are final. Each instruction is previewed and the user
answers yes / no / all (rest of this batch) / persist (auto-accept for the
rest of the session).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from ..config.defaults import PREVIEW_LINES
from ..extraction import PendingFileInstruction
from ..tools import ToolResult, apply_instruction
from .session_context import SessionContext


class ApplyChoice(str, enum.Enum):
    YES = "y"
    NO = "n"
    ALL = "a"
    PERSIST = "p"

    @classmethod
    def parse(cls, answer: Optional[str]) -> "ApplyChoice":
        """Map a typed answer to a choice; anything unrecognized means yes."""
        value = (answer or "").strip().lower()[:1]
        for choice in cls:
            if choice.value == value:
                return choice
        return cls.YES


def preview(instruction: PendingFileInstruction, lines: int = PREVIEW_LINES) -> str:
    """Header plus the first ``lines`` lines of the file."""
    body = instruction.content.split("\n")
    out = [f"── {instruction.path} ──", *body[:lines]]
    if len(body) > lines:
        out.append(f"... ({len(body) - lines} more lines)")
    return "\n".join(out)


@dataclass
class AppliedFile:
    instruction: PendingFileInstruction
    choice: ApplyChoice
    result: Optional[ToolResult] = None

    @property
    def written(self) -> bool:
        return self.result is not None and self.result.success


Asker = Callable[[PendingFileInstruction, str], str]
Writer = Callable[[PendingFileInstruction, Union[str, Path]], ToolResult]


class ApplyWorkflow:
    """Ask about and write a batch of instructions, in order.

    Parameters
    ----------
    context:
        Session state; supplies the target directory and the auto-accept flag
        (which a ``persist`` answer turns on).
    ask:
        Called with the instruction and its preview; returns the raw answer.
    writer:
        Writes one instruction; defaults to :func:`apply_instruction`.
    report:
        Optional sink for one status line per instruction.
    """

    def __init__(
        self,
        context: SessionContext,
        ask: Asker,
        *,
        writer: Writer = apply_instruction,
        report: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._context = context
        self._ask = ask
        self._writer = writer
        self._report = report

    def run(self, instructions: Sequence[PendingFileInstruction]) -> List[AppliedFile]:
        outcomes: List[AppliedFile] = []
        accept_rest = False
        for instruction in instructions:
            if self._context.auto_accept or accept_rest:
                choice = ApplyChoice.YES
            else:
                choice = ApplyChoice.parse(self._ask(instruction, preview(instruction)))
            if choice is ApplyChoice.NO:
                outcomes.append(AppliedFile(instruction, choice))
                self._say(f"Skipped {instruction.path}")
                continue
            if choice is ApplyChoice.ALL:
                accept_rest = True
            elif choice is ApplyChoice.PERSIST:
                self._context.auto_accept = True
            result = self._writer(instruction, self._context.cwd)
            outcomes.append(AppliedFile(instruction, choice, result))
            if result.success:
                self._say(f"✓ {instruction.path}")
            else:
                self._say(f"✗ {instruction.path}: {result.error}")
        return outcomes

    __call__ = run

    def _say(self, line: str) -> None:
        if self._report is not None:
            self._report(line)


__all__ = ["ApplyChoice", "ApplyWorkflow", "AppliedFile", "preview"]

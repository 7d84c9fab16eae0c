"""Incremental extractor for fenced file blocks in streamed assistant text.

Purpose:
        Consume text deltas of arbitrary size and boundary and turn every
        ```` ```lang:path ```` ... ```` ``` ```` block into a
        :class:`PendingFileInstruction`, while releasing the surrounding chat
        text for display as early as it can be proven not to start a fence.

States:
        - ``SCANNING``: text goes to a carry buffer. The buffer is searched for
          a complete opening fence; text before the earliest position that
          could still grow into one is released for display, the rest is held.
          A candidate header is at most ``3 + 20 + 1 + 96`` characters, so the
          held text is bounded and every decision is the same whichever way
          the input was chunked. A header whose path is blank is chat text.
        - ``IN_BLOCK``: text is appended to the block body. A 10 character tail
          is kept so a closing fence split across deltas is still found. The
          first ```` ``` ```` closes the block; one newline right after it is
          treated as part of the fence.

Limitations:
        - Blocks do not nest. A literal ```` ``` ```` inside file content closes
          the block early and the remainder is shown as chat text.

Ordering:
        - Instructions are emitted in the order their opening fences matched.
        - The extractor never raises and is not thread-safe; one reader drives it.
"""

from __future__ import annotations

import enum
import logging
import re
from typing import List, Optional

from ..base.log_support import LogContext
from ..base.logging import get_logger, normalized_log_event
from .instruction import ExtractionResult, PendingFileInstruction

FENCE = "```"
MAX_LANGUAGE_CHARS = 20
MAX_PATH_CHARS = 96
# Trailing characters kept while in a block so a split closing fence is found.
IN_BLOCK_TAIL_CHARS = 10

OPEN_FENCE_RE = re.compile(
    r"```([^\s:`]{1,%d}):(?=[^\S\n]*\S)([^\n]{1,%d})\n" % (MAX_LANGUAGE_CHARS, MAX_PATH_CHARS)
)
# Suffix of the carry buffer that may still become an opening fence.
_PARTIAL_OPEN_RE = re.compile(
    r"`{1,2}\Z"
    r"|```[^\s:`]{0,%d}\Z"
    r"|```[^\s:`]{1,%d}:[^\n]{0,%d}\Z" % (MAX_LANGUAGE_CHARS, MAX_LANGUAGE_CHARS, MAX_PATH_CHARS)
)


class ExtractorMode(enum.Enum):
    SCANNING = "scanning"
    IN_BLOCK = "in_block"


class CodeBlockExtractor:
    """Stateful reducer from text deltas to display text and file instructions.

    Usage::

        extractor = CodeBlockExtractor()
        for delta in deltas:
            result = extractor.process(delta)
            sink(result.display)
            pending.extend(result.instructions)
        tail = extractor.flush()

    ``flush`` is the clean end-of-stream; after a failure call ``reset``
    instead so incomplete block state is discarded.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None, ctx: Optional[LogContext] = None) -> None:
        self._logger = logger or get_logger("cody.extract")
        self._ctx = ctx
        self.reset()

    # ---- State ----
    def reset(self) -> None:
        """Drop all buffered state and return to ``SCANNING``."""
        self._mode = ExtractorMode.SCANNING
        self._carry = ""
        self._language = ""
        self._path = ""
        self._content: List[str] = []
        self._after_close = False

    @property
    def mode(self) -> ExtractorMode:
        return self._mode

    @property
    def carry(self) -> str:
        """Text currently held back (scanning) or the in-block tail."""
        return self._carry

    # ---- Feeding ----
    def process(self, delta: str) -> ExtractionResult:
        """Consume one delta; return the display text and completed blocks."""
        result = ExtractionResult()
        display: List[str] = []
        text = self._carry + delta
        self._carry = ""
        while text:
            if self._mode is ExtractorMode.IN_BLOCK:
                text = self._consume_block(text, result)
            else:
                text = self._consume_scanning(text, display)
        result.display = "".join(display)
        return result

    def flush(self) -> ExtractionResult:
        """Finish the turn: release held text and recover an unclosed block.

        An unclosed block is emitted only when it has non-whitespace content.
        The extractor is reset afterwards.
        """
        result = ExtractionResult()
        if self._mode is ExtractorMode.IN_BLOCK:
            self._content.append(self._carry)
            content = "".join(self._content).strip()
            normalized_log_event(
                self._logger,
                "extract.flush",
                self._ctx,
                phase="finalize",
                emitted=bool(content),
                path=self._path,
                chars=len(content),
            )
            if content:
                result.instructions.append(
                    PendingFileInstruction(path=self._path, content=content, language=self._language)
                )
        else:
            result.display = self._carry
        self.reset()
        return result

    # ---- Transitions ----
    def _consume_scanning(self, text: str, display: List[str]) -> str:
        if self._after_close:
            if text.startswith("\r") and len(text) == 1:
                self._carry = text
                return ""
            if text.startswith("\r\n"):
                text = text[2:]
            elif text.startswith("\n"):
                text = text[1:]
            self._after_close = False
            if not text:
                return ""
        match = OPEN_FENCE_RE.search(text)
        if match is not None:
            display.append(text[: match.start()])
            self._open_block(match.group(1), match.group(2).strip())
            return text[match.end():]
        hold = self._holdback_start(text)
        display.append(text[:hold])
        self._carry = text[hold:]
        return ""

    def _consume_block(self, text: str, result: ExtractionResult) -> str:
        idx = text.find(FENCE)
        if idx < 0:
            cut = max(0, len(text) - IN_BLOCK_TAIL_CHARS)
            self._content.append(text[:cut])
            self._carry = text[cut:]
            return ""
        self._content.append(text[:idx])
        result.instructions.append(self._close_block())
        return text[idx + len(FENCE):]

    @staticmethod
    def _holdback_start(text: str) -> int:
        """Index of the earliest suffix that may still grow into an opening fence."""
        idx = text.find("`")
        while idx >= 0:
            if _PARTIAL_OPEN_RE.match(text, idx):
                return idx
            idx = text.find("`", idx + 1)
        return len(text)

    def _open_block(self, language: str, path: str) -> None:
        self._mode = ExtractorMode.IN_BLOCK
        self._language = language
        self._path = path
        self._content = []
        normalized_log_event(
            self._logger,
            "extract.block_open",
            self._ctx,
            phase="mid_stream",
            level=logging.DEBUG,
            path=path,
            language=language,
        )

    def _close_block(self) -> PendingFileInstruction:
        instruction = PendingFileInstruction(
            path=self._path,
            content="".join(self._content).strip(),
            language=self._language,
        )
        normalized_log_event(
            self._logger,
            "extract.block_close",
            self._ctx,
            phase="mid_stream",
            level=logging.DEBUG,
            emitted=True,
            path=instruction.path,
            chars=len(instruction.content),
        )
        self._mode = ExtractorMode.SCANNING
        self._language = ""
        self._path = ""
        self._content = []
        self._after_close = True
        return instruction


__all__ = [
    "CodeBlockExtractor",
    "ExtractorMode",
    "FENCE",
    "IN_BLOCK_TAIL_CHARS",
    "OPEN_FENCE_RE",
]

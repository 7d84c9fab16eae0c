"""Records produced by the code-block extractor."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union


@dataclass(frozen=True)
class PendingFileInstruction:
    """A complete "write this file" instruction taken from a fenced block.

    Attributes:
        path: Target path as written by the model (absolute, ``~``-prefixed
            or relative to the session directory).
        content: File body, trimmed of leading/trailing whitespace.
        language: Language tag from the opening fence.
    """

    path: str
    content: str
    language: str

    def resolve(self, base_dir: Union[str, Path]) -> Path:
        """Return the absolute target path, relative paths under ``base_dir``."""
        target = Path(self.path).expanduser()
        if target.is_absolute():
            return target
        return Path(base_dir) / target


@dataclass
class ExtractionResult:
    """Output of one ``process``/``flush`` call.

    ``display`` is the chat text released for the terminal (fence markup and
    block bodies removed); ``instructions`` are the blocks completed by this
    call, in opening order.
    """

    display: str = ""
    instructions: List[PendingFileInstruction] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.display or self.instructions)


__all__ = ["PendingFileInstruction", "ExtractionResult"]

"""Result record returned by every tool; tools never raise."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class ToolResult:
    """Outcome of a file or process tool.

    Attributes:
        success: Whether the operation did what was asked.
        output: Human-readable output (file content, listing, stdout).
        error: Failure description or captured stderr.
        path: Path the operation acted on, when there is one.
    """

    success: bool
    output: str = ""
    error: Optional[str] = None
    path: Optional[Path] = None

    @classmethod
    def failed(cls, error: str, *, output: str = "", path: Optional[Path] = None) -> "ToolResult":
        return cls(success=False, output=output, error=error, path=path)


__all__ = ["ToolResult"]

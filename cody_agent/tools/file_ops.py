"""File tools used by the shell and the apply workflow.

Every function resolves its path against the session directory, catches
``OSError`` (and decode errors for reads) and reports them through a
:class:`ToolResult` instead of raising.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..base.logging import get_logger, log_event
from ..extraction import PendingFileInstruction
from .results import ToolResult

PathLike = Union[str, Path]

_logger = get_logger("cody.tools")


def resolve_path(raw: PathLike, base_dir: PathLike) -> Path:
    """Expand ``~`` and anchor relative paths at ``base_dir`` (normalized)."""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = Path(base_dir) / path
    return Path(os.path.normpath(path))


def apply_instruction(
    instruction: PendingFileInstruction,
    base_dir: PathLike,
    *,
    logger: Optional[logging.Logger] = None,
) -> ToolResult:
    """Write one extracted file, creating parent directories as needed."""
    target = Path(os.path.normpath(instruction.resolve(base_dir)))
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(instruction.content, encoding="utf-8")
    except OSError as exc:
        log_event(logger or _logger, "apply.file", level=logging.WARNING, path=str(target), ok=False, error=str(exc))
        return ToolResult.failed(f"Failed to save file: {exc}", path=target)
    log_event(logger or _logger, "apply.file", path=str(target), ok=True, chars=len(instruction.content))
    return ToolResult(success=True, output=f"File saved: {target}", path=target)


def read_file(raw: PathLike, base_dir: PathLike) -> ToolResult:
    path = resolve_path(raw, base_dir)
    try:
        return ToolResult(success=True, output=path.read_text(encoding="utf-8"), path=path)
    except (OSError, UnicodeDecodeError) as exc:
        return ToolResult.failed(f"Failed to read file: {exc}", path=path)


def list_files(raw: Optional[PathLike], base_dir: PathLike) -> ToolResult:
    """List visible entries of a directory, directories first with a ``/`` suffix."""
    path = resolve_path(raw, base_dir) if raw else Path(base_dir)
    try:
        entries = [p for p in path.iterdir() if not p.name.startswith(".")]
    except OSError as exc:
        return ToolResult.failed(f"Failed to list files: {exc}", path=path)
    dirs = sorted(p.name + "/" for p in entries if p.is_dir())
    files = sorted(p.name for p in entries if not p.is_dir())
    names = dirs + files
    return ToolResult(success=True, output="\n".join(names) if names else "(empty)", path=path)


def delete_file(raw: PathLike, base_dir: PathLike) -> ToolResult:
    """Delete a single file; directories are refused."""
    path = resolve_path(raw, base_dir)
    if path.is_dir():
        return ToolResult.failed(f"Refusing to delete a directory: {path}", path=path)
    try:
        path.unlink()
    except OSError as exc:
        return ToolResult.failed(f"Failed to delete file: {exc}", path=path)
    log_event(_logger, "tool.delete", path=str(path))
    return ToolResult(success=True, output=f"Deleted: {path.name}", path=path)


__all__ = [
    "apply_instruction",
    "delete_file",
    "list_files",
    "read_file",
    "resolve_path",
]

"""Filesystem and process tools (results, never exceptions)."""

from .file_ops import apply_instruction, delete_file, list_files, read_file, resolve_path
from .process import RUNNERS, run_command, run_script, runner_for
from .results import ToolResult

__all__ = [
    "RUNNERS",
    "ToolResult",
    "apply_instruction",
    "delete_file",
    "list_files",
    "read_file",
    "resolve_path",
    "run_command",
    "run_script",
    "runner_for",
]

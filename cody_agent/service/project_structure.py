"""Textual project listings for the model and the terminal.

``structure_text`` is what the model sees (first turn, ``[Updated]``
notices); ``display_tree`` is the box-drawing view behind ``/tree``.
Hidden entries and build or vendor directories are skipped; unreadable
entries are left out silently.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Union

from ..config.defaults import (
    STRUCTURE_MAX_DEPTH,
    STRUCTURE_MAX_ENTRIES_PER_DIR,
    STRUCTURE_SKIP_DIRS,
)

EMPTY_MARKER = "  (empty or no readable files)"
TREE_MAX_DEPTH = 4
TREE_SKIP_DIRS = ("node_modules", "dist", "build", ".git")


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def _visible_entries(directory: Path, skip: tuple) -> List[Path]:
    try:
        entries = [p for p in directory.iterdir() if not p.name.startswith(".") and p.name not in skip]
    except OSError:
        return []
    return sorted(entries, key=lambda p: (not _is_dir(p), p.name.lower()))


def structure_lines(
    directory: Union[str, Path],
    *,
    indent: str = "  ",
    depth: int = 0,
    max_depth: int = STRUCTURE_MAX_DEPTH,
    max_entries: int = STRUCTURE_MAX_ENTRIES_PER_DIR,
) -> List[str]:
    """Indented listing, directories first, at most ``max_entries`` per level."""
    if depth > max_depth:
        return []
    lines: List[str] = []
    for entry in _visible_entries(Path(directory), STRUCTURE_SKIP_DIRS)[:max_entries]:
        if _is_dir(entry):
            lines.append(f"{indent}{entry.name}/")
            lines.extend(
                structure_lines(
                    entry,
                    indent=indent + "  ",
                    depth=depth + 1,
                    max_depth=max_depth,
                    max_entries=max_entries,
                )
            )
        else:
            lines.append(f"{indent}{entry.name}")
    return lines


def structure_text(root: Union[str, Path]) -> str:
    """Project listing headed by the root directory name."""
    root = Path(root)
    lines = [f"{root.name or root}/"]
    lines.extend(structure_lines(root))
    if len(lines) == 1:
        lines.append(EMPTY_MARKER)
    return "\n".join(lines)


def display_tree(directory: Union[str, Path], prefix: str = "", depth: int = 0) -> str:
    if depth >= TREE_MAX_DEPTH:
        return ""
    entries = _visible_entries(Path(directory), TREE_SKIP_DIRS)
    out: List[str] = []
    for idx, entry in enumerate(entries):
        last = idx == len(entries) - 1
        connector = "└── " if last else "├── "
        if _is_dir(entry):
            out.append(f"{prefix}{connector}{entry.name}/\n")
            out.append(display_tree(entry, prefix + ("    " if last else "│   "), depth + 1))
        else:
            out.append(f"{prefix}{connector}{entry.name}\n")
    return "".join(out)


__all__ = ["EMPTY_MARKER", "display_tree", "structure_lines", "structure_text"]

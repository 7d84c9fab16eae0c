"""Per-session mutable state passed explicitly to the shell and workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from ..tools import resolve_path
from .project_structure import structure_text


@dataclass
class SessionContext:
    """State of one interactive session.

    Attributes:
        cwd: Directory relative paths and new files are resolved against.
        auto_accept: Write extracted files without asking.
        first_message: The next turn is the first of the conversation and is
            wrapped with the project structure.
        last_user_text: Raw text of the last submitted turn (for ``/retry``).
        project_structure: Last computed structure listing.
    """

    cwd: Path = field(default_factory=Path.cwd)
    auto_accept: bool = False
    first_message: bool = True
    last_user_text: Optional[str] = None
    project_structure: str = ""

    def resolve(self, raw: Union[str, Path]) -> Path:
        return resolve_path(raw, self.cwd)

    def refresh_structure(self) -> str:
        """Recompute and store the project structure of ``cwd``."""
        self.project_structure = structure_text(self.cwd)
        return self.project_structure

    def change_dir(self, raw: Optional[Union[str, Path]]) -> Optional[Path]:
        """Move to ``raw`` (home when empty); None when it is not a directory."""
        target = self.resolve(raw) if raw else Path.home()
        if not target.is_dir():
            return None
        self.cwd = target
        self.refresh_structure()
        return target

    def reset_conversation(self) -> None:
        """Forget per-conversation flags after ``/clear``."""
        self.first_message = True


__all__ = ["SessionContext"]

# -*- coding: utf-8 -*-
"""Utility helpers shared by the interactive shell.

Functions
---------
- ``parse_verbosity(value)``: Map user strings and synonyms to a canonical
  logging level name.
- ``suppress_console_logs()``: Context manager to temporarily detach console
  handlers while preserving file handlers, so JSON log lines never interleave
  with streamed assistant text.
- ``choose(items, ...)``: Numbered single-choice prompt.
- ``shorten(text, width)``: One-line excerpt for echoes such as ``/retry``.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from ...base.logging import BASE_LOGGER_NAME


def parse_verbosity(value: str) -> Optional[str]:
    """Parse a user-provided verbosity string into a canonical level.

    Accepted values (case-insensitive):
    - Canonical: DEBUG, INFO, WARNING, ERROR, CRITICAL
    - Synonyms: verbose->DEBUG; low->INFO; warn->WARNING;
      err/quiet->ERROR; crit/silent->CRITICAL

    Returns
    -------
    Optional[str]
        Canonical upper-cased level, or ``None`` if invalid.
    """
    v = value.strip().lower()
    mapping = {
        "debug": "DEBUG",
        "verbose": "DEBUG",
        "info": "INFO",
        "low": "INFO",
        "warning": "WARNING",
        "warn": "WARNING",
        "error": "ERROR",
        "err": "ERROR",
        "quiet": "ERROR",
        "critical": "CRITICAL",
        "crit": "CRITICAL",
        "silent": "CRITICAL",
    }
    return mapping.get(v)


@contextlib.contextmanager
def suppress_console_logs() -> Iterator[None]:
    """Temporarily detach console handlers of the ``cody`` logger tree.

    Behavior
    --------
    - Only stream handlers are detached; the rotating file handler attached
      by ``configure_logger`` keeps receiving records.
    - Detached handlers are restored on exit.
    """
    detached: List[Tuple[logging.Logger, logging.Handler]] = []
    try:
        targets = [logging.getLogger(BASE_LOGGER_NAME)]
        for name, candidate in list(logging.Logger.manager.loggerDict.items()):
            if isinstance(candidate, logging.Logger) and name.startswith(BASE_LOGGER_NAME + "."):
                targets.append(candidate)
        for lg in targets:
            for handler in list(lg.handlers):
                if getattr(handler, "_cody_file_handler", False):
                    continue
                if isinstance(handler, logging.StreamHandler):
                    with contextlib.suppress(Exception):
                        handler.flush()
                    detached.append((lg, handler))
                    lg.removeHandler(handler)
        yield
    finally:
        for lg, handler in detached:
            lg.addHandler(handler)


def choose(
    items: Sequence[str],
    *,
    prompt: str = "Select #: ",
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
    current: Optional[str] = None,
) -> Optional[str]:
    """Print a numbered list and return the chosen item (None if cancelled).

    An empty answer, an out-of-range number or EOF cancels.
    """
    if not items:
        return None
    for idx, item in enumerate(items, start=1):
        marker = " *" if item == current else ""
        output(f"  {idx:3d}. {item}{marker}")
    try:
        answer = input_fn(prompt).strip()
    except EOFError:
        return None
    if not answer.isdigit():
        return None
    pos = int(answer)
    return items[pos - 1] if 1 <= pos <= len(items) else None


def shorten(text: str, width: int = 50) -> str:
    line = " ".join(text.split())
    return line if len(line) <= width else line[:width] + "..."


__all__ = ["choose", "parse_verbosity", "shorten", "suppress_console_logs"]

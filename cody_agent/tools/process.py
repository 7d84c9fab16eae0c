"""Process tools: run a shell command or a script file.

Failure semantics:
- ``run_command`` always returns a :class:`ToolResult`. A non-zero exit,
  a spawn failure and a hard timeout are all reported as ``success=False``.
- On timeout the whole process group is killed (POSIX) so a shell wrapper
  cannot leave its children running with our pipes open.
- A process that left the group (``setsid``) may still hold the pipes; the
  output is then drained for at most ``KILL_DRAIN_SECONDS`` before the pipes
  are closed and the partial output is returned.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shlex
import signal
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..base.logging import get_logger, log_event
from ..base.timeouts import get_timeout_config
from .results import ToolResult

_logger = get_logger("cody.tools")

KILL_DRAIN_SECONDS = 1.0

# Extension -> (executable, arguments placed before the file name)
RUNNERS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    ".py": (sys.executable or "python3", ()),
    ".js": ("bun", ()),
    ".ts": ("bun", ()),
    ".sh": ("bash", ()),
    ".rb": ("ruby", ()),
    ".go": ("go", ("run",)),
    ".ps1": ("powershell", ("-File",)),
    ".bat": ("cmd", ("/c",)),
}


def runner_for(filename: Union[str, Path]) -> Optional[List[str]]:
    """Return the argv that runs ``filename``, or None for unknown types."""
    entry = RUNNERS.get(Path(filename).suffix.lower())
    if entry is None:
        return None
    cmd, prefix = entry
    return [cmd, *prefix, Path(filename).name]


def _kill(proc: subprocess.Popen) -> None:
    if os.name == "posix":
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(proc.pid, signal.SIGKILL)
    else:  # pragma: no cover - windows
        proc.kill()


def _drain_after_kill(proc: subprocess.Popen) -> str:
    """Collect what the killed command wrote, without waiting on escaped children."""
    try:
        stdout, _ = proc.communicate(timeout=KILL_DRAIN_SECONDS)
        return stdout or ""
    except subprocess.TimeoutExpired as exc:
        partial = exc.stdout
    for pipe in (proc.stdout, proc.stderr):
        if pipe is not None:
            with contextlib.suppress(OSError):
                pipe.close()
    with contextlib.suppress(subprocess.TimeoutExpired):
        proc.wait(timeout=KILL_DRAIN_SECONDS)
    if isinstance(partial, bytes):
        return partial.decode("utf-8", errors="replace")
    return partial or ""


def run_command(
    command: str,
    args: Sequence[str] = (),
    working_dir: Optional[Union[str, Path]] = None,
    timeout: Optional[float] = None,
) -> ToolResult:
    """Run ``command`` (through the shell) and capture its output.

    Parameters
    ----------
    command:
        Command line or executable name.
    args:
        Extra arguments, shell-quoted and appended to ``command``.
    working_dir:
        Directory to run in (current directory when None).
    timeout:
        Seconds before the process is killed; defaults to
        ``TimeoutConfig.command_timeout_seconds``.
    """
    seconds = timeout if timeout is not None else get_timeout_config().command_timeout_seconds
    line = " ".join([command, *(shlex.quote(a) for a in args)]) if args else command
    try:
        proc = subprocess.Popen(
            line,
            shell=True,
            cwd=str(working_dir) if working_dir is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            start_new_session=os.name == "posix",
        )
    except OSError as exc:
        return ToolResult.failed(f"Failed to run command: {exc}")
    try:
        stdout, stderr = proc.communicate(timeout=seconds)
    except subprocess.TimeoutExpired:
        _kill(proc)
        stdout = _drain_after_kill(proc)
        log_event(_logger, "tool.run_command", level=logging.WARNING, command=line, timed_out=True)
        return ToolResult.failed(f"Command timed out ({seconds:g}s)", output=stdout)
    log_event(_logger, "tool.run_command", level=logging.DEBUG, command=line, returncode=proc.returncode)
    return ToolResult(
        success=proc.returncode == 0,
        output=stdout or "(no output)",
        error=stderr or None,
    )


def run_script(path: Union[str, Path], timeout: Optional[float] = None) -> ToolResult:
    """Run a script file with the runner chosen by its extension.

    The script runs in its own directory.
    """
    script = Path(path)
    argv = runner_for(script)
    if argv is None:
        return ToolResult.failed(f"No runner configured for this file type: {script.name}", path=script)
    if not script.is_file():
        return ToolResult.failed(f"File not found: {script}", path=script)
    result = run_command(shlex.quote(argv[0]), argv[1:], working_dir=script.parent, timeout=timeout)
    result.path = script
    return result


__all__ = ["RUNNERS", "run_command", "run_script", "runner_for"]

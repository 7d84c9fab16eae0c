"""Action handlers for the ``cody`` subcommands.

Each handler receives parsed arguments plus the merged configuration and
returns a process exit code. Errors are reported as one line on stderr.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ...base.errors import CompletionError
from ...base.logging import configure_logger, get_logger, log_event
from ...completion import CompletionClient
from ...config import AgentConfig, load_config
from ..session_context import SessionContext
from .cli_shell import CodyShell
from .cli_utils import parse_verbosity

_logger = get_logger("cody.cli")


def config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map CLI flags onto ``AgentConfig`` fields (``None`` means not given)."""
    return {
        "api_url": getattr(args, "api_url", None),
        "api_key": getattr(args, "api_key", None),
        "model": getattr(args, "model", None),
        "max_tokens": getattr(args, "max_tokens", None),
        "temperature": getattr(args, "temperature", None),
        "timeout_seconds": getattr(args, "timeout", None),
    }


def apply_logging(args: argparse.Namespace) -> None:
    """Apply ``--verbosity``/``--log-file`` to the shared logger."""
    raw = getattr(args, "verbosity", None)
    level = parse_verbosity(raw) if raw else None
    if raw and level is None:
        print(f"warning: ignoring invalid verbosity '{raw}'", file=sys.stderr)
    log_file = getattr(args, "log_file", None)
    configure_logger(level=level, file_path=log_file)
    log_event(_logger, "cli.options.apply_logging", level_name=level, log_file=log_file)


def prepare(args: argparse.Namespace) -> Optional[AgentConfig]:
    """Configure logging and load the merged configuration (None if invalid)."""
    apply_logging(args)
    try:
        config = load_config(config_overrides(args))
    except ValidationError as exc:
        print(f"error: invalid configuration: {exc}", file=sys.stderr)
        return None
    log_event(_logger, "cli.config.loaded", config=config.redacted())
    return config


def _context(args: argparse.Namespace) -> SessionContext:
    root = Path(args.dir).expanduser().resolve() if getattr(args, "dir", None) else Path.cwd()
    return SessionContext(cwd=root, auto_accept=bool(getattr(args, "auto", False)))


def handle_shell(args: argparse.Namespace, config: AgentConfig) -> int:
    shell = CodyShell(config, context=_context(args), stream=not args.no_stream)
    return shell.run()


def handle_ask(args: argparse.Namespace, config: AgentConfig) -> int:
    """Run a single turn; exit code 1 when it failed or nothing is configured."""
    if not config.is_ready():
        print("error: no endpoint/model configured; run 'cody' and use /setup", file=sys.stderr)
        return 1
    shell = CodyShell(config, context=_context(args), stream=not args.no_stream)
    result = shell.chat(" ".join(args.prompt))
    return 0 if result is not None else 1


def handle_models(args: argparse.Namespace, config: AgentConfig) -> int:
    if not config.api_url:
        print("error: no endpoint configured (--api-url or CODY_API_URL)", file=sys.stderr)
        return 1
    try:
        models = CompletionClient(config).list_models()
    except CompletionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    needle = (args.filter or "").lower()
    for model in models:
        if needle in model.lower():
            print(model)
    return 0


__all__ = ["apply_logging", "config_overrides", "handle_ask", "handle_models", "handle_shell", "prepare"]

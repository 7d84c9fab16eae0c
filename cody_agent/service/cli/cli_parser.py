"""CLI parser construction for ``cody``.

This module wires argument shapes only; handlers live in ``cli_actions``.
"""

from __future__ import annotations

import argparse

SUBCOMMANDS = ("shell", "ask", "models")


def add_config_flags(parser: argparse.ArgumentParser) -> None:
    """Attach endpoint/sampling overrides and logging flags to a parser.

    Every flag defaults to ``None`` so that omitted values fall back to the
    saved configuration and environment.
    """
    grp = parser.add_argument_group("endpoint")
    grp.add_argument("--api-url", default=None, help="Base URL of an OpenAI-compatible endpoint")
    grp.add_argument("--api-key", default=None, help="Bearer token (prefer CODY_API_KEY)")
    grp.add_argument("--model", default=None)
    grp.add_argument("--max-tokens", type=int, default=None)
    grp.add_argument("--temperature", type=float, default=None)
    grp.add_argument("--timeout", type=float, default=None, help="Seconds allowed for one whole exchange")
    log = parser.add_argument_group("logging")
    log.add_argument("--verbosity", default=None, help="DEBUG|INFO|WARNING|ERROR|CRITICAL (or synonyms)")
    log.add_argument("--log-file", default=None, help="Also write JSON logs to this file")


def add_session_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--dir", default=None, help="Project directory (default: current directory)")
    parser.add_argument("--auto", action="store_true", help="Write extracted files without asking")
    parser.add_argument("--no-stream", action="store_true", help="Use non-streaming requests")


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level parser with ``shell``, ``ask`` and ``models``.

    No I/O or network calls occur here.
    """
    p = argparse.ArgumentParser(
        prog="cody", description="Terminal coding assistant for OpenAI-compatible chat endpoints"
    )
    sub = p.add_subparsers(dest="cmd")

    p_shell = sub.add_parser("shell", help="Interactive session (default)")
    add_config_flags(p_shell)
    add_session_flags(p_shell)

    p_ask = sub.add_parser("ask", help="Send one prompt, print the answer and offer its files")
    add_config_flags(p_ask)
    add_session_flags(p_ask)
    p_ask.add_argument("prompt", nargs="+")

    p_models = sub.add_parser("models", help="List the models offered by the endpoint")
    add_config_flags(p_models)
    p_models.add_argument("filter", nargs="?", default=None)

    return p


__all__ = ["SUBCOMMANDS", "add_config_flags", "add_session_flags", "build_parser"]

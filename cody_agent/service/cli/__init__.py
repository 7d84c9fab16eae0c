"""``cody`` command-line entrypoint.

This package wires argument parsing to action handlers kept in small,
focused modules; it performs no completion logic directly.

Public API re-exports:
- ``main``: CLI entrypoint callable
"""

from __future__ import annotations

import sys
from typing import Optional

from .cli_actions import handle_ask, handle_models, handle_shell, prepare
from .cli_parser import SUBCOMMANDS, build_parser


def main(argv: Optional[list[str]] = None) -> int:
	"""CLI entrypoint.

	Parameters
	----------
	argv: Optional[list[str]]
		Argument vector; when ``None`` uses ``sys.argv[1:]``.

	Returns
	-------
	int
		Process exit code (0 success, non-zero on error).
	"""
	p = build_parser()
	# Inject the default subcommand "shell" when omitted.
	argv_list = list(sys.argv[1:] if argv is None else argv)
	if not argv_list or argv_list[0] not in SUBCOMMANDS:
		if not argv_list or argv_list[0] not in {"-h", "--help"}:
			argv_list = ["shell"] + argv_list
	args = p.parse_args(argv_list)

	config = prepare(args)
	if config is None:
		return 2
	if args.cmd == "ask":
		return handle_ask(args, config)
	if args.cmd == "models":
		return handle_models(args, config)
	return handle_shell(args, config)


if __name__ == "__main__":  # pragma: no cover
	raise SystemExit(main())

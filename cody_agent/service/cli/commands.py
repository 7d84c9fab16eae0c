"""Slash-command table: aliases, parsing and a name -> handler registry.

Commands are data. The shell registers one handler per canonical name;
aliases are resolved before lookup, so tests can exercise dispatch without
a terminal.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

COMMAND_ALIASES: Dict[str, str] = {
    "/q": "/exit",
    "/e": "/exit",
    "/quit": "/exit",
    "/h": "/help",
    "/?": "/help",
    "/c": "/clear",
    "/cls": "/clear",
    "/cfg": "/status",
    "/config": "/status",
    "/settings": "/status",
    "/resetup": "/setup",
    "/l": "/list",
    "/ls": "/list",
    "/dir": "/list",
    "/s": "/save",
    "/w": "/save",
    "/write": "/save",
    "/r": "/read",
    "/cat": "/read",
    "/show": "/read",
    "/d": "/delete",
    "/del": "/delete",
    "/rm": "/delete",
    "/x": "/run",
    "/exec": "/run",
    "/sh": "/shell",
    "/$": "/shell",
    "/cmd": "/shell",
}

_TOKEN_RE = re.compile(r'(?:[^\s"]+|"[^"]*")+')


def resolve_command(line: str, aliases: Mapping[str, str] = COMMAND_ALIASES) -> str:
    """Replace an aliased command word with its canonical name."""
    head, sep, rest = line.strip().partition(" ")
    canonical = aliases.get(head.lower())
    if canonical is None:
        return line.strip()
    return canonical + sep + rest


@dataclass(frozen=True)
class ParsedCommand:
    name: str
    args: List[str]

    @property
    def arg_text(self) -> str:
        return " ".join(self.args)


def parse_command(line: str, aliases: Mapping[str, str] = COMMAND_ALIASES) -> ParsedCommand:
    """Split a command line into a canonical name and quote-aware arguments.

    Double-quoted arguments keep their spaces; the quotes are removed.
    """
    parts = _TOKEN_RE.findall(resolve_command(line, aliases))
    name = parts[0].lower() if parts else ""
    args = [re.sub(r'^"|"$', "", p) for p in parts[1:]]
    return ParsedCommand(name=name, args=args)


Handler = Callable[[Any, List[str]], Optional[bool]]


@dataclass(frozen=True)
class Command:
    """One registered command.

    ``handler(target, args)`` returns True to end the shell.
    """

    name: str
    handler: Handler
    usage: str = ""
    summary: str = ""
    needs_endpoint: bool = False


class Dispatch(enum.Enum):
    HANDLED = "handled"
    EXIT = "exit"
    UNKNOWN = "unknown"
    NOT_READY = "not_ready"


class CommandRegistry:
    def __init__(self, aliases: Optional[Mapping[str, str]] = None) -> None:
        self._aliases: Dict[str, str] = dict(COMMAND_ALIASES if aliases is None else aliases)
        self._commands: Dict[str, Command] = {}

    def add(self, command: Command) -> Command:
        if command.name in self._commands:
            raise ValueError(f"command already registered: {command.name}")
        self._commands[command.name] = command
        return command

    def register(self, name: str, usage: str = "", summary: str = "", *, needs_endpoint: bool = False):
        """Decorator form of :meth:`add`."""

        def deco(fn: Handler) -> Handler:
            self.add(Command(name=name, handler=fn, usage=usage or name, summary=summary, needs_endpoint=needs_endpoint))
            return fn

        return deco

    def get(self, name: str) -> Optional[Command]:
        key = name.lower()
        return self._commands.get(self._aliases.get(key, key))

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands.values())

    def aliases_for(self, name: str) -> List[str]:
        return sorted(a for a, target in self._aliases.items() if target == name)

    def parse(self, line: str) -> ParsedCommand:
        return parse_command(line, self._aliases)

    def dispatch(self, target: Any, line: str, *, ready: bool = True) -> Dispatch:
        """Run the command named in ``line`` against ``target``.

        ``ready`` tells whether an endpoint is configured; commands that need
        one are refused with ``NOT_READY`` otherwise.
        """
        parsed = self.parse(line)
        command = self._commands.get(parsed.name)
        if command is None:
            return Dispatch.UNKNOWN
        if command.needs_endpoint and not ready:
            return Dispatch.NOT_READY
        return Dispatch.EXIT if command.handler(target, parsed.args) else Dispatch.HANDLED


__all__ = [
    "COMMAND_ALIASES",
    "Command",
    "CommandRegistry",
    "Dispatch",
    "ParsedCommand",
    "parse_command",
    "resolve_command",
]

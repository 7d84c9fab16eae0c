"""Interactive terminal session for the coding assistant.

Design
------
- Presentation only: reads lines, prints text. Turns go through
  :class:`~cody_agent.service.session.ChatSession`; file writes go through
  :class:`~cody_agent.service.apply_workflow.ApplyWorkflow`.
- Lines starting with ``/`` are commands looked up in a
  :class:`CommandRegistry` built from the ``COMMANDS`` table below; any other
  line is a chat turn streamed to stdout.
- Ctrl-C during a turn cancels it (the turn is rolled back); at the prompt it
  just starts a new line. EOF exits.
- Console JSON logs are detached while a turn is printed.
"""

from __future__ import annotations

import contextlib
import signal
import sys
import threading
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import httpx
from pydantic import ValidationError

from ...base.cancellation import CancellationToken, CancelledError
from ...base.errors import CompletionError, RequestTimeoutError
from ...completion import CompletionClient
from ...config import (
    AgentConfig,
    config_file_path,
    load_cached_models,
    load_session,
    save_cached_models,
    save_config,
    save_session,
)
from ...config.env import is_placeholder
from ...extraction import PendingFileInstruction
from ...tools import delete_file, list_files, read_file, run_command, run_script
from ..apply_workflow import ApplyWorkflow
from ..conversation import ConversationStateError
from ..project_structure import display_tree
from ..session import ChatSession, TurnResult
from ..session_context import SessionContext
from .cli_utils import choose, shorten, suppress_console_logs
from .commands import Command, CommandRegistry, Dispatch

PROMPT = "you> "
ASSISTANT_PREFIX = "Cody → "


def _stdout_write(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


@contextlib.contextmanager
def interrupt_cancels(token: CancellationToken) -> Iterator[None]:
    """Route SIGINT to ``token.cancel`` for the duration of the block.

    Only the main thread can install signal handlers; elsewhere this is a
    no-op and the caller relies on ``ChatSession.abort``.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, lambda signum, frame: token.cancel("interrupted"))
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


class CodyShell:
    """Holds the terminal session and executes commands.

    Parameters
    ----------
    config:
        Merged configuration; edited in place by ``/setup``, ``/model`` and
        ``/timeout`` (the client reads it on every request).
    context:
        Session state shared with the orchestrator and the apply workflow.
    http_client:
        Optional ``httpx.Client`` for the completion client (tests).
    input_fn, output, write:
        Line input, line output and raw (unbuffered) output for streamed text.
    stream:
        Use streaming requests for chat turns.
    """

    def __init__(
        self,
        config: AgentConfig,
        *,
        context: Optional[SessionContext] = None,
        http_client: Optional[httpx.Client] = None,
        input_fn: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
        write: Callable[[str], None] = _stdout_write,
        registry: Optional[CommandRegistry] = None,
        stream: bool = True,
    ) -> None:
        self.config = config
        self.context = context or SessionContext()
        self.stream = stream
        self._input = input_fn
        self._out = output
        self._write = write
        self.client = CompletionClient(config, http_client=http_client)
        self.workflow = ApplyWorkflow(self.context, self._ask_apply, report=output)
        self.session = ChatSession(self.client, context=self.context, apply_files=self.workflow)
        self.registry = registry or build_registry()
        self.context.refresh_structure()

    # ---- Loop ----
    def run(self) -> int:
        """Read-eval loop; returns the process exit code."""
        self._banner()
        while True:
            try:
                line = self._input(PROMPT)
            except EOFError:
                line = "/exit"
            except KeyboardInterrupt:
                self._out("")
                continue
            if not self.handle_line(line):
                return 0

    def handle_line(self, line: str) -> bool:
        """Execute one input line; False when the shell should exit."""
        stripped = line.strip()
        if not stripped:
            return True
        if not stripped.startswith("/"):
            self.chat(stripped)
            return True
        outcome = self.registry.dispatch(self, stripped, ready=self.config.is_ready())
        if outcome is Dispatch.EXIT:
            return False
        if outcome is Dispatch.UNKNOWN:
            self._out(f"Unknown: {stripped.split()[0]}")
            self._out("Type /help for available commands")
        elif outcome is Dispatch.NOT_READY:
            self._out("Not configured: run /setup first")
        return True

    # ---- Turns ----
    def chat(self, text: str) -> Optional[TurnResult]:
        if not self.config.is_ready():
            self._out("Not configured: run /setup first")
            return None
        send = self.session.send if self.stream else self.session.send_blocking
        return self._run_turn(lambda sink, cancel: send(text, sink=sink, cancel=cancel))

    def _run_turn(self, action: Callable[..., TurnResult]) -> Optional[TurnResult]:
        """Run a turn with Ctrl-C wired to cancellation; report failures in one line."""
        token = CancellationToken()
        self._write(ASSISTANT_PREFIX)
        try:
            with suppress_console_logs(), interrupt_cancels(token):
                result = action(self._write, token)
        except RequestTimeoutError:
            self._out("\nRequest timed out. Try /retry or /timeout <seconds>")
            return None
        except CancelledError:
            self._out("\nAborted.")
            return None
        except CompletionError as exc:
            self._out(f"\nError: {exc.message}")
            return None
        except ConversationStateError as exc:
            self._out(f"\nError: {exc}")
            return None
        self._write("\n\n")
        return result

    def _ask_apply(self, instruction: PendingFileInstruction, preview: str) -> str:
        self._out("")
        self._out(preview)
        try:
            return self._input("Save? [Y/n/a/p]: ")
        except EOFError:
            return "n"

    # ---- Helpers ----
    def _banner(self) -> None:
        self._out("Cody, your coding assistant. Type /help for commands.")
        saved = load_session()
        if saved is not None:
            self._out(f"Last session: {saved.last_project} ({saved.last_model})")
        if self.config.is_ready():
            self._out(f"Model: {self.config.model} @ {self.config.api_url}")
            self.client.warmup()
        else:
            self._out("Not configured yet: run /setup")
        self._out("")

    def _persist(self) -> None:
        ok, err = save_config(self.config)
        if not ok:
            self._out(f"warning: failed to save config: {err}")

    def _set(self, **fields: object) -> bool:
        """Assign validated config fields; prints the error and returns False."""
        try:
            for name, value in fields.items():
                setattr(self.config, name, value)
        except ValidationError as exc:
            self._out(f"Invalid value: {exc.errors()[0].get('msg', exc)}")
            return False
        return True

    def _models(self) -> List[str]:
        cached = load_cached_models(self.config.api_url)
        if cached:
            return cached
        try:
            models = self.client.list_models()
        except CompletionError as exc:
            self._out(f"Could not list models: {exc.message}")
            return []
        save_cached_models(self.config.api_url, models)
        return models

    def _pick_model(self, needle: str = "") -> None:
        models = [m for m in self._models() if needle.lower() in m.lower()]
        if not models:
            self._out("No models found" + (f" matching '{needle}'" if needle else ""))
            return
        chosen = choose(models, input_fn=self._input, output=self._out, current=self.config.model)
        if chosen and self._set(model=chosen):
            self._persist()
            self._out(f"Model set to {chosen}")

    # ---- Commands ----
    def cmd_exit(self, args: List[str]) -> bool:
        save_session(str(self.context.cwd), self.config.model)
        self._out("Bye!")
        return True

    def cmd_help(self, args: List[str]) -> None:
        self._out("Commands:")
        for command in self.registry:
            aliases = self.registry.aliases_for(command.name)
            suffix = f"  ({', '.join(aliases)})" if aliases else ""
            self._out(f"  {command.usage:<22} {command.summary}{suffix}")
        self._out("Anything else is sent to the assistant. Ctrl-C aborts a running answer.")

    def cmd_status(self, args: List[str]) -> None:
        cfg = self.config
        key = "not set"
        if cfg.api_key:
            key = "placeholder?" if is_placeholder(cfg.api_key) else "set"
        self._out(f"endpoint   : {cfg.api_url or '(not set)'}")
        self._out(f"api key    : {key}")
        self._out(f"model      : {cfg.model or '(not set)'}")
        self._out(f"max tokens : {cfg.max_tokens}")
        self._out(f"temperature: {cfg.temperature}")
        self._out(f"timeout    : {cfg.timeout_seconds:g}s")
        self._out(f"streaming  : {'on' if self.stream else 'off'}")
        self._out(f"project    : {self.context.cwd}")
        self._out(f"auto-accept: {'ON' if self.context.auto_accept else 'OFF'}")
        self._out(f"messages   : {self.session.conversation.message_count()}")
        self._out(f"config     : {config_file_path()}")

    def cmd_setup(self, args: List[str]) -> None:
        try:
            url = self._input(f"API URL [{self.config.api_url}]: ").strip() or self.config.api_url
            key = self._input("API key (blank keeps current): ").strip() or self.config.api_key
        except EOFError:
            return
        if not self._set(api_url=url, api_key=key):
            return
        if args and args[0]:
            self._set(model=args[0])
        elif url:
            self._pick_model()
        self._persist()
        self._out("Configured." if self.config.is_ready() else "Saved, but no model selected yet (/model <id>).")

    def cmd_model(self, args: List[str]) -> None:
        if args:
            if self._set(model=args[0]):
                self._persist()
                self._out(f"Model set to {self.config.model}")
            return
        self._out(f"Current model: {self.config.model or '(not set)'}")
        if self.config.api_url:
            self._pick_model()

    def cmd_models(self, args: List[str]) -> None:
        if not self.config.api_url:
            self._out("Not configured: run /setup first")
            return
        self._pick_model(" ".join(args))

    def cmd_timeout(self, args: List[str]) -> None:
        if not args:
            self._out(f"Current timeout: {self.config.timeout_seconds:g}s")
            self._out("Usage: /timeout <seconds>")
            return
        try:
            seconds = float(args[0])
        except ValueError:
            seconds = 0.0
        if seconds <= 0 or not self._set(timeout_seconds=seconds):
            self._out("Invalid timeout value")
            return
        self._persist()
        self._out(f"Timeout set to {seconds:g}s")

    def cmd_save(self, args: List[str]) -> None:
        ok, err = save_config(self.config)
        self._out("Config saved" if ok else f"warning: failed to save config: {err}")

    def cmd_retry(self, args: List[str]) -> None:
        if not self.context.last_user_text:
            self._out("No message to retry")
            return
        self._out(f"Retrying: {shorten(self.context.last_user_text)}")
        self._run_turn(lambda sink, cancel: self.session.retry(sink=sink, cancel=cancel))

    def cmd_auto(self, args: List[str]) -> None:
        self.context.auto_accept = not self.context.auto_accept
        self._out(f"Auto-accept: {'ON' if self.context.auto_accept else 'OFF'}")

    def cmd_structure(self, args: List[str]) -> None:
        self._out(self.context.project_structure or self.context.refresh_structure())

    def cmd_pwd(self, args: List[str]) -> None:
        self._out(str(self.context.cwd))

    def cmd_cd(self, args: List[str]) -> None:
        target = self.context.change_dir(args[0] if args else None)
        self._out(f"→ {target}" if target is not None else "Not found")

    def cmd_list(self, args: List[str]) -> None:
        result = list_files(args[0] if args else None, self.context.cwd)
        self._out(result.output if result.success else str(result.error))

    def cmd_tree(self, args: List[str]) -> None:
        root = self.context.resolve(args[0]) if args else self.context.cwd
        if not root.is_dir():
            self._out("Not found")
            return
        self._out(f"{root.name or root}/")
        self._out(display_tree(root).rstrip("\n"))

    def cmd_read(self, args: List[str]) -> None:
        if not args:
            self._out("Usage: /read <file>")
            return
        result = read_file(args[0], self.context.cwd)
        if result.success:
            self._out(f"── {Path(args[0]).name} ──")
        self._out(result.output if result.success else str(result.error))

    def cmd_delete(self, args: List[str]) -> None:
        if not args:
            self._out("Usage: /delete <file>")
            return
        result = delete_file(args[0], self.context.cwd)
        if result.success:
            self.context.refresh_structure()
        self._out(result.output if result.success else str(result.error))

    def cmd_run(self, args: List[str]) -> None:
        if not args:
            self._out("Usage: /run <file>")
            return
        self._out("Running...")
        self._print_tool(run_script(self.context.resolve(args[0])))

    def cmd_shell(self, args: List[str]) -> None:
        if not args:
            self._out("Usage: /shell <command>")
            return
        line = " ".join(args)
        self._out(f"$ {line}")
        self._print_tool(run_command(line, working_dir=self.context.cwd))

    def cmd_clear(self, args: List[str]) -> None:
        self.session.clear()
        self._out("Cleared")

    def cmd_add(self, args: List[str]) -> None:
        if not args:
            self._out("Usage: /add <file>")
            return
        result = read_file(args[0], self.context.cwd)
        if not result.success:
            self._out(str(result.error))
            return
        self._run_turn(
            lambda sink, cancel: self.session.share_file(args[0], result.output, sink=sink, cancel=cancel)
        )

    def _print_tool(self, result) -> None:
        if result.output:
            self._out(result.output)
        if result.error:
            self._out(result.error)
        self._out("✓" if result.success else "✗")


COMMANDS = (
    Command("/exit", CodyShell.cmd_exit, "/exit", "Save the session marker and quit"),
    Command("/help", CodyShell.cmd_help, "/help", "Show this help"),
    Command("/status", CodyShell.cmd_status, "/status", "Show configuration and session state"),
    Command("/setup", CodyShell.cmd_setup, "/setup [model]", "Configure endpoint, key and model"),
    Command("/model", CodyShell.cmd_model, "/model [id]", "Show or set the model"),
    Command("/models", CodyShell.cmd_models, "/models [filter]", "Pick a model from the endpoint's list"),
    Command("/timeout", CodyShell.cmd_timeout, "/timeout [sec]", "Show or set the request timeout"),
    Command("/save", CodyShell.cmd_save, "/save", "Save the configuration"),
    Command("/retry", CodyShell.cmd_retry, "/retry", "Resend the last message", needs_endpoint=True),
    Command("/auto", CodyShell.cmd_auto, "/auto", "Toggle auto-accept of extracted files"),
    Command("/structure", CodyShell.cmd_structure, "/structure", "Show the project structure sent to the model"),
    Command("/pwd", CodyShell.cmd_pwd, "/pwd", "Print the project directory"),
    Command("/cd", CodyShell.cmd_cd, "/cd [dir]", "Change the project directory"),
    Command("/list", CodyShell.cmd_list, "/list [dir]", "List a directory"),
    Command("/tree", CodyShell.cmd_tree, "/tree [dir]", "Show a directory tree"),
    Command("/read", CodyShell.cmd_read, "/read <file>", "Print a file"),
    Command("/delete", CodyShell.cmd_delete, "/delete <file>", "Delete a file"),
    Command("/run", CodyShell.cmd_run, "/run <file>", "Run a script with the runner for its type"),
    Command("/shell", CodyShell.cmd_shell, "/shell <cmd>", "Run a shell command in the project directory"),
    Command("/clear", CodyShell.cmd_clear, "/clear", "Start a new conversation"),
    Command("/add", CodyShell.cmd_add, "/add <file>", "Send a file to the assistant", needs_endpoint=True),
)


def build_registry() -> CommandRegistry:
    registry = CommandRegistry()
    for command in COMMANDS:
        registry.add(command)
    return registry


__all__ = ["COMMANDS", "CodyShell", "build_registry", "interrupt_cancels"]

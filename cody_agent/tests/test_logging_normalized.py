"""Focused tests for cody_agent.base.logging.

Covers:
- _parse_level string parsing
- normalized_log_event emits required keys and drops absent error codes
- configure_logger file handler lifecycle
- suppress_console_logs keeps the file handler attached
"""
from __future__ import annotations

import json
import logging

from cody_agent.base.logging import (
    REQUIRED_NORMALIZED_KEYS,
    _parse_level,  # type: ignore[attr-defined]
    configure_logger,
    console_handlers,
    get_logger,
    log_event,
    normalized_log_event,
)
from cody_agent.base.log_support import LogContext
from cody_agent.service.cli.cli_utils import parse_verbosity, suppress_console_logs


class _ListHandler(logging.Handler):
    """Capture log records into a list for assertions."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - exercised via tests
        self.messages.append(record.getMessage())


def _capture(name: str) -> _ListHandler:
    logger = get_logger(name)
    handler = _ListHandler()
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG)
    return handler


def test_parse_level_variants():
    assert _parse_level(None) == logging.INFO  # nosec B101
    assert _parse_level("debug") == logging.DEBUG  # nosec B101
    assert _parse_level("WARN") == logging.WARNING  # nosec B101
    assert _parse_level("unknown", default=logging.ERROR) == logging.ERROR  # nosec B101


def test_parse_verbosity_synonyms():
    assert parse_verbosity("verbose") == "DEBUG"  # nosec B101
    assert parse_verbosity(" Quiet ") == "ERROR"  # nosec B101
    assert parse_verbosity("loud") is None  # nosec B101


def test_child_names_are_namespaced():
    assert get_logger("client").name == "cody.client"  # nosec B101
    assert get_logger("cody.extract").name == "cody.extract"  # nosec B101


def test_normalized_log_event_emits_required_keys():
    handler = _capture("cody.test.normalized")
    ctx = LogContext(model="m", endpoint="llm.test", turn_id="t1")
    normalized_log_event(
        get_logger("cody.test.normalized"),
        "stream.end",
        ctx,
        phase="finalize",
        error_code="timeout",
        emitted=3,
        metrics={"time_to_first_delta_ms": 12.3},
        detail=None,
    )
    payload = json.loads(handler.messages[-1])
    for key in REQUIRED_NORMALIZED_KEYS:
        assert key in payload  # nosec B101
    assert payload["event"] == "stream.end" and payload["turn_id"] == "t1"  # nosec B101
    assert payload["error_code"] == "timeout" and payload["emitted"] == 3  # nosec B101
    assert "detail" not in payload  # nosec B101


def test_error_code_omitted_without_error_and_extras_do_not_override():
    handler = _capture("cody.test.normalized2")
    normalized_log_event(get_logger("cody.test.normalized2"), "turn.commit", None, phase="finalize", emitted=2, chars=10)
    payload = json.loads(handler.messages[-1])
    assert "error_code" not in payload and payload["chars"] == 10  # nosec B101
    log_event(get_logger("cody.test.normalized2"), "tool.delete", LogContext(extra={"k": None}), path="/x", ok=None)
    assert json.loads(handler.messages[-1]) == {"event": "tool.delete", "path": "/x"}  # nosec B101


def test_configure_logger_file_handler_lifecycle(tmp_path):
    log_file = tmp_path / "logs" / "cody.log"
    logger = configure_logger(level="DEBUG", file_path=str(log_file))
    try:
        log_event(get_logger("cody.test.file"), "file.check", ok=True)
        for handler in logger.handlers:
            handler.flush()
        lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        record = next(line for line in lines if line.get("event") == "file.check")
        assert record["ok"] is True and record["logger"] == "cody.test.file"  # nosec B101
        assert record["level"] == "INFO" and "ts" in record  # nosec B101

        with suppress_console_logs():
            assert console_handlers(logger) == []  # nosec B101
            assert any(getattr(h, "_cody_file_handler", False) for h in logger.handlers)  # nosec B101
        assert console_handlers(logger)  # nosec B101
    finally:
        configure_logger(level="INFO", file_path=None)
    assert not any(getattr(h, "_cody_file_handler", False) for h in logger.handlers)  # nosec B101

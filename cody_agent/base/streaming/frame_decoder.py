"""Incremental decoder for server-sent event (SSE) chat-completion streams.

Purpose:
- Turn raw response fragments of arbitrary size and boundary into an ordered
  list of :class:`StreamEvent` values (text deltas, then one end-of-stream).
- Stay pure: the decoder performs no I/O; it only consumes what it is fed.

Wire format handled:
- Lines are separated by ``\\n`` (a trailing ``\\r`` is tolerated).
- Lines starting with ``data:`` carry a JSON payload whose
  ``choices[0].delta.content`` is the text delta.
- A ``data:`` line whose payload is the sentinel ``[DONE]`` ends decoding.
- Every other line shape (blank separators, ``event:``, ``id:``, ``:``
  comments) is ignored.

Failure modes:
- A malformed payload is logged as ``stream.decode_error`` and skipped; the
  decoder never raises on a single bad frame.
- Bytes split inside a UTF-8 sequence are reassembled by an incremental
  codec, so multibyte characters are never mangled at fragment edges.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any, Iterable, Iterator, List, Optional, Union

from ..errors import ProtocolError
from ..log_support import LogContext
from ..logging import get_logger, normalized_log_event
from .events import END_OF_STREAM, StreamEvent

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

Fragment = Union[bytes, bytearray, str]


def delta_content(obj: Any) -> Optional[str]:
    """Return ``choices[0].delta.content`` from a decoded stream payload.

    Missing keys along the path mean "no text in this frame" and yield
    ``None``. A payload whose overall shape is wrong raises ``ProtocolError``.
    """
    if not isinstance(obj, dict):
        raise ProtocolError(f"expected a JSON object, got {type(obj).__name__}")
    choices = obj.get("choices")
    if choices is None:
        return None
    if not isinstance(choices, list):
        raise ProtocolError("'choices' is not a list")
    if not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        raise ProtocolError("'choices[0]' is not an object")
    delta = first.get("delta") or {}
    if not isinstance(delta, dict):
        raise ProtocolError("'choices[0].delta' is not an object")
    content = delta.get("content")
    if content is None:
        return None
    if not isinstance(content, str):
        raise ProtocolError("'choices[0].delta.content' is not a string")
    return content


class FrameDecoder:
    """Stateful line accumulator that emits stream events in arrival order.

    Usage::

        decoder = FrameDecoder()
        for chunk in response.iter_bytes():
            for event in decoder.feed(chunk):
                ...
            if decoder.finished:
                break
        decoder.close()

    Only complete lines are ever parsed; the incomplete tail of the buffer is
    retained until the next fragment arrives. Once the sentinel is seen the
    decoder is finished and ignores further input.
    """

    def __init__(self, *, logger: logging.Logger | None = None, ctx: LogContext | None = None) -> None:
        self._codec = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._finished = False
        self._logger = logger or get_logger("cody.stream")
        self._ctx = ctx
        self.decode_errors = 0

    @property
    def finished(self) -> bool:
        """True once the end-of-stream sentinel has been decoded."""
        return self._finished

    @property
    def pending(self) -> str:
        """The incomplete trailing line currently held back."""
        return self._buffer

    def feed(self, fragment: Fragment) -> List[StreamEvent]:
        """Consume one fragment and return the events it completed."""
        if self._finished:
            return []
        text = fragment if isinstance(fragment, str) else self._codec.decode(bytes(fragment))
        if not text:
            return []
        self._buffer += text
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        events: List[StreamEvent] = []
        for line in lines:
            event = self._decode_line(line.rstrip("\r"))
            if event is None:
                continue
            events.append(event)
            if event.finish:
                self._finished = True
                self._buffer = ""
                break
        return events

    def close(self) -> List[StreamEvent]:
        """Signal that the underlying stream closed.

        An unterminated final line is discarded, matching SSE semantics for
        an incomplete event. Returns no events; present for symmetry with
        :meth:`feed` so callers can drain uniformly.
        """
        if not self._finished:
            self._buffer += self._codec.decode(b"", final=True)
            if self._buffer.strip():
                normalized_log_event(
                    self._logger,
                    "stream.decode_error",
                    self._ctx,
                    phase="finalize",
                    level=logging.DEBUG,
                    error="unterminated final line discarded",
                    line=self._buffer[:200],
                )
        self._buffer = ""
        return []

    def _decode_line(self, line: str) -> Optional[StreamEvent]:
        if not line.startswith(DATA_PREFIX):
            return None
        payload = line[len(DATA_PREFIX):]
        if payload.startswith(" "):
            payload = payload[1:]
        if payload.strip() == DONE_SENTINEL:
            return END_OF_STREAM
        try:
            content = delta_content(json.loads(payload))
        except (json.JSONDecodeError, ProtocolError) as e:
            self.decode_errors += 1
            normalized_log_event(
                self._logger,
                "stream.decode_error",
                self._ctx,
                phase="mid_stream",
                level=logging.WARNING,
                error_code="protocol",
                error=str(e),
                line=line[:200],
            )
            return None
        if not content:
            return None
        return StreamEvent.text(content)


def iter_events(fragments: Iterable[Fragment], **decoder_kwargs: Any) -> Iterator[StreamEvent]:
    """Decode an iterable of fragments lazily.

    Stops right after the end-of-stream event; if the fragments run out
    first, the sequence simply ends (no synthetic terminal event).
    """
    decoder = FrameDecoder(**decoder_kwargs)
    for fragment in fragments:
        for event in decoder.feed(fragment):
            yield event
            if event.finish:
                return
    decoder.close()


__all__ = [
    "DATA_PREFIX",
    "DONE_SENTINEL",
    "FrameDecoder",
    "delta_content",
    "iter_events",
]

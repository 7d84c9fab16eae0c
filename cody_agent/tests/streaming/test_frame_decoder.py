"""Frame decoder: line accumulation, sentinel handling and recovery."""

from __future__ import annotations

import json
import logging
from typing import List

import pytest

from cody_agent.base.errors import ProtocolError
from cody_agent.base.streaming import FrameDecoder, delta_content, iter_events


def _frame(text: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": text}}]}) + "\n\n"


def _texts(decoder: FrameDecoder, fragments) -> List[str]:
    out: List[str] = []
    for fragment in fragments:
        out.extend(ev.delta for ev in decoder.feed(fragment) if ev.is_text())
    return out


def test_deltas_in_arrival_order_across_every_split_point(sse):
    body = sse("Hel", "lo ", "wörld ✓")
    expected = ["Hel", "lo ", "wörld ✓"]
    for cut in range(1, len(body)):
        decoder = FrameDecoder()
        assert _texts(decoder, [body[:cut], body[cut:]]) == expected, cut  # nosec B101
        assert decoder.finished is True  # nosec B101


def test_single_byte_fragments_reassemble_multibyte_characters(sse, split):
    body = sse("naïve ", "日本語")
    decoder = FrameDecoder()
    assert _texts(decoder, split(body, 1)) == ["naïve ", "日本語"]  # nosec B101


def test_sentinel_split_across_fragments_ends_decoding():
    decoder = FrameDecoder()
    events = decoder.feed(_frame("a") + "data: [DO")
    assert [e.delta for e in events] == ["a"]  # nosec B101
    assert decoder.finished is False  # nosec B101
    events = decoder.feed("NE]\n\n" + _frame("after"))
    assert len(events) == 1 and events[0].finish  # nosec B101
    assert decoder.finished is True  # nosec B101
    # Input after the sentinel is ignored.
    assert decoder.feed(_frame("more")) == []  # nosec B101


def test_incomplete_line_is_not_scanned_until_newline():
    decoder = FrameDecoder()
    line = _frame("x").rstrip("\n")
    assert decoder.feed(line) == []  # nosec B101
    assert decoder.pending == line  # nosec B101
    assert [e.delta for e in decoder.feed("\n")] == ["x"]  # nosec B101


def test_non_data_lines_and_empty_content_are_ignored():
    decoder = FrameDecoder()
    stream = (
        ": keep-alive\n"
        "event: message\n"
        "id: 7\n"
        "data: " + json.dumps({"choices": [{"delta": {"role": "assistant"}}]}) + "\n"
        "data: " + json.dumps({"choices": [{"delta": {"content": ""}}]}) + "\n"
        "data:" + json.dumps({"choices": [{"delta": {"content": "no space"}}]}) + "\r\n"
        "\n"
    )
    assert _texts(decoder, [stream]) == ["no space"]  # nosec B101


def test_malformed_frame_is_logged_and_skipped():
    records: List[logging.LogRecord] = []
    logger = logging.getLogger("cody.tests.decoder")
    logger.propagate = False
    handler = logging.Handler()
    handler.emit = records.append  # type: ignore[method-assign]
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        decoder = FrameDecoder(logger=logger)
        stream = "data: {not json\n\n" + "data: " + json.dumps({"choices": "oops"}) + "\n\n" + _frame("ok")
        assert _texts(decoder, [stream]) == ["ok"]  # nosec B101
    finally:
        logger.removeHandler(handler)
    assert decoder.decode_errors == 2  # nosec B101
    events = [json.loads(r.getMessage())["event"] for r in records]
    assert events == ["stream.decode_error", "stream.decode_error"]  # nosec B101


def test_close_discards_unterminated_final_line():
    decoder = FrameDecoder()
    assert _texts(decoder, [_frame("kept"), "data: " + json.dumps({"choices": [{"delta": {"content": "lost"}}]})]) == [
        "kept"
    ]  # nosec B101
    assert decoder.close() == []  # nosec B101
    assert decoder.pending == ""  # nosec B101


def test_iter_events_stops_after_sentinel(sse):
    events = list(iter_events([sse("a", "b"), sse("c")]))
    assert [e.delta for e in events] == ["a", "b", None]  # nosec B101
    assert events[-1].finish is True  # nosec B101


def test_delta_content_shapes():
    assert delta_content({"choices": [{"delta": {"content": "t"}}]}) == "t"  # nosec B101
    assert delta_content({"choices": []}) is None  # nosec B101
    assert delta_content({"id": "x"}) is None  # nosec B101
    assert delta_content({"choices": [{"delta": None}]}) is None  # nosec B101
    with pytest.raises(ProtocolError):
        delta_content([1, 2])
    with pytest.raises(ProtocolError):
        delta_content({"choices": [{"delta": {"content": 5}}]})

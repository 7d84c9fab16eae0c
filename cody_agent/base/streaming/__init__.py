"""Streaming primitives: event records and the SSE frame decoder."""

from .events import StreamEvent, END_OF_STREAM
from .frame_decoder import DONE_SENTINEL, FrameDecoder, delta_content, iter_events

__all__ = [
    "StreamEvent",
    "END_OF_STREAM",
    "DONE_SENTINEL",
    "FrameDecoder",
    "delta_content",
    "iter_events",
]

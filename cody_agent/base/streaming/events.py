"""Stream event record produced by the frame decoder."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StreamEvent:
    """One decoded unit of a streaming response.

    Fields:
      delta: text delta (``None`` for the terminal event)
      finish: True on the end-of-stream event
    """

    delta: Optional[str]
    finish: bool = False

    @classmethod
    def text(cls, delta: str) -> "StreamEvent":
        return cls(delta=delta)

    def is_text(self) -> bool:
        return not self.finish and self.delta is not None


END_OF_STREAM = StreamEvent(delta=None, finish=True)

__all__ = ["StreamEvent", "END_OF_STREAM"]

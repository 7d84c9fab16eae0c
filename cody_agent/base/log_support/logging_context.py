"""Structured logging context object.

Defines :class:`LogContext`, a dataclass carrying the fields shared by every
event of one exchange (model, endpoint host, turn id, extra metadata). Its
``to_dict`` helper merges ``extra`` and prunes ``None`` values.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional


@dataclass
class LogContext:
    """Structured context for assistant logging events."""

    model: Optional[str] = None
    endpoint: Optional[str] = None
    turn_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra", {}) or {}
        data.update({k: v for k, v in extra.items() if v is not None})
        return {k: v for k, v in data.items() if v is not None}


__all__ = ["LogContext"]

"""Fenced file-block extraction from streamed assistant text."""

from .code_extractor import CodeBlockExtractor, ExtractorMode, OPEN_FENCE_RE
from .instruction import ExtractionResult, PendingFileInstruction

__all__ = [
    "CodeBlockExtractor",
    "ExtractorMode",
    "ExtractionResult",
    "OPEN_FENCE_RE",
    "PendingFileInstruction",
]

"""Completion client package (OpenAI-compatible chat completions over httpx)."""

from .client import CompletionClient

__all__ = ["CompletionClient"]

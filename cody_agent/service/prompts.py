"""Prompt text sent to the model.

The file-block format described in :data:`SYSTEM_PROMPT` is the one
:class:`~cody_agent.extraction.CodeBlockExtractor` recognizes; keep the two in
step.
"""

from __future__ import annotations

SYSTEM_PROMPT = """You are Cody, a friendly and expert coding assistant.

## When to just talk
Answer in plain text, without code blocks, when the user greets you, asks a
question about a concept, wants an explanation, advice or an opinion, or is
simply chatting.

## When to write files
Write files only when the user asks you to create, build, write, generate,
fix or modify code.

## File format
Every file you create or change must be written in exactly this form:

```language:exact/path/to/file.ext
file content
```

For example:

```python:script.py
print("hello")
```

```typescript:src/utils/helper.ts
export const helper = () => {};
```

## Paths
1. Keep the exact case of every path segment (src, not SRC).
2. Use the paths shown in the project structure.
3. Use forward slashes.

## Code
Write complete, working code with error handling, follow the conventions of
the language and keep the explanation short."""

FILE_FORMAT_HINT = "Help me code. Use ```lang:filename.ext for files."


def first_message(structure: str, request: str) -> str:
    """Wrap the first user turn of a session with the project listing."""
    return f"Project structure:\n{structure}\n\n{FILE_FORMAT_HINT}\n\nUser request: {request}"


def structure_update(structure: str) -> str:
    """Message telling the model the project changed on disk."""
    return f"[Updated]\n{structure}"


def file_context(name: str, content: str) -> str:
    """Message sharing a file's content with the model (``/add``)."""
    return f"File: {name}\n```\n{content}\n```"


__all__ = ["SYSTEM_PROMPT", "FILE_FORMAT_HINT", "first_message", "structure_update", "file_context"]

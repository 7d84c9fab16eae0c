"""Pytest configuration for the assistant test suite.

- Every test gets private XDG config/state directories and a clean set of
  ``CODY_*`` environment variables, so nothing touches the real home.
- The shared httpx client pool is closed after each test.
- ``endpoint`` provides a scripted OpenAI-compatible server on top of
  ``httpx.MockTransport``; streaming bodies can be split at arbitrary byte
  offsets to exercise chunk boundaries.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterable, Iterator, List, Union

import httpx
import pytest

from cody_agent.base.http import close_all_clients
from cody_agent.config import AgentConfig
from cody_agent.config.env import ENV_MAP

_EXTRA_ENV = (
    "CODY_TIMEOUT_SECONDS",
    "CODY_COMMAND_TIMEOUT_SECONDS",
    "CODY_LIST_MODELS_TIMEOUT_SECONDS",
    "CODY_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))
    for name in (*ENV_MAP.values(), *_EXTRA_ENV):
        monkeypatch.delenv(name, raising=False)
    yield
    close_all_clients()


def sse_body(*deltas: str, done: bool = True) -> bytes:
    """Encode text deltas as chat-completion SSE frames."""
    frames = [
        "data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": d}}]}) + "\n\n"
        for d in deltas
    ]
    if done:
        frames.append("data: [DONE]\n\n")
    return "".join(frames).encode("utf-8")


def split_every(data: bytes, size: int) -> List[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class MockEndpoint:
    """Scripted endpoint; each request consumes the next queued response."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._queue: List[Responder] = []
        self._clients: List[httpx.Client] = []

    def queue(self, responder: Responder) -> "MockEndpoint":
        self._queue.append(responder)
        return self

    def stream(self, *deltas: str, chunk: int = 0, done: bool = True) -> "MockEndpoint":
        body = sse_body(*deltas, done=done)
        parts: Iterable[bytes] = split_every(body, chunk) if chunk else [body]
        return self.queue(httpx.Response(200, content=iter(list(parts))))

    def stream_bytes(self, parts: Iterable[bytes], status: int = 200) -> "MockEndpoint":
        return self.queue(httpx.Response(status, content=iter(list(parts))))

    def reply(self, content: Any, status: int = 200) -> "MockEndpoint":
        """Queue a non-streaming chat completion answer."""
        return self.queue(
            httpx.Response(status, json={"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]})
        )

    def error(self, status: int, body: str) -> "MockEndpoint":
        return self.queue(httpx.Response(status, text=body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._queue:
            raise AssertionError(f"unexpected request: {request.method} {request.url}")
        responder = self._queue.pop(0)
        return responder(request) if callable(responder) else responder

    def client(self) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(self.handler))
        self._clients.append(client)
        return client

    def payload(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)

    def close(self) -> None:
        for client in self._clients:
            client.close()


@pytest.fixture()
def endpoint() -> Iterator[MockEndpoint]:
    ep = MockEndpoint()
    yield ep
    ep.close()


@pytest.fixture()
def make_config() -> Callable[..., AgentConfig]:
    def _make(**overrides: Any) -> AgentConfig:
        fields: Dict[str, Any] = {
            "api_url": "http://llm.test/v1",
            "api_key": "sk-local",
            "model": "test-model",
        }
        fields.update(overrides)
        return AgentConfig(**fields)

    return _make


@pytest.fixture()
def sse() -> Callable[..., bytes]:
    return sse_body


@pytest.fixture()
def split() -> Callable[[bytes, int], List[bytes]]:
    return split_every

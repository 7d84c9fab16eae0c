"""Stopping a stream whose server has gone quiet, over a real local socket."""

from __future__ import annotations

import socket
import threading
import time
from typing import Iterator, List, Tuple

import httpx
import pytest

from cody_agent.base.cancellation import CancellationToken, CancelledError
from cody_agent.base.errors import RequestTimeoutError
from cody_agent.base.models import Message
from cody_agent.completion import CompletionClient

HISTORY = [Message("user", "hi")]
SILENCE_SECONDS = 6.0


def _read_request(conn: socket.socket) -> None:
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = conn.recv(4096)
        if not chunk:
            return
        data += chunk
    head, _, body = data.partition(b"\r\n\r\n")
    length = 0
    for line in head.split(b"\r\n")[1:]:
        name, _, value = line.partition(b":")
        if name.strip().lower() == b"content-length":
            length = int(value.strip())
    while len(body) < length:
        chunk = conn.recv(4096)
        if not chunk:
            return
        body += chunk


@pytest.fixture()
def quiet_server(sse) -> Iterator[Tuple[str, threading.Event]]:
    """Answer one request with a single frame, then stay silent until released."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    release = threading.Event()

    def _serve() -> None:
        conn, _ = listener.accept()
        with conn:
            _read_request(conn)
            conn.sendall(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Type: text/event-stream\r\n"
                b"Connection: close\r\n\r\n" + sse("first", done=False)
            )
            release.wait(SILENCE_SECONDS)

    worker = threading.Thread(target=_serve, daemon=True)
    worker.start()
    try:
        yield f"http://127.0.0.1:{listener.getsockname()[1]}/v1", release
    finally:
        release.set()
        worker.join(timeout=2)
        listener.close()


@pytest.fixture()
def real_http() -> Iterator[httpx.Client]:
    client = httpx.Client(trust_env=False)
    try:
        yield client
    finally:
        client.close()


def test_cancel_from_another_thread_ends_a_blocked_read(quiet_server, real_http, make_config):
    url, _ = quiet_server
    client = CompletionClient(make_config(api_url=url, timeout_seconds=30), http_client=real_http)
    token = CancellationToken()
    seen: List[str] = []
    cancelled_at: List[float] = []

    def _cancel() -> None:
        cancelled_at.append(time.monotonic())
        token.cancel("host abort")

    with pytest.raises(CancelledError):
        for delta in client.stream_chat(HISTORY, cancel=token):
            seen.append(delta)
            threading.Timer(0.3, _cancel).start()
    latency = time.monotonic() - cancelled_at[0]
    assert seen == ["first"]  # nosec B101
    assert latency < 1.0  # nosec B101


def test_deadline_ends_a_blocked_read(quiet_server, real_http, make_config):
    url, _ = quiet_server
    client = CompletionClient(make_config(api_url=url, timeout_seconds=0.5), http_client=real_http)
    seen: List[str] = []
    started = time.monotonic()
    with pytest.raises(RequestTimeoutError):
        for delta in client.stream_chat(HISTORY):
            seen.append(delta)
    assert seen == ["first"]  # nosec B101
    assert time.monotonic() - started < 2.0  # nosec B101

from __future__ import annotations

import types

import httpx

from cody_agent.base.cancellation import CancelledError
from cody_agent.base.errors import (
    ErrorCode,
    ProtocolError,
    RequestTimeoutError,
    TransportError,
    classify_exception,
)


def test_completion_error_passthrough():
    assert classify_exception(ProtocolError("bad frame")) is ErrorCode.PROTOCOL  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(RequestTimeoutError(3)) is ErrorCode.TIMEOUT  # nosec B101 - assert is appropriate in unit tests


def test_transport_error_codes_follow_status():
    assert TransportError(401, "").code is ErrorCode.AUTH  # nosec B101 - assert is appropriate in unit tests
    assert TransportError(429, "").code is ErrorCode.RATE_LIMIT  # nosec B101 - assert is appropriate in unit tests
    assert TransportError(507, "").code is ErrorCode.SERVER_ERROR  # nosec B101 - assert is appropriate in unit tests
    assert TransportError(None, "refused").code is ErrorCode.TRANSPORT  # nosec B101 - assert is appropriate in unit tests


def test_transport_error_message_is_bounded():
    err = TransportError(500, "x" * 5000)
    assert str(err).startswith("server_error: API Error (500): ")  # nosec B101 - assert is appropriate in unit tests
    assert len(err.message) < 2100 and len(err.body) == 5000  # nosec B101 - assert is appropriate in unit tests


def test_cancel_and_timeouts():
    assert classify_exception(CancelledError("stop")) is ErrorCode.CANCELLED  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(TimeoutError()) is ErrorCode.TIMEOUT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(httpx.ReadTimeout("slow")) is ErrorCode.TIMEOUT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(httpx.ConnectError("down")) is ErrorCode.TRANSPORT  # nosec B101 - assert is appropriate in unit tests


def test_classify_http_status_mapping():
    # Direct attr
    e1 = Exception("missing")
    e1.status_code = 404  # type: ignore[attr-defined]
    assert classify_exception(e1) is ErrorCode.NOT_FOUND  # nosec B101 - assert is appropriate in unit tests
    # response.status_code
    e2 = Exception("boom")
    e2.response = types.SimpleNamespace(status_code=503)  # type: ignore[attr-defined]
    assert classify_exception(e2) is ErrorCode.UNAVAILABLE  # nosec B101 - assert is appropriate in unit tests


def test_classify_heuristics():
    assert classify_exception(Exception("timed out waiting")) is ErrorCode.TIMEOUT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(Exception("connection refused")) is ErrorCode.TRANSPORT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(Exception("random")) is ErrorCode.UNKNOWN  # nosec B101 - assert is appropriate in unit tests

"""Completion client for OpenAI-compatible ``/chat/completions`` endpoints.

Purpose:
        Perform one request/response cycle against the remote endpoint, either
        fully materialized (:meth:`CompletionClient.chat`) or as a lazy,
        finite, non-restartable sequence of text deltas
        (:meth:`CompletionClient.stream_chat`) layered over
        :class:`~cody_agent.base.streaming.FrameDecoder`.

External dependencies:
        - ``httpx`` only (pooled via ``get_httpx_client`` unless a client is
          injected, which tests do with ``httpx.MockTransport``).

Timeout strategy:
        - ``AgentConfig.timeout_seconds`` bounds the whole exchange through
          :func:`exchange_deadline`; the same value is passed to httpx as the
          per-operation timeout. Expiry surfaces as ``RequestTimeoutError``.

Cancellation:
        - Each exchange runs under a child of the caller's token. Cancelling it
          shuts down and closes the open response, so a read blocked in any
          thread returns immediately, and the sequence ends with
          ``CancelledError`` without yielding further deltas. Closing the
          generator early also closes the response.

Retries and error handling:
        - No retries. Non-2xx answers raise ``TransportError`` carrying status
          and body. Malformed payloads are logged and treated as absent data.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Iterator, List, Optional, Sequence
from urllib.parse import urlsplit

import httpx

from ..base.cancellation import CancellationToken, CancelledError
from ..base.errors import (
    CompletionError,
    ProtocolError,
    RequestTimeoutError,
    TransportError,
    classify_exception,
)
from ..base.http import get_httpx_client
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import ChatRequest, Message
from ..base.streaming import FrameDecoder
from ..base.timeouts import exchange_deadline, get_timeout_config
from ..config import AgentConfig
from .helpers import (
    build_headers,
    map_transport_failure,
    message_content,
    model_ids,
    raise_if_stopped,
    release_response,
)

# Exceptions a read may raise when the network fails or the response is
# closed underneath it by a cancel.
_NETWORK_FAILURES = (httpx.HTTPError, httpx.StreamError, OSError)

WARMUP_TIMEOUT_SECONDS = 5.0


class CompletionClient:
    """Issues chat-completion requests for a session.

    Parameters
    ----------
    config:
        Endpoint, key, model and sampling settings. Read on every call, so a
        ``/model`` or ``/timeout`` change applies to the next request.
    http_client:
        Optional ``httpx.Client``; defaults to the shared pool.
    """

    def __init__(
        self,
        config: AgentConfig,
        *,
        http_client: Optional[httpx.Client] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._config = config
        self._http = http_client
        self._logger = logger or get_logger("cody.client")
        self._active: Optional[CancellationToken] = None

    @property
    def config(self) -> AgentConfig:
        return self._config

    @config.setter
    def config(self, value: AgentConfig) -> None:
        self._config = value

    # ---- Internal helpers ----
    def _client(self) -> httpx.Client:
        return self._http if self._http is not None else get_httpx_client(None, purpose="chat")

    def _ctx(self) -> LogContext:
        return LogContext(model=self._config.model, endpoint=urlsplit(self._config.api_url).netloc or None)

    def _build(self, messages: Sequence[Message], *, stream: bool) -> ChatRequest:
        return ChatRequest.from_history(
            messages,
            model=self._config.model,
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
            stream=stream,
        )

    def _begin(self, cancel: Optional[CancellationToken]) -> CancellationToken:
        token = cancel.child() if cancel is not None else CancellationToken()
        self._active = token
        return token

    def _open(self, request: ChatRequest, token: CancellationToken, deadline) -> httpx.Response:
        """Send the request and return the open (unread) response.

        Raises ``TransportError`` for a non-2xx status after reading the body.
        """
        model = self._config.model
        raise_if_stopped(token, deadline, model=model)
        client = self._client()
        http_request = client.build_request(
            "POST",
            self._config.chat_url,
            json=request.to_payload(),
            headers=build_headers(self._config.api_key),
            timeout=httpx.Timeout(self._config.timeout_seconds),
        )
        try:
            response = client.send(http_request, stream=True)
        except _NETWORK_FAILURES as e:
            raise map_transport_failure(e, token, deadline, model=model) from e
        if response.is_success:
            return response
        try:
            body = response.read().decode("utf-8", errors="replace")
        except _NETWORK_FAILURES:
            body = ""
        finally:
            response.close()
        raise TransportError(response.status_code, body, model=model)

    def _content_or_empty(self, body: bytes, ctx: LogContext) -> str:
        try:
            return message_content(json.loads(body))
        except (ValueError, ProtocolError) as e:
            normalized_log_event(
                self._logger,
                "chat.protocol_warning",
                ctx,
                phase="finalize",
                level=logging.WARNING,
                error_code="protocol",
                error=str(e),
            )
            return ""

    def _log_failure(self, event: str, ctx: LogContext, exc: BaseException, *, emitted: Optional[int] = None) -> None:
        normalized_log_event(
            self._logger,
            event,
            ctx,
            phase="finalize",
            level=logging.INFO if isinstance(exc, CancelledError) else logging.WARNING,
            emitted=emitted,
            error_code=classify_exception(exc).value,
            error=str(exc),
        )

    # ---- Public API ----
    def abort(self, reason: str = "aborted by user") -> None:
        """Cancel the in-flight exchange, if any. Safe from any thread."""
        token = self._active
        if token is not None:
            token.cancel(reason)

    def chat(self, messages: Sequence[Message], *, cancel: Optional[CancellationToken] = None) -> str:
        """Blocking completion; returns the first choice's message content.

        An absent or malformed content field yields ``""`` (logged).

        Raises:
            TransportError: non-2xx status or connection failure.
            RequestTimeoutError: the exchange exceeded the configured timeout.
            CancelledError: ``cancel`` (or :meth:`abort`) fired.
        """
        request = self._build(messages, stream=False)
        token = self._begin(cancel)
        ctx = self._ctx()
        model = self._config.model
        normalized_log_event(
            self._logger,
            "chat.start",
            ctx,
            phase="start",
            messages=len(request.messages),
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )
        t0 = time.perf_counter()
        try:
            with exchange_deadline(self._config.timeout_seconds, token) as deadline:
                response = self._open(request, token, deadline)
                unregister = token.on_cancel(lambda: release_response(response))
                try:
                    body = response.read()
                except _NETWORK_FAILURES as e:
                    raise map_transport_failure(e, token, deadline, model=model) from e
                finally:
                    unregister()
                    response.close()
                raise_if_stopped(token, deadline, model=model)
            text = self._content_or_empty(body, ctx)
            normalized_log_event(
                self._logger,
                "chat.end",
                ctx,
                phase="finalize",
                emitted=bool(text),
                latency_ms=(time.perf_counter() - t0) * 1000.0,
            )
            return text
        except (CompletionError, CancelledError) as e:
            self._log_failure("chat.error", ctx, e)
            raise
        finally:
            self._active = None

    def stream_chat(self, messages: Sequence[Message], *, cancel: Optional[CancellationToken] = None) -> Iterator[str]:
        """Yield text deltas as they arrive.

        The sequence ends after the ``[DONE]`` sentinel or when the server
        closes the stream. Nothing is sent until the first ``next()``.

        Raises (from iteration):
            TransportError, RequestTimeoutError, CancelledError.
        """
        request = self._build(messages, stream=True)
        token = self._begin(cancel)
        ctx = self._ctx()
        model = self._config.model
        normalized_log_event(
            self._logger,
            "stream.start",
            ctx,
            phase="start",
            messages=len(request.messages),
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )
        t0 = time.perf_counter()
        first_delta_ms: Optional[float] = None
        emitted = 0
        try:
            with exchange_deadline(self._config.timeout_seconds, token) as deadline:
                response = self._open(request, token, deadline)
                unregister = token.on_cancel(lambda: release_response(response))
                decoder = FrameDecoder(logger=self._logger, ctx=ctx)
                try:
                    chunks = response.iter_bytes()
                    while not decoder.finished:
                        raise_if_stopped(token, deadline, model=model)
                        try:
                            chunk = next(chunks)
                        except StopIteration:
                            break
                        except _NETWORK_FAILURES as e:
                            raise map_transport_failure(e, token, deadline, model=model) from e
                        for event in decoder.feed(chunk):
                            if not event.is_text():
                                break
                            raise_if_stopped(token, deadline, model=model)
                            if first_delta_ms is None:
                                first_delta_ms = (time.perf_counter() - t0) * 1000.0
                            emitted += 1
                            yield event.delta
                    if not decoder.finished:
                        decoder.close()
                        # A closed response ends iteration quietly; tell why.
                        raise_if_stopped(token, deadline, model=model)
                finally:
                    unregister()
                    response.close()
            normalized_log_event(
                self._logger,
                "stream.end",
                ctx,
                phase="finalize",
                emitted=emitted,
                sentinel=decoder.finished,
                decode_errors=decoder.decode_errors,
                metrics={
                    "time_to_first_delta_ms": first_delta_ms,
                    "total_duration_ms": (time.perf_counter() - t0) * 1000.0,
                    "emitted_count": emitted,
                },
            )
        except (CompletionError, CancelledError) as e:
            self._log_failure("stream.cancelled" if isinstance(e, CancelledError) else "stream.error", ctx, e, emitted=emitted)
            raise
        finally:
            self._active = None

    def list_models(self) -> List[str]:
        """Return the model ids advertised by ``GET <api_url>/models``.

        Raises:
            TransportError: non-2xx status or connection failure.
            RequestTimeoutError: the request exceeded its timeout.
            ProtocolError: the body is not a model list.
        """
        seconds = get_timeout_config().list_models_timeout_seconds
        try:
            response = self._client().get(
                self._config.models_url,
                headers=build_headers(self._config.api_key),
                timeout=httpx.Timeout(seconds),
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(seconds, raw=e) from e
        except httpx.HTTPError as e:
            raise TransportError(None, str(e), raw=e) from e
        if not response.is_success:
            raise TransportError(response.status_code, response.text)
        try:
            return model_ids(response.json())
        except ValueError as e:
            raise ProtocolError(f"model list is not JSON: {e}", raw=e) from e

    def warmup(self) -> bool:
        """Open the keep-alive connection early with a ``HEAD /models``.

        Best-effort: returns False instead of raising when the endpoint is
        unreachable.
        """
        try:
            self._client().head(
                self._config.models_url,
                headers=build_headers(self._config.api_key),
                timeout=httpx.Timeout(WARMUP_TIMEOUT_SECONDS),
            )
            return True
        except httpx.HTTPError as e:
            normalized_log_event(
                self._logger,
                "client.warmup_failed",
                self._ctx(),
                phase="start",
                level=logging.DEBUG,
                error=str(e),
            )
            return False


__all__ = ["CompletionClient"]

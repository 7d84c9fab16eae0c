"""Session orchestration: commit, rollback on every failure, apply hand-off."""

from __future__ import annotations

import time
from typing import Iterator, List

import httpx
import pytest

from cody_agent.base.cancellation import CancelledError
from cody_agent.base.errors import RequestTimeoutError, TransportError
from cody_agent.completion import CompletionClient
from cody_agent.service.apply_workflow import ApplyWorkflow
from cody_agent.service.conversation import Conversation, ConversationStateError
from cody_agent.service.session import ChatSession, TurnState
from cody_agent.service.session_context import SessionContext


class Recorder:
    """Apply collaborator that only records what it was given."""

    def __init__(self, session_ref: List[ChatSession]) -> None:
        self.batches: List[List[str]] = []
        self._session_ref = session_ref

    def __call__(self, instructions):
        session = self._session_ref[0]
        # Called after the turn was committed.
        assert not session.conversation.in_flight  # nosec B101
        assert session.state is TurnState.COMMITTED  # nosec B101
        self.batches.append([i.path for i in instructions])
        return []


@pytest.fixture()
def project(tmp_path):
    root = tmp_path / "proj"
    root.mkdir()
    return root


@pytest.fixture()
def build(endpoint, make_config, project):
    def _build(apply_files=None, answer=None, **config) -> ChatSession:
        client = CompletionClient(make_config(**config), http_client=endpoint.client())
        context = SessionContext(cwd=project)
        if answer is not None:
            apply_files = ApplyWorkflow(context, lambda instruction, shown: answer)
        return ChatSession(
            client,
            context=context,
            conversation=Conversation("sys"),
            apply_files=apply_files,
        )

    return _build


def test_streamed_turn_commits_and_wraps_first_message(endpoint, build, project):
    (project / "main.py").write_text("", encoding="utf-8")
    endpoint.stream("Hi", " there").stream("Again")
    session = build()
    shown: List[str] = []

    result = session.send("hello", sink=shown.append)

    assert result.text == "Hi there" and "".join(shown) == "Hi there"  # nosec B101
    history = session.conversation.history()
    assert [m.role for m in history] == ["system", "user", "assistant"]  # nosec B101
    assert history[1].content.startswith(f"Project structure:\n{project.name}/\n  main.py")  # nosec B101
    assert history[1].content.endswith("User request: hello")  # nosec B101
    assert history[2].content == "Hi there"  # nosec B101
    assert session.state is TurnState.COMMITTED  # nosec B101
    assert session.context.first_message is False  # nosec B101

    session.send("second")
    assert session.conversation.history()[3].content == "second"  # nosec B101
    sent = [m["content"] for m in endpoint.payload(1)["messages"]]
    assert sent[0] == "sys" and sent[-1] == "second" and len(sent) == 4  # nosec B101


def test_failure_before_any_text_rolls_back(endpoint, build):
    endpoint.error(503, "loading model")
    session = build()
    with pytest.raises(TransportError):
        session.send("hello")
    assert len(session.conversation) == 1  # nosec B101
    assert session.state is TurnState.ROLLED_BACK  # nosec B101
    assert session.context.first_message is True  # nosec B101
    assert session.context.last_user_text == "hello"  # nosec B101


def test_mid_stream_failure_rolls_back_after_partial_text(endpoint, build, sse):
    def body() -> Iterator[bytes]:
        yield sse("Partial ", "```py:half.py\nx = ", done=False)
        raise httpx.ReadError("connection reset")

    endpoint.queue(lambda request: httpx.Response(200, content=body()))
    recorder_ref: List[ChatSession] = []
    recorder = Recorder(recorder_ref)
    session = build(apply_files=recorder)
    recorder_ref.append(session)
    shown: List[str] = []

    with pytest.raises(TransportError):
        session.send("write it", sink=shown.append)

    assert "".join(shown) == "Partial "  # nosec B101
    assert len(session.conversation) == 1 and not session.conversation.in_flight  # nosec B101
    assert recorder.batches == []  # nosec B101
    assert session.conversation.last_assistant() == ""  # nosec B101


def test_cancel_after_three_deltas_leaves_history_unchanged(endpoint, build):
    endpoint.stream("ok")
    session = build()
    session.send("first")
    before = session.conversation.history()
    shown: List[str] = []

    def sink(text: str) -> None:
        shown.append(text)
        if len(shown) == 3:
            session.abort("ctrl-c")

    endpoint.stream("1", "2", "3", "4", "5")
    with pytest.raises(CancelledError):
        session.send("second", sink=sink)
    assert shown == ["1", "2", "3"]  # nosec B101
    assert session.conversation.history() == before  # nosec B101
    assert session.state is TurnState.ROLLED_BACK  # nosec B101


def test_timeout_before_first_byte_rolls_back(endpoint, build, sse):
    def body() -> Iterator[bytes]:
        time.sleep(0.5)
        yield sse("late")

    endpoint.queue(lambda request: httpx.Response(200, content=body()))
    session = build(timeout_seconds=0.1)
    with pytest.raises(RequestTimeoutError):
        session.send("hello")
    assert len(session.conversation) == 1  # nosec B101


def test_retry_resubmits_last_text(endpoint, build):
    endpoint.error(500, "boom").stream("recovered")
    session = build()
    with pytest.raises(TransportError):
        session.send("do the thing")
    result = session.retry()
    assert result.text == "recovered"  # nosec B101
    assert session.conversation.history()[1].content.endswith("User request: do the thing")  # nosec B101


def test_retry_without_previous_message(endpoint, build):
    session = build()
    with pytest.raises(ConversationStateError):
        session.retry()


def test_blocking_turn_extracts_and_hands_off_files(endpoint, build):
    endpoint.reply("Sure, here:\n```python:app.py\nprint(1)\n```\nDone.")
    recorder_ref: List[ChatSession] = []
    recorder = Recorder(recorder_ref)
    session = build(apply_files=recorder)
    recorder_ref.append(session)
    shown: List[str] = []

    result = session.send_blocking("make app", sink=shown.append)

    assert "".join(shown) == "Sure, here:\nDone."  # nosec B101
    assert [(i.path, i.content, i.language) for i in result.instructions] == [("app.py", "print(1)", "python")]  # nosec B101
    assert recorder.batches == [["app.py"]]  # nosec B101
    # The committed text is the raw answer, fences included.
    assert "```python:app.py" in session.conversation.last_assistant()  # nosec B101
    assert "stream" not in endpoint.payload()  # nosec B101


def test_written_files_trigger_structure_update(endpoint, build, project):
    endpoint.stream("Here:\n```py:", "pkg/new.py\nx = 1\n```\n").reply("noted")
    session = build(answer="y")

    result = session.send("create it")

    assert (project / "pkg" / "new.py").read_text(encoding="utf-8") == "x = 1"  # nosec B101
    assert [a.written for a in result.applied] == [True]  # nosec B101
    history = session.conversation.history()
    assert [m.role for m in history] == ["system", "user", "assistant", "user", "assistant"]  # nosec B101
    assert history[3].content.startswith("[Updated]\n")  # nosec B101
    assert "new.py" in history[3].content  # nosec B101
    assert history[4].content == "noted"  # nosec B101
    assert session.context.last_user_text == "create it"  # nosec B101


def test_failed_structure_update_is_not_fatal(endpoint, build):
    endpoint.stream("```py:f.py\npass\n```").error(500, "down")
    session = build(answer="y")

    result = session.send("go")

    assert result.text.startswith("```py:f.py")  # nosec B101
    assert len(session.conversation) == 3  # nosec B101
    assert [m.role for m in session.conversation.history()] == ["system", "user", "assistant"]  # nosec B101


def test_declined_files_send_no_update(endpoint, build, project):
    endpoint.stream("```py:f.py\npass\n```")
    session = build(answer="n")
    session.send("go")
    assert len(endpoint.requests) == 1 and not (project / "f.py").exists()  # nosec B101


def test_empty_response_is_committed(endpoint, build):
    endpoint.stream()
    session = build()
    assert session.send("anything").text == ""  # nosec B101
    assert [m.role for m in session.conversation.history()] == ["system", "user", "assistant"]  # nosec B101


def test_share_file_is_not_remembered(endpoint, build):
    endpoint.stream("ok").stream("ok")
    session = build()
    session.send("question")
    session.share_file("notes.txt", "remember me")
    assert session.conversation.history()[3].content == "File: notes.txt\n```\nremember me\n```"  # nosec B101
    assert session.context.last_user_text == "question"  # nosec B101


def test_second_turn_while_one_is_in_flight_is_rejected(endpoint, build):
    session = build()
    session.conversation.begin_user("stuck")
    with pytest.raises(ConversationStateError):
        session.send("again")
    assert endpoint.requests == []  # nosec B101


def test_clear_resets_conversation_and_wrap(endpoint, build):
    endpoint.stream("one").stream("two")
    session = build()
    session.send("first")
    session.clear()
    assert len(session.conversation) == 1 and session.context.first_message  # nosec B101
    session.send("fresh")
    assert session.conversation.history()[1].content.startswith("Project structure:")  # nosec B101

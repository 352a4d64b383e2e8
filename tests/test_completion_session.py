"""Tests for the completion session state machine."""

from __future__ import annotations

import asyncio
import itertools

import pytest

from codenook.completion.cancellation import CancellationToken
from codenook.completion.debounce import QuiescenceDebouncer
from codenook.completion.messages import CompletionRequest
from codenook.completion.session import CompletionSession, SessionState, strip_code_fences
from codenook.completion.table import CorrelationTable, DuplicateTicketError
from codenook.editor.document_model import CursorPosition


def _request(request_id: str = "req-1") -> CompletionRequest:
    return CompletionRequest(
        request_id=request_id,
        text_before_cursor="const x = ",
        text_after_cursor="",
        language="javascript",
    )


def _session(
    table: CorrelationTable,
    sent: list[CompletionRequest],
    *,
    request_id: str = "req-1",
    timeout: float = 5.0,
    token: CancellationToken | None = None,
) -> CompletionSession:
    debouncer: QuiescenceDebouncer[CompletionRequest] = QuiescenceDebouncer(sent.append, quiet_seconds=0.0)
    return CompletionSession(
        _request(request_id),
        CursorPosition(4, 10),
        table=table,
        debouncer=debouncer,
        timeout_seconds=timeout,
        token=token,
    )


@pytest.mark.asyncio
async def test_start_registers_ticket_and_schedules_send() -> None:
    table = CorrelationTable()
    sent: list[CompletionRequest] = []
    session = _session(table, sent)

    session.start()
    await asyncio.sleep(0)

    assert session.state is SessionState.REQUESTED
    assert "req-1" in table
    assert [request.request_id for request in sent] == ["req-1"]
    assert session.timer_armed is True

    table.resolve("req-1", "42;")
    result = await session.result()

    assert result is not None
    assert result.text == "42;"
    assert result.position == CursorPosition(4, 10)
    assert session.state is SessionState.RESOLVED


@pytest.mark.asyncio
async def test_start_twice_is_rejected() -> None:
    table = CorrelationTable()
    session = _session(table, [])
    session.start()

    with pytest.raises(RuntimeError):
        session.start()
    table.cancel(session.request_id)


@pytest.mark.asyncio
async def test_duplicate_live_id_is_a_programming_error() -> None:
    table = CorrelationTable()
    first = _session(table, [], request_id="same")
    first.start()

    with pytest.raises(DuplicateTicketError):
        _session(table, [], request_id="same").start()
    table.cancel("same")


@pytest.mark.asyncio
async def test_timeout_resolves_to_no_completion_and_removes_ticket() -> None:
    table = CorrelationTable()
    session = _session(table, [], timeout=0.05)
    session.start()

    result = await asyncio.wait_for(session.result(), timeout=1.0)

    assert result is None
    assert session.state is SessionState.TIMED_OUT
    assert "req-1" not in table
    assert session.timer_armed is False


@pytest.mark.asyncio
async def test_cancel_resolves_immediately_and_late_reply_is_noop() -> None:
    table = CorrelationTable()
    token = CancellationToken()
    session = _session(table, [], timeout=5.0, token=token)
    session.start()
    loop = asyncio.get_running_loop()
    started = loop.time()

    token.cancel()
    result = await session.result()

    assert result is None
    assert loop.time() - started < 1.0
    assert session.state is SessionState.CANCELLED
    assert session.timer_armed is False
    assert session.hook_armed is False
    assert table.resolve("req-1", "late") is False


@pytest.mark.asyncio
async def test_already_cancelled_token_skips_the_send() -> None:
    table = CorrelationTable()
    sent: list[CompletionRequest] = []
    token = CancellationToken()
    token.cancel()
    session = _session(table, sent, token=token)

    session.start()
    await asyncio.sleep(0.01)

    assert await session.result() is None
    assert session.state is SessionState.CANCELLED
    assert sent == []
    assert session.timer_armed is False


@pytest.mark.asyncio
async def test_declined_reply_resolves_without_text() -> None:
    table = CorrelationTable()
    session = _session(table, [])
    session.start()

    table.resolve("req-1", None)

    assert await session.result() is None
    assert session.state is SessionState.RESOLVED


@pytest.mark.asyncio
async def test_resolution_disarms_timer_and_hook() -> None:
    table = CorrelationTable()
    token = CancellationToken()
    session = _session(table, [], token=token)
    session.start()
    assert session.hook_armed is True

    table.resolve("req-1", "x")
    await session.result()

    assert session.timer_armed is False
    assert session.hook_armed is False
    assert token.registration_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("order", list(itertools.permutations(["reply", "cancel", "timeout"])))
async def test_session_honours_first_terminal_event(order: tuple[str, ...]) -> None:
    table = CorrelationTable()
    token = CancellationToken()
    session = _session(table, [], token=token)
    session.start()
    events = {
        "reply": lambda: table.resolve("req-1", "value"),
        "cancel": token.cancel,
        "timeout": lambda: table.expire("req-1"),
    }
    expected_state = {
        "reply": SessionState.RESOLVED,
        "cancel": SessionState.CANCELLED,
        "timeout": SessionState.TIMED_OUT,
    }

    for name in order:
        events[name]()
    result = await session.result()

    assert session.state is expected_state[order[0]]
    assert (result is not None) == (order[0] == "reply")
    assert sum(table.stats.values()) == 1


@pytest.mark.asyncio
async def test_cancelling_the_awaiting_task_cancels_the_ticket() -> None:
    table = CorrelationTable()
    session = _session(table, [])
    session.start()
    waiter = asyncio.ensure_future(session.result())
    await asyncio.sleep(0)

    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert session.state is SessionState.CANCELLED
    assert "req-1" not in table


@pytest.mark.asyncio
async def test_result_before_start_is_an_error() -> None:
    session = _session(CorrelationTable(), [])

    with pytest.raises(RuntimeError):
        await session.result()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("```\nfoo();\n```", "foo();"),
        ("```javascript\nfoo();\nbar();\n```\n", "foo();\nbar();"),
        ("```foo();```", "foo();"),
        ("~~~py\nreturn x\n~~~", "return x"),
        ("foo();", "foo();"),
        ("  indented()", "  indented()"),
        ("```\n```", None),
        ("```js\r\nfoo();\r\n```", "foo();"),
        ("```\r\nfoo();\r\nbar();\r\n```\r\n", "foo();\r\nbar();"),
        ("```\n   \n```", None),
        ("  \n", None),
        ("", None),
        (None, None),
    ],
)
def test_strip_code_fences(raw: str | None, expected: str | None) -> None:
    assert strip_code_fences(raw) == expected

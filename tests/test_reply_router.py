"""Tests for the reply router."""

from __future__ import annotations

from typing import Any

import pytest

from codenook.completion.router import ReplyRouter
from codenook.completion.table import CorrelationTable, Ticket, TicketStatus
from codenook.editor.document_model import CursorPosition
from tests.helpers import RecordingChannel


def _register(table: CorrelationTable, ticket_id: str, results: list[Any]) -> None:
    def _resolve(completion: str | None, status: TicketStatus) -> None:
        results.append((ticket_id, completion, status))

    table.register(Ticket(id=ticket_id, position=CursorPosition(1, 1), resolve=_resolve))


def test_reply_resolves_matching_ticket() -> None:
    table = CorrelationTable()
    results: list[Any] = []
    _register(table, "abc", results)
    router = ReplyRouter(table, RecordingChannel())

    assert router.handle_reply({"completion": "x()", "requestId": "abc"}) is True

    assert results == [("abc", "x()", TicketStatus.RESOLVED)]
    assert router.delivered_count == 1


def test_duplicate_and_unknown_replies_are_ignored() -> None:
    table = CorrelationTable()
    results: list[Any] = []
    _register(table, "abc", results)
    router = ReplyRouter(table, RecordingChannel())

    router.handle_reply({"completion": "first", "requestId": "abc"})
    assert router.handle_reply({"completion": "second", "requestId": "abc"}) is False
    assert router.handle_reply({"completion": "other", "requestId": "zzz"}) is False

    assert results == [("abc", "first", TicketStatus.RESOLVED)]
    assert router.dropped_count == 0


@pytest.mark.parametrize(
    "payload",
    [
        None,
        "not a mapping",
        {},
        {"completion": "orphan"},
        {"completion": "x", "requestId": ""},
        {"completion": "x", "requestId": 7},
        {"completion": 12, "requestId": "abc"},
    ],
)
def test_malformed_replies_are_dropped(payload: Any) -> None:
    table = CorrelationTable()
    results: list[Any] = []
    _register(table, "abc", results)
    router = ReplyRouter(table, RecordingChannel())

    assert router.handle_reply(payload) is False

    assert results == []
    assert "abc" in table
    assert router.dropped_count == 1


def test_attach_is_idempotent_and_detach_removes_listener() -> None:
    channel = RecordingChannel()
    router = ReplyRouter(CorrelationTable(), channel)

    router.attach()
    router.attach()
    assert len(channel.handlers) == 1

    router.detach()
    router.detach()
    assert channel.handlers == []
    assert router.attached is False


def test_channel_delivery_reaches_router() -> None:
    table = CorrelationTable()
    results: list[Any] = []
    _register(table, "via-channel", results)
    channel = RecordingChannel()
    ReplyRouter(table, channel).attach()

    channel.reply("via-channel", None)

    assert results == [("via-channel", None, TicketStatus.RESOLVED)]

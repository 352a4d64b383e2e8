"""Shared test helpers and stub classes."""

from __future__ import annotations

from typing import Any, Callable


class RecordingChannel:
    """Channel stub that records sends and lets tests deliver replies synchronously."""

    def __init__(self, *, fail_with: Exception | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.handlers: list[Callable[[Any], None]] = []
        self.fail_with = fail_with

    def send(self, payload: Any) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(payload)

    def on_reply(self, handler: Callable[[Any], None]) -> None:
        self.handlers.append(handler)

    def remove_reply_listener(self, handler: Callable[[Any], None]) -> None:
        self.handlers[:] = [existing for existing in self.handlers if existing != handler]

    def deliver(self, payload: Any) -> None:
        for handler in list(self.handlers):
            handler(payload)

    def reply(self, request_id: str, completion: str | None) -> None:
        self.deliver({"completion": completion, "requestId": request_id})

    @property
    def sent_ids(self) -> list[str]:
        return [payload["requestId"] for payload in self.sent]


class FakeAIClient:
    """Stands in for :class:`codenook.ai.client.AIClient` in worker and CLI tests."""

    def __init__(self, answer: str | None = "foo();", *, error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False
        self.settings = type("S", (), {"model": "test-model"})()

    async def complete_chat(self, messages: Any, **kwargs: Any) -> str | None:
        self.calls.append({"messages": list(messages), **kwargs})
        if self.error is not None:
            raise self.error
        return self.answer

    async def aclose(self) -> None:
        self.closed = True


def sequential_ids(*ids: str) -> Callable[[], str]:
    iterator = iter(ids)
    return lambda: next(iterator)

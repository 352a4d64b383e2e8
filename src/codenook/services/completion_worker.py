"""Service-side worker answering completion requests received over a channel."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any

from ..ai.client import AIClient
from ..ai.prompts import COMPLETION_TOKEN_BUDGET, build_completion_messages
from ..completion.channel import InProcessChannel
from ..completion.messages import CompletionReply, CompletionRequest, MalformedPayloadError

__all__ = ["CompletionWorker", "CompletionWorkerConfig"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CompletionWorkerConfig:
    """Model parameters used for inline completion requests."""

    max_tokens: int = COMPLETION_TOKEN_BUDGET
    temperature: float = 0.1
    max_retries: int = 1


class CompletionWorker:
    """Answers each request with exactly one reply carrying its ``requestId``.

    Client failures are answered with ``completion: None``; the editor side
    treats that like any other declined suggestion.
    """

    def __init__(
        self,
        channel: InProcessChannel,
        client: AIClient,
        *,
        config: CompletionWorkerConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._channel = channel
        self._client = client
        self._config = config or CompletionWorkerConfig()
        self._loop = loop
        self._tasks: set[asyncio.Task[None]] = set()
        self._attached = False

    @property
    def pending_requests(self) -> int:
        return len(self._tasks)

    def attach(self) -> None:
        if self._attached:
            return
        self._channel.on_request(self.handle_request)
        self._attached = True

    def handle_request(self, payload: Any) -> None:
        try:
            request = CompletionRequest.from_payload(payload)
        except MalformedPayloadError as exc:
            LOGGER.warning("Dropping malformed completion request: %s", exc)
            return
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._answer(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _answer(self, request: CompletionRequest) -> None:
        completion: str | None = None
        try:
            completion = await self._client.complete_chat(
                build_completion_messages(request),
                temperature=self._config.temperature,
                max_tokens=self._config.max_tokens,
                max_retries=self._config.max_retries,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.warning("Completion request %s failed: %s", request.request_id, exc)
        if completion is not None and not completion.strip():
            completion = None
        self._channel.publish_reply(CompletionReply(request.request_id, completion).to_payload())

    async def aclose(self) -> None:
        if self._attached:
            self._channel.remove_request_listener(self.handle_request)
            self._attached = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

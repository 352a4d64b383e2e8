"""One-way transport between the editor surface and the completion service."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Protocol

__all__ = [
    "Channel",
    "ChannelError",
    "InProcessChannel",
    "PayloadHandler",
]

LOGGER = logging.getLogger(__name__)

PayloadHandler = Callable[[Any], None]


class ChannelError(RuntimeError):
    """Raised synchronously by :meth:`Channel.send` when the transport is unavailable."""


class Channel(Protocol):
    """Editor-side view of the transport.

    ``send`` is fire-and-forget. Replies are broadcast to every registered
    handler with no ordering or pairing guarantee.
    """

    def send(self, payload: Any) -> None:  # pragma: no cover - protocol stub
        ...

    def on_reply(self, handler: PayloadHandler) -> None:  # pragma: no cover - protocol stub
        ...

    def remove_reply_listener(self, handler: PayloadHandler) -> None:  # pragma: no cover - protocol stub
        ...


class InProcessChannel:
    """Loop-scheduled channel joining an editor surface and a service worker.

    Every delivery is queued with ``loop.call_soon`` so senders never observe
    a handler running inside their own call stack.
    """

    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._request_handlers: list[PayloadHandler] = []
        self._reply_handlers: list[PayloadHandler] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Editor side
    # ------------------------------------------------------------------
    def send(self, payload: Any) -> None:
        if self._closed:
            raise ChannelError("Channel is closed")
        if not self._request_handlers:
            raise ChannelError("No completion service is listening on this channel")
        self._dispatch(list(self._request_handlers), payload)

    def on_reply(self, handler: PayloadHandler) -> None:
        self._reply_handlers.append(handler)

    def remove_reply_listener(self, handler: PayloadHandler) -> None:
        self._reply_handlers[:] = [existing for existing in self._reply_handlers if existing != handler]

    @property
    def reply_listener_count(self) -> int:
        return len(self._reply_handlers)

    # ------------------------------------------------------------------
    # Service side
    # ------------------------------------------------------------------
    def on_request(self, handler: PayloadHandler) -> None:
        self._request_handlers.append(handler)

    def remove_request_listener(self, handler: PayloadHandler) -> None:
        self._request_handlers[:] = [existing for existing in self._request_handlers if existing != handler]

    def publish_reply(self, payload: Any) -> None:
        if self._closed:
            LOGGER.debug("Dropping reply published on a closed channel")
            return
        self._dispatch(list(self._reply_handlers), payload)

    def close(self) -> None:
        self._closed = True
        self._request_handlers.clear()
        self._reply_handlers.clear()

    def _dispatch(self, handlers: list[PayloadHandler], payload: Any) -> None:
        loop = self._loop or asyncio.get_running_loop()
        for handler in handlers:
            loop.call_soon(self._invoke, handler, payload)

    @staticmethod
    def _invoke(handler: PayloadHandler, payload: Any) -> None:
        try:
            handler(payload)
        except Exception:  # pragma: no cover - subscriber isolation
            LOGGER.exception("Channel handler failed")

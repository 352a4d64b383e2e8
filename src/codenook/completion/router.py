"""Long-lived listener routing service replies to pending tickets."""

from __future__ import annotations

import logging
from typing import Any

from .channel import Channel
from .messages import CompletionReply, MalformedPayloadError
from .table import CorrelationTable

__all__ = ["ReplyRouter"]

LOGGER = logging.getLogger(__name__)


class ReplyRouter:
    """Attaches once per editor surface and resolves tickets by request id."""

    def __init__(self, table: CorrelationTable, channel: Channel) -> None:
        self._table = table
        self._channel = channel
        self._attached = False
        self._delivered = 0
        self._dropped = 0

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def delivered_count(self) -> int:
        return self._delivered

    @property
    def dropped_count(self) -> int:
        return self._dropped

    def attach(self) -> None:
        if self._attached:
            return
        self._channel.on_reply(self.handle_reply)
        self._attached = True

    def detach(self) -> None:
        if not self._attached:
            return
        self._channel.remove_reply_listener(self.handle_reply)
        self._attached = False

    def handle_reply(self, payload: Any) -> bool:
        """Resolve the ticket named by ``payload``; returns ``True`` if one was pending."""

        try:
            reply = CompletionReply.from_payload(payload)
        except MalformedPayloadError as exc:
            self._dropped += 1
            LOGGER.warning("Dropping malformed completion reply: %s", exc)
            return False
        if self._table.resolve(reply.request_id, reply.completion):
            self._delivered += 1
            return True
        return False

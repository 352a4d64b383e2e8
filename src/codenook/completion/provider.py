"""Inline completion provider scoped to one editor surface."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Callable

from ..editor.document_model import DocumentSnapshot
from .cancellation import CancellationToken
from .channel import Channel
from .debounce import DEFAULT_QUIET_SECONDS, QuiescenceDebouncer
from .messages import CompletionRequest
from .router import ReplyRouter
from .session import DEFAULT_TIMEOUT_SECONDS, CompletionSession, InlineCompletion
from .table import CorrelationTable

__all__ = ["CompletionConfig", "InlineCompletionProvider"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CompletionConfig:
    """Tunable parameters for inline completion requests."""

    debounce_seconds: float = DEFAULT_QUIET_SECONDS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_prefix_chars: int = 6_000
    max_suffix_chars: int = 2_000


def _new_request_id() -> str:
    return uuid.uuid4().hex


class InlineCompletionProvider:
    """Turns "complete at this cursor" calls into correlated channel requests.

    One provider lives as long as its editor surface. It owns the
    correlation table, the debouncer and the single reply router, and
    :meth:`dispose` tears all three down, cancelling whatever is pending.
    """

    def __init__(
        self,
        channel: Channel,
        *,
        config: CompletionConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._channel = channel
        self._config = config or CompletionConfig()
        self._loop = loop
        self._id_factory = id_factory or _new_request_id
        self._table = CorrelationTable()
        self._debouncer: QuiescenceDebouncer[CompletionRequest] = QuiescenceDebouncer(
            self._send,
            quiet_seconds=self._config.debounce_seconds,
            loop=loop,
            on_error=self._handle_send_error,
        )
        self._router = ReplyRouter(self._table, channel)
        self._router.attach()
        self._sessions: dict[str, CompletionSession] = {}
        self._disposed = False

    @property
    def config(self) -> CompletionConfig:
        return self._config

    @property
    def table(self) -> CorrelationTable:
        return self._table

    @property
    def debouncer(self) -> QuiescenceDebouncer[CompletionRequest]:
        return self._debouncer

    @property
    def router(self) -> ReplyRouter:
        return self._router

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def active_sessions(self) -> tuple[CompletionSession, ...]:
        return tuple(self._sessions.values())

    async def provide_inline_completion(
        self,
        snapshot: DocumentSnapshot,
        token: CancellationToken | None = None,
    ) -> InlineCompletion | None:
        """Request a completion anchored at ``snapshot.position``.

        Returns ``None`` whenever nothing should be suggested: the service
        declined, the request was cancelled, timed out, or could not be sent.
        """

        if self._disposed:
            return None
        request = self.build_request(snapshot)
        session = CompletionSession(
            request,
            snapshot.position,
            table=self._table,
            debouncer=self._debouncer,
            timeout_seconds=self._config.timeout_seconds,
            token=token,
            loop=self._loop,
        )
        self._sessions[session.request_id] = session
        try:
            session.start()
            result = await session.result()
        finally:
            self._sessions.pop(session.request_id, None)
        LOGGER.debug("Completion %s finished as %s", session.request_id, session.state.value)
        return result

    def build_request(self, snapshot: DocumentSnapshot) -> CompletionRequest:
        before = snapshot.text_before_cursor
        after = snapshot.text_after_cursor
        if self._config.max_prefix_chars > 0:
            before = before[-self._config.max_prefix_chars :]
        if self._config.max_suffix_chars > 0:
            after = after[: self._config.max_suffix_chars]
        return CompletionRequest(
            request_id=self._id_factory(),
            text_before_cursor=before,
            text_after_cursor=after,
            language=snapshot.language,
        )

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._debouncer.cancel()
        cancelled = self._table.clear()
        self._router.detach()
        if cancelled:
            LOGGER.debug("Cancelled %s pending completion(s) on dispose", cancelled)

    def _send(self, request: CompletionRequest) -> bool:
        if request.request_id not in self._table:
            LOGGER.debug("Skipping send for finished completion %s", request.request_id)
            return False
        self._channel.send(request.to_payload())
        return True

    def _handle_send_error(self, request: CompletionRequest, exc: Exception) -> None:
        LOGGER.warning("Completion transport unavailable: %s", exc)
        self._table.cancel(request.request_id)

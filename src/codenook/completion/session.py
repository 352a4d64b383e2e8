"""Per-trigger completion session driving one ticket from request to result."""

from __future__ import annotations

import asyncio
import enum
import logging
import re
from dataclasses import dataclass

from ..editor.document_model import CursorPosition
from .cancellation import CancellationRegistration, CancellationToken
from .debounce import QuiescenceDebouncer
from .messages import CompletionRequest
from .table import CorrelationTable, Ticket, TicketStatus

__all__ = [
    "CompletionSession",
    "DEFAULT_TIMEOUT_SECONDS",
    "InlineCompletion",
    "SessionState",
    "strip_code_fences",
]

LOGGER = logging.getLogger(__name__)
DEFAULT_TIMEOUT_SECONDS = 5.0

_FENCE_PATTERN = re.compile(
    r"^\s*(?P<fence>`{3,}|~{3,})[^\r\n`]*\r?\n(?P<body>.*?)(?:\r?\n)?[ \t]*(?P=fence)\s*$",
    re.DOTALL,
)
_INLINE_FENCE_PATTERN = re.compile(r"^\s*(?P<fence>`{3,})(?P<body>[^\n]*?)(?P=fence)\s*$")


class SessionState(str, enum.Enum):
    IDLE = "idle"
    REQUESTED = "requested"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


_TERMINAL_STATES = {
    TicketStatus.RESOLVED: SessionState.RESOLVED,
    TicketStatus.CANCELLED: SessionState.CANCELLED,
    TicketStatus.TIMED_OUT: SessionState.TIMED_OUT,
}


@dataclass(slots=True, frozen=True)
class InlineCompletion:
    """Literal text to insert at ``position``, the cursor captured at request time."""

    text: str
    position: CursorPosition
    request_id: str


def strip_code_fences(text: str | None) -> str | None:
    """Remove fence markup the model may have wrapped around a completion."""

    if text is None:
        return None
    match = _FENCE_PATTERN.match(text) or _INLINE_FENCE_PATTERN.match(text)
    if match is not None:
        text = match.group("body")
    return text if text and text.strip() else None


class CompletionSession:
    """One request lifecycle: ``IDLE -> REQUESTED -> RESOLVED | CANCELLED | TIMED_OUT``.

    The session keeps only its ticket id; the table owns the ticket. The
    timer and the cancellation hook are both disarmed as soon as the ticket
    leaves ``PENDING``, whichever terminal event got there first.
    """

    def __init__(
        self,
        request: CompletionRequest,
        position: CursorPosition,
        *,
        table: CorrelationTable,
        debouncer: QuiescenceDebouncer[CompletionRequest],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        token: CancellationToken | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._request = request
        self._position = position
        self._table = table
        self._debouncer = debouncer
        self._timeout_seconds = max(0.0, float(timeout_seconds))
        self._token = token
        self._loop = loop
        self._state = SessionState.IDLE
        self._future: asyncio.Future[InlineCompletion | None] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._registration: CancellationRegistration | None = None

    @property
    def request_id(self) -> str:
        return self._request.request_id

    @property
    def position(self) -> CursorPosition:
        return self._position

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state not in (SessionState.IDLE, SessionState.REQUESTED)

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    @property
    def hook_armed(self) -> bool:
        return self._registration is not None and self._registration.active

    def start(self) -> None:
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"Session {self.request_id} already started")
        loop = self._loop or asyncio.get_running_loop()
        self._future = loop.create_future()
        self._state = SessionState.REQUESTED
        self._table.register(
            Ticket(
                id=self.request_id,
                position=self._position,
                resolve=self._on_terminal,
                created_at=loop.time(),
            )
        )
        self._timer = loop.call_later(self._timeout_seconds, self._table.expire, self.request_id)
        if self._token is not None:
            # An already-cancelled token fires during register() and ends the session here.
            registration = self._token.register(self._cancel_from_token)
            if self.done:
                return
            self._registration = registration
        self._debouncer.schedule(self._request)

    async def result(self) -> InlineCompletion | None:
        if self._future is None:
            raise RuntimeError("Session has not been started")
        try:
            return await asyncio.shield(self._future)
        except asyncio.CancelledError:
            self._table.cancel(self.request_id)
            raise

    def _cancel_from_token(self) -> None:
        self._table.cancel(self.request_id)

    def _on_terminal(self, completion: str | None, status: TicketStatus) -> None:
        self._state = _TERMINAL_STATES[status]
        self._disarm()
        text = strip_code_fences(completion) if status is TicketStatus.RESOLVED else None
        outcome = InlineCompletion(text, self._position, self.request_id) if text else None
        if status is TicketStatus.TIMED_OUT:
            LOGGER.debug("Completion %s timed out after %.2fs", self.request_id, self._timeout_seconds)
        if self._future is not None and not self._future.done():
            self._future.set_result(outcome)

    def _disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._registration is not None:
            self._registration.dispose()
            self._registration = None

"""Keyed store of pending completion tickets with first-writer-wins resolution."""

from __future__ import annotations

import enum
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterator

from ..editor.document_model import CursorPosition

__all__ = [
    "CorrelationTable",
    "DuplicateTicketError",
    "Ticket",
    "TicketResolver",
    "TicketStatus",
]

LOGGER = logging.getLogger(__name__)


class TicketStatus(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"

    @property
    def terminal(self) -> bool:
        return self is not TicketStatus.PENDING


TicketResolver = Callable[[str | None, TicketStatus], None]


class DuplicateTicketError(RuntimeError):
    """Raised when a ticket id is registered while a live ticket already uses it."""


@dataclass(slots=True)
class Ticket:
    """One outstanding completion ask.

    ``resolve`` receives the completion text (``None`` for "no completion")
    and the terminal status. The table guarantees it is called at most once.
    """

    id: str
    position: CursorPosition
    resolve: TicketResolver
    created_at: float = 0.0
    status: TicketStatus = field(default=TicketStatus.PENDING)


class CorrelationTable:
    """Owns every live :class:`Ticket` for one editor surface.

    ``resolve``, ``cancel`` and ``expire`` race for the same id; whichever
    reaches the table first removes the ticket, stamps its status and then
    invokes its callback. Every later call for that id is a no-op.
    """

    def __init__(self) -> None:
        self._tickets: dict[str, Ticket] = {}
        self._outcomes: Counter[TicketStatus] = Counter()

    def __len__(self) -> int:
        return len(self._tickets)

    def __contains__(self, ticket_id: object) -> bool:
        return ticket_id in self._tickets

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tickets))

    @property
    def stats(self) -> dict[str, int]:
        return {status.value: self._outcomes[status] for status in TicketStatus if status.terminal}

    def get(self, ticket_id: str) -> Ticket | None:
        return self._tickets.get(ticket_id)

    def register(self, ticket: Ticket) -> None:
        if ticket.id in self._tickets:
            raise DuplicateTicketError(f"Ticket {ticket.id!r} is already pending")
        if ticket.status is not TicketStatus.PENDING:
            raise ValueError(f"Ticket {ticket.id!r} must be pending to register (got {ticket.status.value})")
        self._tickets[ticket.id] = ticket

    def resolve(self, ticket_id: str, completion: str | None) -> bool:
        return self._finish(ticket_id, completion, TicketStatus.RESOLVED)

    def cancel(self, ticket_id: str) -> bool:
        return self._finish(ticket_id, None, TicketStatus.CANCELLED)

    def expire(self, ticket_id: str) -> bool:
        return self._finish(ticket_id, None, TicketStatus.TIMED_OUT)

    def clear(self) -> int:
        """Cancel every pending ticket; returns how many were cancelled."""

        cancelled = 0
        for ticket_id in list(self._tickets):
            if self.cancel(ticket_id):
                cancelled += 1
        return cancelled

    def _finish(self, ticket_id: str, completion: str | None, status: TicketStatus) -> bool:
        ticket = self._tickets.pop(ticket_id, None)
        if ticket is None:
            LOGGER.debug("Ignoring %s for unknown or finished ticket %s", status.value, ticket_id)
            return False
        ticket.status = status
        self._outcomes[status] += 1
        try:
            ticket.resolve(completion, status)
        except Exception:
            LOGGER.exception("Resolver for ticket %s raised", ticket_id)
        return True

"""Inline completion request/response correlation."""

from .cancellation import CancellationRegistration, CancellationToken
from .channel import Channel, ChannelError, InProcessChannel
from .debounce import QuiescenceDebouncer
from .messages import CompletionReply, CompletionRequest, MalformedPayloadError
from .provider import CompletionConfig, InlineCompletionProvider
from .router import ReplyRouter
from .session import CompletionSession, InlineCompletion, SessionState, strip_code_fences
from .table import CorrelationTable, DuplicateTicketError, Ticket, TicketStatus

__all__ = [
    "CancellationRegistration",
    "CancellationToken",
    "Channel",
    "ChannelError",
    "CompletionConfig",
    "CompletionReply",
    "CompletionRequest",
    "CompletionSession",
    "CorrelationTable",
    "DuplicateTicketError",
    "InProcessChannel",
    "InlineCompletion",
    "InlineCompletionProvider",
    "MalformedPayloadError",
    "QuiescenceDebouncer",
    "ReplyRouter",
    "SessionState",
    "Ticket",
    "TicketStatus",
    "strip_code_fences",
]

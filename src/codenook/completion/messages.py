"""Wire payloads exchanged with the completion service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

__all__ = ["CompletionRequest", "CompletionReply", "MalformedPayloadError"]


class MalformedPayloadError(ValueError):
    """Raised when a payload received over the channel cannot be decoded."""


@dataclass(slots=True, frozen=True)
class CompletionRequest:
    """Request sent to the service for one inline completion."""

    request_id: str
    text_before_cursor: str
    text_after_cursor: str
    language: str

    def to_payload(self) -> dict[str, str]:
        return {
            "textBeforeCursor": self.text_before_cursor,
            "textAfterCursor": self.text_after_cursor,
            "language": self.language,
            "requestId": self.request_id,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "CompletionRequest":
        if not isinstance(payload, Mapping):
            raise MalformedPayloadError("Completion request must be a mapping")
        request_id = _require_request_id(payload)
        return cls(
            request_id=request_id,
            text_before_cursor=_optional_text(payload, "textBeforeCursor"),
            text_after_cursor=_optional_text(payload, "textAfterCursor"),
            language=_optional_text(payload, "language") or "plaintext",
        )


@dataclass(slots=True, frozen=True)
class CompletionReply:
    """Reply broadcast by the service; ``completion`` is ``None`` when it declined."""

    request_id: str
    completion: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {"completion": self.completion, "requestId": self.request_id}

    @classmethod
    def from_payload(cls, payload: Any) -> "CompletionReply":
        if not isinstance(payload, Mapping):
            raise MalformedPayloadError("Completion reply must be a mapping")
        request_id = _require_request_id(payload)
        completion = payload.get("completion")
        if completion is not None and not isinstance(completion, str):
            raise MalformedPayloadError(f"Reply {request_id} carried a non-string completion")
        return cls(request_id=request_id, completion=completion)


def _require_request_id(payload: Mapping[str, Any]) -> str:
    value = payload.get("requestId")
    if not isinstance(value, str) or not value:
        raise MalformedPayloadError("Payload is missing a requestId")
    return value


def _optional_text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedPayloadError(f"Field {key!r} must be a string")
    return value

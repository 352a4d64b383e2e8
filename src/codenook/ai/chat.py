"""Chat panel backend: forwards a user message to the model and returns the answer."""

from __future__ import annotations

import logging

from .client import AIClient
from .prompts import build_chat_messages

__all__ = ["ChatError", "ChatService"]

LOGGER = logging.getLogger(__name__)


class ChatError(RuntimeError):
    """Raised when the assistant could not produce an answer."""


class ChatService:
    def __init__(self, client: AIClient, *, temperature: float | None = 0.2) -> None:
        self._client = client
        self._temperature = temperature

    async def send_message(self, message: str) -> str:
        text = (message or "").strip()
        if not text:
            raise ChatError("Cannot send an empty chat message")
        try:
            answer = await self._client.complete_chat(
                build_chat_messages(text),
                temperature=self._temperature,
            )
        except Exception as exc:
            LOGGER.error("Chat request failed: %s", exc)
            raise ChatError("Failed to get AI response") from exc
        if answer is None:
            raise ChatError("Failed to get AI response")
        return answer

"""Async AI client wrapper built around OpenAI-compatible endpoints."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, cast

import httpx
from openai import AsyncOpenAI, APIConnectionError, APIError, RateLimitError
from openai.types.chat import ChatCompletionMessageParam
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

LOGGER = logging.getLogger(__name__)

_RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    APIError,
    APIConnectionError,
    RateLimitError,
    httpx.TimeoutException,
)


@dataclass(slots=True)
class ClientSettings:
    """Connection and retry settings for one model endpoint."""

    base_url: str
    api_key: str
    model: str
    organization: str | None = None
    request_timeout: float | None = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: Mapping[str, str] | None = None
    metadata: Mapping[str, str] | None = None
    debug_logging: bool = False


class AIClient:
    """Sends chat completion requests for the chat panel and the completion worker.

    Transient transport and API failures are retried with exponential backoff
    (``retry_min_seconds`` up to ``retry_max_seconds``); anything still failing
    after the last attempt is re-raised to the caller.
    """

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            timeout=settings.request_timeout,
            default_headers=dict(settings.default_headers or {}) or None,
        )

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def complete_chat(
        self,
        messages: Iterable[Mapping[str, Any]],
        *,
        temperature: float | None = 0.2,
        max_tokens: int | None = None,
        max_retries: int | None = None,
    ) -> str | None:
        """Return the text of the first choice for ``messages`` (``None`` when empty).

        ``max_retries`` overrides the configured attempt count for this call.
        """

        request = self._request_body(_as_message_list(messages), temperature, max_tokens)
        LOGGER.debug(
            "Requesting chat completion via %s with %s message(s)",
            self._settings.model,
            len(request["messages"]),
        )
        if self._settings.debug_logging:
            _log_request_body(request)

        response: Any = None
        async for attempt in self._retry_policy(max_retries):
            with attempt:
                response = await self._client.chat.completions.create(**request)
        return _first_choice_text(response)

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result

    def _request_body(
        self,
        messages: List[ChatCompletionMessageParam],
        temperature: float | None,
        max_tokens: int | None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"model": self._settings.model, "messages": messages}
        if self._settings.metadata:
            body["metadata"] = dict(self._settings.metadata)
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        return body

    def _retry_policy(self, max_retries: int | None) -> AsyncRetrying:
        attempts = self._settings.max_retries if max_retries is None else max_retries
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, attempts)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(_RETRYABLE_ERRORS),
        )


def _as_message_list(messages: Iterable[Mapping[str, Any]]) -> List[ChatCompletionMessageParam]:
    normalized: List[ChatCompletionMessageParam] = []
    for message in messages:
        if not isinstance(message, Mapping):
            raise TypeError(f"Chat messages must be mappings, got {type(message).__name__}")
        normalized.append(cast(ChatCompletionMessageParam, dict(message)))
    if not normalized:
        raise ValueError("At least one message is required to start a chat")
    return normalized


def _first_choice_text(response: Any) -> str | None:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return None
    content = getattr(getattr(choices[0], "message", None), "content", None)
    return content if isinstance(content, str) else None


def _log_request_body(body: Mapping[str, Any]) -> None:
    try:
        LOGGER.debug("AI request body:\n%s", json.dumps(body, ensure_ascii=False, indent=2))
    except (TypeError, ValueError):
        LOGGER.debug("AI request body (unserializable): %s", body)

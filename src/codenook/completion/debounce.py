"""Quiescence debouncer collapsing bursts of triggers into a single send."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, TypeVar

__all__ = ["QuiescenceDebouncer", "DEFAULT_QUIET_SECONDS"]

LOGGER = logging.getLogger(__name__)
DEFAULT_QUIET_SECONDS = 0.3

PayloadT = TypeVar("PayloadT")


class QuiescenceDebouncer(Generic[PayloadT]):
    """Sends only the latest payload once input has been quiet for ``quiet_seconds``.

    The debouncer decides whether and when a send happens; it never resolves
    a caller. Superseded payloads are dropped silently and their owners must
    finish through their own cancellation or timeout path. A ``send`` that
    returns ``False`` skipped its payload and is not counted in
    :attr:`sent_count`.
    """

    def __init__(
        self,
        send: Callable[[PayloadT], bool | None],
        *,
        quiet_seconds: float = DEFAULT_QUIET_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
        on_error: Callable[[PayloadT, Exception], None] | None = None,
    ) -> None:
        self._send = send
        self._quiet_seconds = max(0.0, float(quiet_seconds))
        self._loop = loop
        self._on_error = on_error
        self._pending: PayloadT | None = None
        self._has_pending = False
        self._timer: asyncio.TimerHandle | None = None
        self._sent = 0

    @property
    def quiet_seconds(self) -> float:
        return self._quiet_seconds

    @property
    def pending(self) -> PayloadT | None:
        return self._pending if self._has_pending else None

    @property
    def armed(self) -> bool:
        return self._timer is not None

    @property
    def sent_count(self) -> int:
        return self._sent

    def schedule(self, payload: PayloadT) -> None:
        """Record ``payload`` as the latest and restart the quiet window."""

        self._disarm()
        self._pending = payload
        self._has_pending = True
        loop = self._loop or asyncio.get_running_loop()
        self._timer = loop.call_later(self._quiet_seconds, self._fire)

    def flush(self) -> None:
        """Send the pending payload immediately, if any."""

        self._disarm()
        self._fire()

    def cancel(self) -> None:
        """Drop the pending payload without sending it."""

        self._disarm()
        self._pending = None
        self._has_pending = False

    def _disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        if not self._has_pending:
            return
        payload = self._pending
        self._pending = None
        self._has_pending = False
        try:
            delivered = self._send(payload)  # type: ignore[arg-type]
        except Exception as exc:
            LOGGER.debug("Debounced send failed: %s", exc)
            if self._on_error is not None:
                self._on_error(payload, exc)  # type: ignore[arg-type]
            return
        if delivered is not False:
            self._sent += 1

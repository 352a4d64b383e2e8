"""Cooperative cancellation source handed to each completion request."""

from __future__ import annotations

import logging
from typing import Callable

__all__ = ["CancellationToken", "CancellationRegistration"]

LOGGER = logging.getLogger(__name__)


class CancellationRegistration:
    """Handle returned by :meth:`CancellationToken.register`; ``dispose`` unhooks it."""

    __slots__ = ("_token", "_callback")

    def __init__(self, token: "CancellationToken", callback: Callable[[], None]) -> None:
        self._token: CancellationToken | None = token
        self._callback = callback

    @property
    def active(self) -> bool:
        return self._token is not None

    def dispose(self) -> None:
        token = self._token
        if token is None:
            return
        self._token = None
        token._unregister(self)

    def _fire(self) -> None:
        if self._token is None:
            return
        self._token = None
        self._callback()


class CancellationToken:
    """Fires registered callbacks once when :meth:`cancel` is called.

    Callbacks registered after cancellation run immediately.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._registrations: list[CancellationRegistration] = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def registration_count(self) -> int:
        return len(self._registrations)

    def register(self, callback: Callable[[], None]) -> CancellationRegistration:
        registration = CancellationRegistration(self, callback)
        if self._cancelled:
            registration._fire()
            return registration
        self._registrations.append(registration)
        return registration

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        registrations, self._registrations = self._registrations, []
        for registration in registrations:
            try:
                registration._fire()
            except Exception:
                LOGGER.exception("Cancellation callback failed")

    def _unregister(self, registration: CancellationRegistration) -> None:
        try:
            self._registrations.remove(registration)
        except ValueError:
            pass

"""Cooperative cancellation shared between pipeline stages."""

from __future__ import annotations

import threading

__all__ = ["CancellationToken"]


class CancellationToken:
    """Thread-safe flag polled between independent units of work."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @staticmethod
    def requested(token: CancellationToken | None) -> bool:
        """Return True when ``token`` exists and has been cancelled."""
        return token is not None and token.is_cancelled

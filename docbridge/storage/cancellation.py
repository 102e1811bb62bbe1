"""Cooperative cancellation for document retrieval."""

from __future__ import annotations

import threading

from .errors import OperationCancelledError


class CancellationToken:
    """Thread-safe flag checked by the retrieval loop between attempts.

    Examples:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = "retrieval") -> None:
        if self._event.is_set():
            raise OperationCancelledError(f"Cancelled during {stage}")

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return ``True`` if cancelled meanwhile."""

        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)


__all__ = ["CancellationToken"]

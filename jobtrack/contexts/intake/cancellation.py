"""
Cooperative cancellation for parse operations.

A CancellationToken is created by the parsing session for one submission and
passed to every call that may block. Blocking points (the network call and the
backoff delay) wait on the token so that cancel() wakes them immediately.
"""

import threading
from typing import Callable


class CancellationToken:
    """
    One-way, thread-safe cancellation flag.

    Example:
        token = CancellationToken()
        if token.wait(2.0):  # returns early with True if cancelled
            raise_abort()
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Signal cancellation and run registered callbacks (once)."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def wait(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`, waking early on cancellation.

        Returns:
            True if the token was cancelled, False if the full delay elapsed
        """
        return self._event.wait(timeout=max(seconds, 0.0))

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback to run when the token is cancelled.

        Runs immediately if the token is already cancelled.

        Returns:
            Function that unregisters the callback
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove(callback)
        callback()
        return lambda: None

    def _remove(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

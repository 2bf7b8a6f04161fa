"""Cooperative cancellation for conformance runs."""

from __future__ import annotations

import logging
import threading

from conformu.errors import DeviceError, ErrorKind

logger = logging.getLogger(__name__)


class CancellationToken:
    """Shareable, thread-safe cancellation flag.

    The token is handed to a ConformanceManager at construction and may be
    triggered from any thread, or from a signal handler, at any time. The
    manager polls it at phase boundaries, case boundaries and inside every
    bounded wait. Triggering is idempotent.

    Example:
        token = CancellationToken()
        signal.signal(signal.SIGINT, lambda *_: token.cancel())
        manager = ConformanceManager(settings, sink, token)
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        """Return True once cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Calling this more than once has no further effect."""
        if not self._event.is_set():
            self._event.set()
            logger.warning("Cancellation requested")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or the timeout elapses.

        Args:
            timeout: Maximum time to wait in seconds, or None to wait forever.

        Returns:
            True if the token is cancelled.
        """
        return self._event.wait(timeout)

    def raise_if_cancelled(self, member: str = "run") -> None:
        """Raise a CANCELLED DeviceError if cancellation was requested.

        Args:
            member: Name reported as the member being accessed.

        Raises:
            DeviceError: With kind CANCELLED.
        """
        if self._event.is_set():
            raise DeviceError(ErrorKind.CANCELLED, member, "run cancelled")

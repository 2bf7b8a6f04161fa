"""Execution context handed to every check."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from conformu.cancellation import CancellationToken
from conformu.devices.base import DeviceFacade
from conformu.errors import DeviceError, ErrorKind
from conformu.settings import ConformSettings

logger = logging.getLogger(__name__)


@dataclass
class CheckContext:
    """Context shared by the checks of one run.

    The context provides:
    - The device facade under test
    - The run settings (timeouts, per-category options)
    - Cancellation-aware waiting
    - Helpers that turn contract violations into INVALID_RESPONSE errors

    Example:
        def check_position(ctx: CheckContext) -> str:
            position = ctx.require_type(ctx.facade.position, int, "Position")
            ctx.require_range(position, 0, 7, "Position")
            return f"Position {position}"
    """

    facade: DeviceFacade
    settings: ConformSettings
    cancellation: CancellationToken

    def check_cancelled(self, member: str = "run") -> None:
        """Raise a CANCELLED DeviceError if the run has been cancelled."""
        self.cancellation.raise_if_cancelled(member)

    def sleep(self, seconds: float, member: str = "run") -> None:
        """Sleep, waking early and raising if the run is cancelled."""
        if self.cancellation.wait(seconds):
            self.check_cancelled(member)

    def wait_until(
        self,
        predicate: Callable[[], bool],
        timeout: float,
        member: str,
        poll_interval: float | None = None,
    ) -> float:
        """Poll ``predicate`` until it returns True.

        Args:
            predicate: Condition to wait for. Device errors it raises propagate.
            timeout: Maximum time to wait in seconds.
            member: Member reported if the wait times out.
            poll_interval: Delay between polls; defaults to ``run.poll_interval``.

        Returns:
            Seconds waited.

        Raises:
            DeviceError: TIMEOUT if the condition is not met in time, CANCELLED
                if the run is cancelled while waiting.
        """
        interval = poll_interval if poll_interval is not None else self.settings.run.poll_interval
        start = time.monotonic()
        while True:
            self.check_cancelled(member)
            if predicate():
                return time.monotonic() - start
            elapsed = time.monotonic() - start
            if elapsed >= timeout:
                raise DeviceError(
                    ErrorKind.TIMEOUT, member, f"condition not reached within {timeout:g}s"
                )
            self.sleep(min(interval, timeout - elapsed), member)

    @staticmethod
    def require_type(value: Any, expected: type | tuple[type, ...], member: str) -> Any:
        """Return ``value`` if it is an instance of ``expected``.

        Booleans are not accepted where an int or float is expected.

        Raises:
            DeviceError: INVALID_RESPONSE if the type does not match.
        """
        types = expected if isinstance(expected, tuple) else (expected,)
        if isinstance(value, bool) and bool not in types:
            matches = False
        else:
            matches = isinstance(value, types)
        if not matches:
            names = "/".join(t.__name__ for t in types)
            raise DeviceError(
                ErrorKind.INVALID_RESPONSE,
                member,
                f"expected {names}, got {type(value).__name__} {value!r}",
            )
        return value

    @staticmethod
    def require_range(value: Any, low: Any, high: Any, member: str) -> Any:
        """Return ``value`` if ``low <= value <= high``.

        Raises:
            DeviceError: INVALID_RESPONSE if the value is out of range.
        """
        if not low <= value <= high:
            raise DeviceError(
                ErrorKind.INVALID_RESPONSE, member, f"{value!r} outside range {low}..{high}"
            )
        return value

    @staticmethod
    def require(condition: bool, member: str, message: str) -> None:
        """Raise INVALID_RESPONSE with ``message`` unless ``condition`` holds."""
        if not condition:
            raise DeviceError(ErrorKind.INVALID_RESPONSE, member, message)

    @staticmethod
    def expect_error(kind: ErrorKind, member: str, action: Callable[[], Any]) -> DeviceError:
        """Run ``action`` and require it to raise a DeviceError of ``kind``.

        Returns:
            The expected error.

        Raises:
            DeviceError: CANCELLED errors propagate unchanged; any other
                outcome raises INVALID_RESPONSE.
        """
        try:
            value = action()
        except DeviceError as exc:
            if exc.kind is kind:
                return exc
            if exc.kind is ErrorKind.CANCELLED:
                raise
            raise DeviceError(
                ErrorKind.INVALID_RESPONSE,
                member,
                f"expected {kind.value}, driver raised {exc.kind.value} ({exc.detail})",
            ) from exc
        raise DeviceError(
            ErrorKind.INVALID_RESPONSE, member, f"expected {kind.value}, call returned {value!r}"
        )

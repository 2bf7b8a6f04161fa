"""Tests for CancellationToken and the error types."""

from __future__ import annotations

import threading

import pytest

from conformu.cancellation import CancellationToken
from conformu.errors import ConformError, DeviceError, ErrorKind, HarnessError, SettingsError


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_initially_not_cancelled(self) -> None:
        token = CancellationToken()
        assert not token.is_cancelled
        assert token.wait(0.01) is False
        token.raise_if_cancelled()

    def test_cancel_is_idempotent(self) -> None:
        token = CancellationToken()
        token.cancel()
        token.cancel()
        assert token.is_cancelled
        assert token.wait(0) is True

    def test_raise_if_cancelled(self) -> None:
        token = CancellationToken()
        token.cancel()
        with pytest.raises(DeviceError) as exc_info:
            token.raise_if_cancelled("Position")
        assert exc_info.value.kind is ErrorKind.CANCELLED
        assert exc_info.value.member == "Position"

    def test_cancel_from_other_thread_wakes_waiter(self) -> None:
        token = CancellationToken()
        timer = threading.Timer(0.02, token.cancel)
        timer.start()
        try:
            assert token.wait(5.0) is True
        finally:
            timer.cancel()


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_device_error_message(self) -> None:
        error = DeviceError(ErrorKind.INVALID_VALUE, "Position", "out of range")
        assert str(error) == "Position: invalid_value (out of range)"
        assert isinstance(error, ConformError)

    def test_device_error_without_detail(self) -> None:
        assert str(DeviceError(ErrorKind.TIMEOUT, "Move")) == "Move: timeout"

    def test_harness_error_carries_case_id(self) -> None:
        error = HarnessError("filterwheel.names", "KeyError: 'x'")
        assert error.case_id == "filterwheel.names"
        assert "filterwheel.names" in str(error)

    def test_settings_error_lists_issues(self) -> None:
        error = SettingsError(["a is missing", "b is bad"])
        assert error.issues == ("a is missing", "b is bad")
        assert "a is missing; b is bad" in str(error)

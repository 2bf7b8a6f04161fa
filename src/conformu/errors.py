"""Exception types for conformu.

This module defines the exception hierarchy used throughout the conformance
harness. All conformu exceptions inherit from ConformError, allowing consumers
to catch all harness-specific errors with a single except clause.

Device-originating failures are reported through a single exception type,
DeviceError, whose ``kind`` classifies the failure. Transport modules raise
their own native exceptions; device facades translate those into DeviceError
so that nothing transport-specific reaches the test orchestration layer.

Exception hierarchy:
    ConformError (base)
    +-- DeviceError: Uniform device failure, classified by ErrorKind
    +-- HarnessError: Programming error inside a test case
    +-- SettingsError: Invalid or incomplete settings
    +-- StateError: Manager lifecycle violations
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Uniform classification of device and run failures.

    Attributes:
        UNSUPPORTED: The driver signalled that the member is not implemented.
        INVALID_RESPONSE: The driver returned a value outside its contract.
        TRANSPORT_FAILURE: Connection dropped, malformed response or protocol error.
        TIMEOUT: A call exceeded its configured bound.
        PREREQUISITE_NOT_MET: A prerequisite case failed (internal skip reason).
        CANCELLED: The run was cancelled (internal abort reason).
        INVALID_VALUE: The driver rejected a value written to it.
        INVALID_OPERATION: The driver refused the operation in its current state.
        NOT_CONNECTED: The driver reported that it is not connected.
        DRIVER_ERROR: Any other error reported by the driver.
    """

    UNSUPPORTED = "unsupported"
    INVALID_RESPONSE = "invalid_response"
    TRANSPORT_FAILURE = "transport_failure"
    TIMEOUT = "timeout"
    PREREQUISITE_NOT_MET = "prerequisite_not_met"
    CANCELLED = "cancelled"
    INVALID_VALUE = "invalid_value"
    INVALID_OPERATION = "invalid_operation"
    NOT_CONNECTED = "not_connected"
    DRIVER_ERROR = "driver_error"


class ConformError(Exception):
    """Base exception for all conformu errors.

    This is the root of the conformu exception hierarchy. Catch this to handle
    any harness-specific error.
    """


class DeviceError(ConformError):
    """Uniform device failure raised at the facade boundary.

    Attributes:
        kind: Classification of the failure.
        member: Interface member that was being accessed (e.g. ``"Position"``).
        detail: Raw message from the transport or the driver.

    Example:
        >>> try:
        ...     facade.position = 99
        ... except DeviceError as e:
        ...     if e.kind is ErrorKind.INVALID_VALUE:
        ...         print("rejected as expected")
    """

    def __init__(self, kind: ErrorKind, member: str, detail: str = "") -> None:
        """Initialize the device error.

        Args:
            kind: Classification of the failure.
            member: Interface member name.
            detail: Raw transport or driver message.
        """
        self.kind = kind
        self.member = member
        self.detail = detail
        message = f"{member}: {kind.value}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class HarnessError(ConformError):
    """Raised when a test case fails for reasons unrelated to the device.

    A check that raises anything other than DeviceError contains a bug. The
    run is reported as fatal and this error is propagated to the caller with
    the originating test case id attached.

    Attributes:
        case_id: Identifier of the test case that raised.
    """

    def __init__(self, case_id: str, message: str) -> None:
        self.case_id = case_id
        super().__init__(f"{case_id}: {message}")


class SettingsError(ConformError):
    """Raised when settings are missing, malformed or inconsistent.

    Attributes:
        issues: Individual validation messages.
    """

    def __init__(self, issues: list[str]) -> None:
        self.issues = tuple(issues)
        super().__init__("Invalid settings: " + "; ".join(issues))


class StateError(ConformError):
    """Raised for manager lifecycle violations.

    For example, calling ``run_conformance_test()`` twice on one manager.
    """

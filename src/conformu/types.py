"""Common types used across conformu modules.

This module provides the foundational enumerations and value types of the
conformance harness: the device categories and transports a run can target,
the verdicts a check can produce, the lifecycle states of a run, and a
nanosecond-resolution timestamp.

Classes:
    DeviceCategory: Standardized instrument interface contracts.
    TransportKind: Mechanism used to reach a driver instance.
    Phase: Ordered groups of test cases.
    Verdict: Outcome classification of a single check or a whole run.
    RunState: Lifecycle state of a conformance run.
    Timestamp: High-resolution timestamp with nanosecond precision.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class DeviceCategory(Enum):
    """Standardized instrument interface contracts.

    The value is the canonical interface name. The lower-cased value is the
    device type segment used in Alpaca URLs.
    """

    FILTER_WHEEL = "FilterWheel"
    FOCUSER = "Focuser"
    SAFETY_MONITOR = "SafetyMonitor"
    CAMERA = "Camera"
    TELESCOPE = "Telescope"
    DOME = "Dome"
    ROTATOR = "Rotator"
    SWITCH = "Switch"
    OBSERVING_CONDITIONS = "ObservingConditions"
    COVER_CALIBRATOR = "CoverCalibrator"

    @property
    def url_segment(self) -> str:
        """Return the Alpaca device type path segment (e.g. ``filterwheel``)."""
        return self.value.lower()

    @classmethod
    def parse(cls, text: str) -> DeviceCategory:
        """Parse a category from its interface name or enum name.

        Matching is case-insensitive and ignores underscores, so
        ``"FilterWheel"``, ``"filter_wheel"`` and ``"FILTERWHEEL"`` all parse.

        Args:
            text: Category name.

        Returns:
            The matching category.

        Raises:
            ValueError: If no category matches.
        """
        key = text.replace("_", "").lower()
        for category in cls:
            if category.url_segment == key:
                return category
        raise ValueError(f"Unknown device category: {text!r}")


class TransportKind(Enum):
    """Mechanism used to reach a driver instance.

    Attributes:
        LOCAL_INTEROP: In-process driver object created by a factory function.
        NETWORK_PROTOCOL: Remote device reached over the Alpaca REST protocol.
    """

    LOCAL_INTEROP = "local"
    NETWORK_PROTOCOL = "network"

    @classmethod
    def parse(cls, text: str) -> TransportKind:
        """Parse a transport from its value or enum name (case-insensitive).

        Raises:
            ValueError: If no transport matches.
        """
        key = text.strip().lower()
        for kind in cls:
            if key in (kind.value, kind.name.lower()):
                return kind
        raise ValueError(f"Unknown transport: {text!r}")


class Phase(Enum):
    """Fixed, ordered groups of test cases.

    Phases always execute in declaration order.
    """

    CAPABILITIES = "capabilities"
    PROPERTIES = "properties"
    METHODS = "methods"
    STATE_TRANSITIONS = "state_transitions"

    @property
    def display_name(self) -> str:
        """Return a human-readable phase title."""
        return _PHASE_TITLES[self]

    @property
    def order(self) -> int:
        """Return the zero-based execution position of this phase."""
        return list(Phase).index(self)


_PHASE_TITLES = {
    Phase.CAPABILITIES: "Static capability checks",
    Phase.PROPERTIES: "Property read/write checks",
    Phase.METHODS: "Method/action checks",
    Phase.STATE_TRANSITIONS: "State-transition checks",
}


class Verdict(Enum):
    """Outcome of a single check, or of a whole run.

    Attributes:
        PASS: The driver behaved as the contract requires.
        WARNING: Acceptable but noteworthy, e.g. an optional member is unsupported.
        FAIL: The driver violated its contract.
        SKIPPED: The check was not invoked because a prerequisite failed.
        ABORTED: The run was cancelled while or before this check ran.
        FATAL: The run could not continue (no connection, or a harness bug).
    """

    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"
    SKIPPED = "skipped"
    ABORTED = "aborted"
    FATAL = "fatal"

    @property
    def severity(self) -> int:
        """Return the ordering weight used to compute a run's overall verdict.

        SKIPPED has no weight so it never dominates another verdict.
        """
        return _SEVERITY[self]

    @classmethod
    def worst(cls, verdicts: list[Verdict] | tuple[Verdict, ...]) -> Verdict:
        """Return the most severe verdict, or PASS for an empty sequence."""
        worst = cls.PASS
        for verdict in verdicts:
            if verdict.severity > worst.severity:
                worst = verdict
        return worst


_SEVERITY = {
    Verdict.SKIPPED: 0,
    Verdict.PASS: 1,
    Verdict.WARNING: 2,
    Verdict.FAIL: 3,
    Verdict.ABORTED: 4,
    Verdict.FATAL: 5,
}


class RunState(Enum):
    """Lifecycle state of a conformance run.

    Attributes:
        IDLE: Constructed, not yet started.
        CONNECTING: Acquiring the driver handle and connecting the device.
        RUNNING: Executing test phases.
        FINALIZING: Leaving the device in a safe state and releasing the handle.
        COMPLETED: Every scheduled case executed.
        ABORTED: Cancellation was observed before every case executed.
        FATAL: The device could not be connected, or a test case raised a harness error.
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    RUNNING = "running"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FATAL = "fatal"

    @property
    def is_terminal(self) -> bool:
        """Return True for COMPLETED, ABORTED and FATAL."""
        return self in (RunState.COMPLETED, RunState.ABORTED, RunState.FATAL)


@dataclass(frozen=True)
class Timestamp:
    """High-resolution timestamp with nanosecond precision.

    Timestamps are stored as nanoseconds since the Unix epoch (1970-01-01 00:00:00 UTC).

    Attributes:
        unix_ns: Nanoseconds since Unix epoch.

    Example:
        >>> ts = Timestamp.now()
        >>> print(f"Time: {ts.isoformat()}")
    """

    unix_ns: int

    @classmethod
    def now(cls) -> Timestamp:
        """Create a timestamp for the current time."""
        return cls(unix_ns=time.time_ns())

    def to_datetime(self) -> datetime:
        """Convert to a timezone-aware datetime object in UTC."""
        return datetime.fromtimestamp(self.unix_ns / 1_000_000_000, tz=timezone.utc)

    def isoformat(self) -> str:
        """Return the ISO 8601 representation in UTC."""
        return self.to_datetime().isoformat()

    @property
    def unix_seconds(self) -> float:
        """Return the timestamp as seconds since Unix epoch."""
        return self.unix_ns / 1_000_000_000

"""Conformance checker for ASCOM astronomy device drivers.

This package verifies that a driver implements the behavioral contract of its
device interface, whether the driver is an in-process Python object or a
remote device behind an Alpaca REST server.

Key components:
    - Devices: One facade per device category over a transport handle, with
      transport errors translated into a uniform DeviceError taxonomy.
    - Plans: Ordered, dependency-aware test cases grouped in phases.
    - Manager: Runs a plan under a cancellation token and produces a report.
    - Sinks: Receive results as they are produced.
    - Simulator: Simulated devices, usable locally or served over Alpaca.

Example:
    >>> from conformu import CancellationToken, ConformanceManager, LoggingResultSink
    >>> from conformu import load_settings
    >>> settings = load_settings("filterwheel.yaml")
    >>> with ConformanceManager(settings, LoggingResultSink(), CancellationToken()) as m:
    ...     report = m.run_conformance_test()
    >>> print(report.verdict)
"""

__version__ = "0.1.0"

from conformu.cancellation import CancellationToken
from conformu.errors import (
    ConformError,
    DeviceError,
    ErrorKind,
    HarnessError,
    SettingsError,
    StateError,
)
from conformu.manager import ConformanceManager
from conformu.results import RunReport, TestResult
from conformu.settings import ConformSettings, load_settings
from conformu.sinks import (
    FanOutResultSink,
    JsonLinesResultSink,
    LoggingResultSink,
    MemoryResultSink,
    ResultSink,
)
from conformu.types import DeviceCategory, Phase, RunState, TransportKind, Verdict

__all__ = [
    "__version__",
    # Run
    "CancellationToken",
    "ConformanceManager",
    "ConformSettings",
    "load_settings",
    # Results
    "FanOutResultSink",
    "JsonLinesResultSink",
    "LoggingResultSink",
    "MemoryResultSink",
    "ResultSink",
    "RunReport",
    "TestResult",
    # Types
    "DeviceCategory",
    "Phase",
    "RunState",
    "TransportKind",
    "Verdict",
    # Errors
    "ConformError",
    "DeviceError",
    "ErrorKind",
    "HarnessError",
    "SettingsError",
    "StateError",
]

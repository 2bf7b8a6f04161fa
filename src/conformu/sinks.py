"""Result sinks.

A sink receives each TestResult as soon as the manager produces it, so a long
run can be observed live. Sinks are called from the manager's thread.
"""

# pylint: disable=unnecessary-ellipsis  # Ellipsis required for Protocol method stubs

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import IO, Protocol

from conformu.results import TestResult
from conformu.types import Verdict

logger = logging.getLogger(__name__)

_LEVELS = {
    Verdict.PASS: logging.INFO,
    Verdict.SKIPPED: logging.INFO,
    Verdict.WARNING: logging.WARNING,
    Verdict.ABORTED: logging.WARNING,
    Verdict.FAIL: logging.ERROR,
    Verdict.FATAL: logging.CRITICAL,
}


class ResultSink(Protocol):
    """Receives test results as they are produced."""

    def record(self, result: TestResult) -> None:
        """Accept one result."""
        ...


class LoggingResultSink:
    """Writes each result to a logger at a level derived from its verdict.

    Args:
        log: Logger to write to; defaults to this module's logger.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def record(self, result: TestResult) -> None:
        self._log.log(
            _LEVELS[result.verdict],
            "%-8s %s: %s",
            result.verdict.value.upper(),
            result.case_id,
            result.message,
        )
        for detail in result.details:
            self._log.debug("         %s", detail)


class MemoryResultSink:
    """Keeps results in a list."""

    def __init__(self) -> None:
        self.results: list[TestResult] = []

    def record(self, result: TestResult) -> None:
        self.results.append(result)

    @property
    def case_ids(self) -> list[str]:
        return [r.case_id for r in self.results]


class JsonLinesResultSink:
    """Streams results to a file as one JSON object per line.

    Each record is flushed immediately so the file can be tailed while the
    run is in progress. Use as a context manager, or call close().

    Args:
        path: Output file; parent directories are created.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file: IO[str] | None = open(self._path, "w", encoding="utf-8")

    @property
    def path(self) -> Path:
        return self._path

    def record(self, result: TestResult) -> None:
        if self._file is None:
            raise ValueError(f"Result file {self._path} is closed")
        self._file.write(json.dumps(result.to_dict()) + "\n")
        self._file.flush()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> JsonLinesResultSink:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class FanOutResultSink:
    """Forwards every result to several sinks in order."""

    def __init__(self, *sinks: ResultSink) -> None:
        self._sinks = sinks

    def record(self, result: TestResult) -> None:
        for sink in self._sinks:
            sink.record(result)

"""Test results and the run report."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from conformu.errors import ErrorKind
from conformu.types import DeviceCategory, Phase, RunState, Timestamp, TransportKind, Verdict


@dataclass(frozen=True)
class TestResult:
    """Outcome of one test case.

    Attributes:
        case_id: Identifier of the case (``connect`` for the connection step).
        name: Human-readable case description.
        phase: Phase the case belongs to, or None for the connection step.
        verdict: Classification of the outcome.
        message: Summary of what was observed.
        timestamp: When the result was produced.
        error_kind: Classification of the device error behind the verdict, if any.
        details: Additional observations.
    """

    __test__ = False

    case_id: str
    name: str
    phase: Phase | None
    verdict: Verdict
    message: str
    timestamp: Timestamp = field(default_factory=Timestamp.now)
    error_kind: ErrorKind | None = None
    details: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "case_id": self.case_id,
            "name": self.name,
            "phase": self.phase.value if self.phase else None,
            "verdict": self.verdict.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "error_kind": self.error_kind.value if self.error_kind else None,
            "details": list(self.details),
        }


@dataclass(frozen=True)
class RunReport:
    """Report of one conformance run.

    Attributes:
        category: Device category under test.
        transport: Transport used to reach the driver.
        device: Identification of the driver (factory path or endpoint URL).
        state: Terminal state of the run.
        results: Results in the order they were produced.
        scheduled: Number of cases scheduled for the run.
        phases: Phases the run was configured to execute.
        start_time: When the run started.
        end_time: When the run finished.
    """

    category: DeviceCategory
    transport: TransportKind
    device: str
    state: RunState
    results: tuple[TestResult, ...]
    scheduled: int
    phases: tuple[Phase, ...]
    start_time: Timestamp
    end_time: Timestamp

    @property
    def skipped_phases(self) -> tuple[Phase, ...]:
        """Return phases in which every recorded case was skipped."""
        skipped = []
        for phase in self.phases:
            verdicts = [r.verdict for r in self.results if r.phase is phase]
            if verdicts and all(v is Verdict.SKIPPED for v in verdicts):
                skipped.append(phase)
        return tuple(skipped)

    @property
    def verdict(self) -> Verdict:
        """Return the overall verdict.

        The worst verdict observed, ignoring SKIPPED. A phase whose cases were
        all skipped raises the verdict to at least WARNING.
        """
        worst = Verdict.worst([r.verdict for r in self.results])
        if self.skipped_phases and worst.severity < Verdict.WARNING.severity:
            return Verdict.WARNING
        return worst

    @property
    def duration_seconds(self) -> float:
        """Return the run duration in seconds."""
        return (self.end_time.unix_ns - self.start_time.unix_ns) / 1_000_000_000

    def count(self, verdict: Verdict) -> int:
        """Return the number of results with the given verdict."""
        return sum(1 for r in self.results if r.verdict is verdict)

    def by_phase(self, phase: Phase) -> list[TestResult]:
        """Return the results of one phase."""
        return [r for r in self.results if r.phase is phase]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "category": self.category.value,
            "transport": self.transport.value,
            "device": self.device,
            "state": self.state.value,
            "verdict": self.verdict.value,
            "scheduled": self.scheduled,
            "phases": [p.value for p in self.phases],
            "skipped_phases": [p.value for p in self.skipped_phases],
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_seconds": self.duration_seconds,
            "counts": {v.value: self.count(v) for v in Verdict},
            "results": [r.to_dict() for r in self.results],
        }

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize the report to JSON."""
        return json.dumps(self.to_dict(), indent=indent)

    def write_json(self, path: str | Path) -> Path:
        """Write the report as JSON, creating parent directories.

        Returns:
            The path written.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json() + "\n", encoding="utf-8")
        return path

    def summary(self) -> str:
        """Return a human-readable multi-line summary."""
        lines = [
            f"{self.category.value} over {self.transport.value}: {self.device}",
            f"Run {self.state.value}, verdict {self.verdict.value.upper()} "
            f"({len(self.results)} results for {self.scheduled} scheduled cases, "
            f"{self.duration_seconds:.1f}s)",
        ]
        counts = ", ".join(
            f"{self.count(v)} {v.value}" for v in Verdict if self.count(v)
        )
        if counts:
            lines.append(counts)
        for phase in self.skipped_phases:
            lines.append(f"Every case skipped in phase: {phase.display_name}")
        for result in self.results:
            if result.verdict not in (Verdict.PASS, Verdict.SKIPPED):
                lines.append(f"  {result.verdict.value.upper():8} {result.case_id}: {result.message}")
        return "\n".join(lines)

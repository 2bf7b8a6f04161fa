"""Test case and test plan descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Union

from conformu.types import DeviceCategory, Phase, Verdict

if TYPE_CHECKING:
    from conformu.plans.context import CheckContext


@dataclass(frozen=True)
class CheckOutcome:
    """Verdict a check returns when it decides the outcome itself.

    A check that returns a plain string (or None) passes with that message.
    Returning an outcome is only needed for warnings and for failures that
    are not better expressed by raising a DeviceError.
    """

    verdict: Verdict
    message: str = ""
    details: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.verdict not in (Verdict.PASS, Verdict.WARNING, Verdict.FAIL):
            raise ValueError(f"A check cannot return verdict {self.verdict.value}")

    @classmethod
    def passed(cls, message: str = "", *details: str) -> CheckOutcome:
        return cls(Verdict.PASS, message, tuple(details))

    @classmethod
    def warning(cls, message: str, *details: str) -> CheckOutcome:
        return cls(Verdict.WARNING, message, tuple(details))

    @classmethod
    def failed(cls, message: str, *details: str) -> CheckOutcome:
        return cls(Verdict.FAIL, message, tuple(details))


Check = Callable[["CheckContext"], Union[CheckOutcome, str, None]]
"""A check exercises the device through the context's facade."""


@dataclass(frozen=True)
class TestCase:
    """One named check against a device.

    Attributes:
        id: Unique identifier within its plan (e.g. ``filterwheel.position.read``).
        name: Human-readable description.
        phase: Phase the case belongs to.
        check: Callable that performs the check.
        prerequisites: Ids of cases that must not have failed or been skipped.
        timeout: Per-case bound in seconds; None uses the run default.
        optional: True if the members the case exercises are optional in the
            interface, so a driver may report them as not implemented.
    """

    __test__ = False

    id: str
    name: str
    phase: Phase
    check: Check = field(compare=False)
    prerequisites: frozenset[str] = frozenset()
    timeout: float | None = None
    optional: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Test case id must not be empty")
        if self.id in self.prerequisites:
            raise ValueError(f"Test case {self.id} lists itself as a prerequisite")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Test case {self.id} timeout must be > 0")


@dataclass(frozen=True)
class TestPlan:
    """Ordered, dependency-aware set of test cases for one device category.

    Cases execute grouped by phase in fixed phase order; within a phase they
    keep their declaration order. A prerequisite must be scheduled before the
    case that depends on it.

    Raises:
        ValueError: On duplicate ids, unknown prerequisites, or a prerequisite
            scheduled after its dependent.
    """

    __test__ = False

    category: DeviceCategory
    cases: tuple[TestCase, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for case in self.schedule():
            if case.id in seen:
                raise ValueError(f"Duplicate test case id: {case.id}")
            for prerequisite in sorted(case.prerequisites):
                if prerequisite not in seen:
                    if any(c.id == prerequisite for c in self.cases):
                        raise ValueError(
                            f"{case.id}: prerequisite {prerequisite} is scheduled after it"
                        )
                    raise ValueError(f"{case.id}: unknown prerequisite {prerequisite}")
            seen.add(case.id)

    def __len__(self) -> int:
        return len(self.cases)

    def get(self, case_id: str) -> TestCase:
        """Return the case with the given id.

        Raises:
            KeyError: If the plan has no such case.
        """
        for case in self.cases:
            if case.id == case_id:
                return case
        raise KeyError(case_id)

    def schedule(self, phases: Iterable[Phase] | None = None) -> list[TestCase]:
        """Return the cases to execute, in execution order.

        Args:
            phases: Phases to include; None includes every phase.
        """
        selected = set(Phase) if phases is None else set(phases)
        ordered = sorted(
            (c for c in self.cases if c.phase in selected),
            key=lambda c: c.phase.order,
        )
        return ordered

    def to_dict(self) -> dict[str, Any]:
        """Describe the plan without its check callables."""
        return {
            "category": self.category.value,
            "cases": [
                {
                    "id": c.id,
                    "name": c.name,
                    "phase": c.phase.value,
                    "prerequisites": sorted(c.prerequisites),
                    "timeout": c.timeout,
                    "optional": c.optional,
                }
                for c in self.schedule()
            ],
        }

"""SafetyMonitor test plan."""

from __future__ import annotations

from conformu.plans.context import CheckContext
from conformu.plans.model import CheckOutcome, TestCase
from conformu.types import Phase


def check_is_safe(ctx: CheckContext) -> str:
    is_safe = ctx.require_type(ctx.facade.is_safe, bool, "IsSafe")  # type: ignore[attr-defined]
    return "Conditions safe" if is_safe else "Conditions unsafe"


def check_is_safe_stable(ctx: CheckContext) -> CheckOutcome:
    first = ctx.facade.is_safe  # type: ignore[attr-defined]
    ctx.sleep(ctx.settings.run.poll_interval, "IsSafe")
    second = ctx.facade.is_safe  # type: ignore[attr-defined]
    if first != second:
        return CheckOutcome.warning(f"IsSafe changed from {first} to {second} between reads")
    return CheckOutcome.passed(f"IsSafe stable at {first}")


def safety_monitor_cases() -> tuple[TestCase, ...]:
    """Return the SafetyMonitor-specific cases."""
    return (
        TestCase("safetymonitor.is_safe", "IsSafe is a boolean", Phase.PROPERTIES, check_is_safe),
        TestCase(
            "safetymonitor.is_safe.stable",
            "Consecutive IsSafe reads agree",
            Phase.STATE_TRANSITIONS,
            check_is_safe_stable,
            prerequisites=frozenset({"safetymonitor.is_safe"}),
        ),
    )

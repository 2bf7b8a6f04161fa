"""FilterWheel test plan."""

from __future__ import annotations

import logging

from conformu.devices.filterwheel import FilterWheelFacade
from conformu.errors import ErrorKind
from conformu.plans.context import CheckContext
from conformu.plans.model import CheckOutcome, TestCase
from conformu.types import Phase

logger = logging.getLogger(__name__)

MOVING = -1


def _wheel(ctx: CheckContext) -> FilterWheelFacade:
    return ctx.facade  # type: ignore[return-value]


def _slot_count(ctx: CheckContext) -> int:
    # Checks outside the selected phases may not have validated Names.
    names = ctx.require_type(_wheel(ctx).names, list, "Names")
    ctx.require(len(names) > 0, "Names", "returned an empty list")
    return len(names)


def _wait_stopped(ctx: CheckContext) -> tuple[int, float]:
    """Wait until Position stops reading -1; return (position, seconds waited)."""
    wheel = _wheel(ctx)
    reading: list[int] = []

    def arrived() -> bool:
        reading[:] = [ctx.require_type(wheel.position, int, "Position")]
        return reading[0] != MOVING

    waited = ctx.wait_until(arrived, ctx.settings.filter_wheel.move_timeout, "Position")
    return reading[0], waited


def check_focus_offsets(ctx: CheckContext) -> str:
    offsets = ctx.require_type(_wheel(ctx).focus_offsets, list, "FocusOffsets")
    ctx.require(len(offsets) > 0, "FocusOffsets", "returned an empty list")
    for offset in offsets:
        ctx.require_type(offset, int, "FocusOffsets")
    return "Focus offsets: " + ", ".join(str(o) for o in offsets)


def check_names(ctx: CheckContext) -> str:
    names = ctx.require_type(_wheel(ctx).names, list, "Names")
    ctx.require(len(names) > 0, "Names", "returned an empty list")
    for name in names:
        ctx.require_type(name, str, "Names")
        ctx.require(bool(name.strip()), "Names", "contains an empty filter name")
    return "Filter names: " + ", ".join(names)


def check_slot_count(ctx: CheckContext) -> str:
    wheel = _wheel(ctx)
    names = len(ctx.require_type(wheel.names, list, "Names"))
    offsets = len(ctx.require_type(wheel.focus_offsets, list, "FocusOffsets"))
    ctx.require(
        names == offsets,
        "Names",
        f"{names} filter names but {offsets} focus offsets",
    )
    return f"{names} filter slots"


def check_position_read(ctx: CheckContext) -> str:
    count = _slot_count(ctx)
    position, _ = _wait_stopped(ctx)
    ctx.require_range(position, 0, count - 1, "Position")
    return f"Wheel at position {position}"


def check_position_write(ctx: CheckContext) -> CheckOutcome:
    wheel = _wheel(ctx)
    count = _slot_count(ctx)
    _wait_stopped(ctx)
    details = []
    for slot in range(count):
        ctx.check_cancelled("Position")
        wheel.position = slot
        position, waited = _wait_stopped(ctx)
        ctx.require(position == slot, "Position", f"moved to {slot} but reads {position}")
        details.append(f"Reached slot {slot} in {waited:.1f}s")
        logger.debug("Filter wheel reached slot %d in %.2fs", slot, waited)
    return CheckOutcome.passed(f"Moved to all {count} slots", *details)


def check_position_write_invalid(ctx: CheckContext) -> str:
    wheel = _wheel(ctx)
    count = _slot_count(ctx)
    for invalid in (MOVING, count):
        _wait_stopped(ctx)

        def write(value: int = invalid) -> None:
            wheel.position = value

        ctx.expect_error(ErrorKind.INVALID_VALUE, "Position", write)
    return f"Positions -1 and {count} rejected as invalid values"


def check_position_moving(ctx: CheckContext) -> str:
    wheel = _wheel(ctx)
    count = _slot_count(ctx)
    start, _ = _wait_stopped(ctx)
    target = (start + 1) % count
    wheel.position = target
    during = wheel.position
    ctx.require(
        during in (MOVING, target),
        "Position",
        f"reads {during!r} right after moving to {target}; expected -1 or {target}",
    )
    position, waited = _wait_stopped(ctx)
    ctx.require(position == target, "Position", f"moved to {target} but reads {position}")
    if during == target:
        return f"Move {start} -> {target} completed before the first read"
    return f"Position read -1 while moving {start} -> {target} ({waited:.1f}s)"


def filter_wheel_cases() -> tuple[TestCase, ...]:
    """Return the FilterWheel-specific cases."""
    return (
        TestCase(
            "filterwheel.focus_offsets",
            "FocusOffsets is a non-empty list of integers",
            Phase.PROPERTIES,
            check_focus_offsets,
        ),
        TestCase(
            "filterwheel.names",
            "Names is a non-empty list of filter names",
            Phase.PROPERTIES,
            check_names,
        ),
        TestCase(
            "filterwheel.slot_count",
            "Names and FocusOffsets have the same length",
            Phase.PROPERTIES,
            check_slot_count,
            prerequisites=frozenset({"filterwheel.focus_offsets", "filterwheel.names"}),
        ),
        TestCase(
            "filterwheel.position.read",
            "Position reads a valid slot",
            Phase.PROPERTIES,
            check_position_read,
            prerequisites=frozenset({"filterwheel.slot_count"}),
        ),
        TestCase(
            "filterwheel.position.write",
            "Position moves to every slot",
            Phase.PROPERTIES,
            check_position_write,
            prerequisites=frozenset({"filterwheel.position.read"}),
        ),
        TestCase(
            "filterwheel.position.write_invalid",
            "Out-of-range positions are rejected",
            Phase.PROPERTIES,
            check_position_write_invalid,
            prerequisites=frozenset({"filterwheel.slot_count"}),
        ),
        TestCase(
            "filterwheel.position.moving",
            "Position reads -1 or the target while moving",
            Phase.STATE_TRANSITIONS,
            check_position_moving,
            prerequisites=frozenset({"filterwheel.position.write"}),
        ),
    )

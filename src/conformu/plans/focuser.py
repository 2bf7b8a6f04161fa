"""Focuser test plan."""

from __future__ import annotations

import logging

from conformu.devices.focuser import FocuserFacade
from conformu.errors import ErrorKind
from conformu.plans.context import CheckContext
from conformu.plans.model import TestCase
from conformu.types import Phase

logger = logging.getLogger(__name__)

MIN_TEMPERATURE = -50.0
MAX_TEMPERATURE = 80.0


def _focuser(ctx: CheckContext) -> FocuserFacade:
    return ctx.facade  # type: ignore[return-value]


# Each check re-validates the values it computes with; the cases that
# validate them first may be outside the selected phases.


def _absolute(ctx: CheckContext) -> bool:
    return ctx.require_type(_focuser(ctx).absolute, bool, "Absolute")


def _max_step(ctx: CheckContext) -> int:
    max_step = ctx.require_type(_focuser(ctx).max_step, int, "MaxStep")
    ctx.require(max_step > 0, "MaxStep", f"must be > 0, got {max_step}")
    return max_step


def _position(ctx: CheckContext) -> int:
    return ctx.require_type(_focuser(ctx).position, int, "Position")


def _is_moving(ctx: CheckContext) -> bool:
    return ctx.require_type(_focuser(ctx).is_moving, bool, "IsMoving")


def _wait_stopped(ctx: CheckContext) -> float:
    return ctx.wait_until(
        lambda: not _is_moving(ctx), ctx.settings.focuser.move_timeout, "IsMoving"
    )


def _test_step(ctx: CheckContext) -> int:
    """Return the step size used for test moves."""
    increment = ctx.require_type(_focuser(ctx).max_increment, int, "MaxIncrement")
    ctx.require(increment > 0, "MaxIncrement", f"must be > 0, got {increment}")
    return max(1, int(increment * ctx.settings.focuser.move_fraction))


def _move_target(ctx: CheckContext, start: int, step: int) -> int:
    """Return an absolute target ``step`` away from ``start`` within 0..MaxStep."""
    max_step = _max_step(ctx)
    if start + step <= max_step:
        return start + step
    return max(0, start - step)


def _move_and_wait(ctx: CheckContext, target: int) -> float:
    """Move an absolute focuser, wait for it to stop, and verify the position."""
    focuser = _focuser(ctx)
    focuser.move(target)
    waited = _wait_stopped(ctx)
    position = _position(ctx)
    ctx.require(position == target, "Position", f"moved to {target} but reads {position}")
    return waited


# -- Capabilities -------------------------------------------------------------


def check_absolute(ctx: CheckContext) -> str:
    return "Absolute focuser" if _absolute(ctx) else "Relative focuser"


def check_max_step(ctx: CheckContext) -> str:
    return f"MaxStep {_max_step(ctx)}"


def check_max_increment(ctx: CheckContext) -> str:
    increment = ctx.require_type(_focuser(ctx).max_increment, int, "MaxIncrement")
    ctx.require_range(increment, 1, _max_step(ctx), "MaxIncrement")
    return f"MaxIncrement {increment}"


def check_temp_comp_available(ctx: CheckContext) -> str:
    available = ctx.require_type(_focuser(ctx).temp_comp_available, bool, "TempCompAvailable")
    return "Temperature compensation available" if available else "No temperature compensation"


# -- Properties ---------------------------------------------------------------


def check_is_moving(ctx: CheckContext) -> str:
    return f"IsMoving {_is_moving(ctx)}"


def check_position(ctx: CheckContext) -> str:
    focuser = _focuser(ctx)
    if not _absolute(ctx):
        ctx.expect_error(ErrorKind.UNSUPPORTED, "Position", lambda: focuser.position)
        return "Relative focuser reports Position as not implemented"
    position = ctx.require_range(_position(ctx), 0, _max_step(ctx), "Position")
    return f"Position {position}"


def check_step_size(ctx: CheckContext) -> str:
    step_size = ctx.require_type(_focuser(ctx).step_size, (int, float), "StepSize")
    ctx.require(step_size > 0, "StepSize", f"must be > 0, got {step_size}")
    return f"Step size {step_size} microns"


def check_temperature(ctx: CheckContext) -> str:
    temperature = ctx.require_type(_focuser(ctx).temperature, (int, float), "Temperature")
    ctx.require_range(temperature, MIN_TEMPERATURE, MAX_TEMPERATURE, "Temperature")
    return f"Temperature {temperature:.1f} C"


def check_temp_comp_read(ctx: CheckContext) -> str:
    temp_comp = ctx.require_type(_focuser(ctx).temp_comp, bool, "TempComp")
    return f"TempComp {temp_comp}"


def check_temp_comp_write(ctx: CheckContext) -> str:
    focuser = _focuser(ctx)
    available = ctx.require_type(focuser.temp_comp_available, bool, "TempCompAvailable")
    if not available:

        def enable() -> None:
            focuser.temp_comp = True

        ctx.expect_error(ErrorKind.UNSUPPORTED, "TempComp", enable)
        return "Setting TempComp rejected because compensation is unavailable"

    original = ctx.require_type(focuser.temp_comp, bool, "TempComp")
    try:
        focuser.temp_comp = not original
        ctx.require(
            focuser.temp_comp is (not original), "TempComp", f"did not change to {not original}"
        )
    finally:
        focuser.temp_comp = original
    return "TempComp toggled and restored"


# -- Methods ------------------------------------------------------------------


def check_move(ctx: CheckContext) -> str:
    focuser = _focuser(ctx)
    _wait_stopped(ctx)
    step = _test_step(ctx)
    if not _absolute(ctx):
        focuser.move(step)
        waited = _wait_stopped(ctx)
        return f"Relative move of {step} steps took {waited:.1f}s"
    start = _position(ctx)
    target = _move_target(ctx, start, step)
    waited = _move_and_wait(ctx, target)
    return f"Moved {start} -> {target} in {waited:.1f}s"


def check_halt(ctx: CheckContext) -> str:
    focuser = _focuser(ctx)
    _wait_stopped(ctx)
    step = _test_step(ctx)
    if _absolute(ctx):
        start = _position(ctx)
        focuser.move(_move_target(ctx, start, step))
    else:
        focuser.move(step)
    focuser.halt()
    waited = _wait_stopped(ctx)
    return f"Focuser stopped {waited:.1f}s after Halt"


# -- State transitions --------------------------------------------------------


def check_move_is_moving(ctx: CheckContext) -> str:
    focuser = _focuser(ctx)
    _wait_stopped(ctx)
    step = _test_step(ctx)
    if not _absolute(ctx):
        focuser.move(step)
        _wait_stopped(ctx)
        focuser.move(-step)
        _wait_stopped(ctx)
        return "Moved out and back; IsMoving cleared after each move"
    original = _position(ctx)
    target = _move_target(ctx, original, step)
    _move_and_wait(ctx, target)
    _move_and_wait(ctx, original)
    return f"Moved {original} -> {target} -> {original}; IsMoving cleared after each move"


def focuser_cases() -> tuple[TestCase, ...]:
    """Return the Focuser-specific cases."""
    return (
        TestCase("focuser.absolute", "Absolute is a boolean", Phase.CAPABILITIES, check_absolute),
        TestCase("focuser.max_step", "MaxStep is positive", Phase.CAPABILITIES, check_max_step),
        TestCase(
            "focuser.max_increment",
            "MaxIncrement is within 1..MaxStep",
            Phase.CAPABILITIES,
            check_max_increment,
            prerequisites=frozenset({"focuser.max_step"}),
        ),
        TestCase(
            "focuser.temp_comp_available",
            "TempCompAvailable is a boolean",
            Phase.CAPABILITIES,
            check_temp_comp_available,
        ),
        TestCase("focuser.is_moving", "IsMoving is a boolean", Phase.PROPERTIES, check_is_moving),
        TestCase(
            "focuser.position",
            "Position matches the focuser type",
            Phase.PROPERTIES,
            check_position,
            prerequisites=frozenset({"focuser.absolute", "focuser.max_step"}),
        ),
        TestCase(
            "focuser.step_size",
            "StepSize is positive",
            Phase.PROPERTIES,
            check_step_size,
            optional=True,
        ),
        TestCase(
            "focuser.temperature",
            "Temperature is plausible",
            Phase.PROPERTIES,
            check_temperature,
            optional=True,
        ),
        TestCase(
            "focuser.temp_comp.read",
            "TempComp is a boolean",
            Phase.PROPERTIES,
            check_temp_comp_read,
        ),
        TestCase(
            "focuser.temp_comp.write",
            "TempComp can be set when available",
            Phase.PROPERTIES,
            check_temp_comp_write,
            prerequisites=frozenset({"focuser.temp_comp_available", "focuser.temp_comp.read"}),
        ),
        TestCase(
            "focuser.move",
            "Move reaches its target",
            Phase.METHODS,
            check_move,
            prerequisites=frozenset(
                {"focuser.max_increment", "focuser.is_moving", "focuser.position"}
            ),
        ),
        TestCase(
            "focuser.halt",
            "Halt stops a move",
            Phase.METHODS,
            check_halt,
            prerequisites=frozenset({"focuser.move"}),
            optional=True,
        ),
        TestCase(
            "focuser.move.is_moving",
            "IsMoving clears after moves and the position is restored",
            Phase.STATE_TRANSITIONS,
            check_move_is_moving,
            prerequisites=frozenset({"focuser.move"}),
        ),
    )

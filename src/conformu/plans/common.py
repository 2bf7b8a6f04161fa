"""Checks of the common device members shared by every category."""

from __future__ import annotations

from conformu.errors import ErrorKind
from conformu.plans.context import CheckContext
from conformu.plans.model import TestCase
from conformu.types import Phase

UNKNOWN_ACTION = "conformu.unknown-action"


def check_interface_version(ctx: CheckContext) -> str:
    version = ctx.require_type(ctx.facade.interface_version, int, "InterfaceVersion")
    ctx.require(version >= 1, "InterfaceVersion", f"must be >= 1, got {version}")
    return f"Interface version {version}"


def check_connected(ctx: CheckContext) -> str:
    connected = ctx.require_type(ctx.facade.connected, bool, "Connected")
    ctx.require(connected, "Connected", "reads False while the device is connected")
    return "Connected reads True"


def _string_member(attribute: str, member: str):
    def check(ctx: CheckContext) -> str:
        value = ctx.require_type(getattr(ctx.facade, attribute), str, member)
        return f"{member}: {value}"

    check.__name__ = f"check_{attribute}"
    return check


def check_supported_actions(ctx: CheckContext) -> str:
    actions = ctx.require_type(ctx.facade.supported_actions, list, "SupportedActions")
    for action in actions:
        ctx.require_type(action, str, "SupportedActions")
    if not actions:
        return "No supported actions"
    return "Supported actions: " + ", ".join(actions)


def check_unknown_action(ctx: CheckContext) -> str:
    ctx.expect_error(
        ErrorKind.UNSUPPORTED, "Action", lambda: ctx.facade.action(UNKNOWN_ACTION, "")
    )
    return "Unknown action rejected as not implemented"


def check_connection_cycle(ctx: CheckContext) -> str:
    facade = ctx.facade
    facade.connected = False
    ctx.require(facade.connected is False, "Connected", "reads True after disconnecting")
    facade.connected = True
    ctx.require(facade.connected is True, "Connected", "reads False after reconnecting")
    return "Disconnected and reconnected"


def common_cases() -> tuple[TestCase, ...]:
    """Return the common-member cases that run before the category cases."""
    cases = [
        TestCase(
            "common.interface_version",
            "InterfaceVersion is a positive integer",
            Phase.CAPABILITIES,
            check_interface_version,
        ),
        TestCase("common.connected", "Connected reads True", Phase.CAPABILITIES, check_connected),
    ]
    for attribute, member in (
        ("name", "Name"),
        ("description", "Description"),
        ("driver_info", "DriverInfo"),
        ("driver_version", "DriverVersion"),
    ):
        cases.append(
            TestCase(
                f"common.{attribute}",
                f"{member} is a string",
                Phase.CAPABILITIES,
                _string_member(attribute, member),
            )
        )
    cases += [
        TestCase(
            "common.supported_actions",
            "SupportedActions is a list of strings",
            Phase.CAPABILITIES,
            check_supported_actions,
        ),
        TestCase(
            "common.action.unknown",
            "Unknown action is reported as not implemented",
            Phase.METHODS,
            check_unknown_action,
        ),
    ]
    return tuple(cases)


def connection_cases() -> tuple[TestCase, ...]:
    """Return the connection state cases, which run after the category cases."""
    return (
        TestCase(
            "common.connected.cycle",
            "Disconnect and reconnect",
            Phase.STATE_TRANSITIONS,
            check_connection_cycle,
            prerequisites=frozenset({"common.connected"}),
        ),
    )

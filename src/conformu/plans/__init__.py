"""Test plans, one per supported device category.

A plan is the category's own cases framed by the common-member cases::

    plan = get_test_plan(DeviceCategory.FILTER_WHEEL)
    for case in plan.schedule([Phase.CAPABILITIES, Phase.PROPERTIES]):
        print(case.id)
"""

from __future__ import annotations

from typing import Callable

from conformu.plans.common import common_cases, connection_cases
from conformu.plans.context import CheckContext
from conformu.plans.filterwheel import filter_wheel_cases
from conformu.plans.focuser import focuser_cases
from conformu.plans.model import Check, CheckOutcome, TestCase, TestPlan
from conformu.plans.safetymonitor import safety_monitor_cases
from conformu.types import DeviceCategory

_CATEGORY_CASES: dict[DeviceCategory, Callable[[], tuple[TestCase, ...]]] = {
    DeviceCategory.FILTER_WHEEL: filter_wheel_cases,
    DeviceCategory.FOCUSER: focuser_cases,
    DeviceCategory.SAFETY_MONITOR: safety_monitor_cases,
}


def has_test_plan(category: DeviceCategory) -> bool:
    """Return True if a test plan exists for the category."""
    return category in _CATEGORY_CASES


def get_test_plan(category: DeviceCategory) -> TestPlan:
    """Build the test plan for a category.

    Raises:
        KeyError: If the category has no test plan.
    """
    try:
        category_cases = _CATEGORY_CASES[category]
    except KeyError:
        raise KeyError(f"No test plan for {category.value}") from None
    return TestPlan(category, common_cases() + category_cases() + connection_cases())


__all__ = [
    "Check",
    "CheckContext",
    "CheckOutcome",
    "TestCase",
    "TestPlan",
    "get_test_plan",
    "has_test_plan",
]

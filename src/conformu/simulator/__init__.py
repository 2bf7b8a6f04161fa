"""Simulated devices for exercising the harness without hardware."""

from conformu.simulator.devices import (
    FilterWheelSimulator,
    FocuserSimulator,
    SafetyMonitorSimulator,
    SimulatedDevice,
    create_filter_wheel,
    create_focuser,
    create_safety_monitor,
)

__all__ = [
    "FilterWheelSimulator",
    "FocuserSimulator",
    "SafetyMonitorSimulator",
    "SimulatedDevice",
    "create_filter_wheel",
    "create_focuser",
    "create_safety_monitor",
]

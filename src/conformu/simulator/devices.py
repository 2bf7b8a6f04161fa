"""Simulated astronomy devices.

Each simulator implements one device interface with the interface's own
member names, so an instance can be driven directly through the local
transport or served over Alpaca by :mod:`conformu.simulator.server`.

Motion is modelled against the monotonic clock: a move records its start
time and target, and every read computes where the device is now. Nothing
runs in the background.

Errors follow the local transport conventions:
- NotImplementedError: member not implemented
- ValueError: invalid value
- ConnectionError: device not connected
- RuntimeError: operation invalid in the current state

Typical usage in a settings file::

    local:
      driver: conformu.simulator.devices:create_filter_wheel
      options: {move_time: 0.2}
"""

# pylint: disable=invalid-name  # Interface member names are PascalCase

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

from conformu import __version__
from conformu.types import DeviceCategory

logger = logging.getLogger(__name__)

INTERFACE_VERSIONS = {
    DeviceCategory.FILTER_WHEEL: 3,
    DeviceCategory.FOCUSER: 4,
    DeviceCategory.SAFETY_MONITOR: 3,
}

DEFAULT_FILTERS = ("Luminance", "Red", "Green", "Blue", "Ha", "OIII", "SII", "Dark")


class SimulatedDevice:
    """Common device members shared by every simulator.

    Args:
        name: Device name reported by ``Name``.
    """

    category: DeviceCategory

    def __init__(self, name: str) -> None:
        self._name = name
        self._connected = False
        self._lock = threading.RLock()

    # -- Common members ------------------------------------------------------

    @property
    def Connected(self) -> bool:
        return self._connected

    @Connected.setter
    def Connected(self, value: bool) -> None:
        if not isinstance(value, bool):
            raise ValueError(f"Connected must be a boolean, got {value!r}")
        with self._lock:
            if value != self._connected:
                logger.info("%s %s", self._name, "connected" if value else "disconnected")
            self._connected = value

    @property
    def Description(self) -> str:
        return f"Simulated {self.category.value}"

    @property
    def DriverInfo(self) -> str:
        return f"conformu {self.category.value} simulator"

    @property
    def DriverVersion(self) -> str:
        return __version__

    @property
    def InterfaceVersion(self) -> int:
        return INTERFACE_VERSIONS[self.category]

    @property
    def Name(self) -> str:
        return self._name

    @property
    def SupportedActions(self) -> list[str]:
        return []

    def Action(self, Action: str, Parameters: str = "") -> str:
        raise NotImplementedError(f"Action {Action!r} is not implemented")

    def CommandBlind(self, Command: str, Raw: bool = False) -> None:
        raise NotImplementedError("CommandBlind is not implemented")

    def CommandBool(self, Command: str, Raw: bool = False) -> bool:
        raise NotImplementedError("CommandBool is not implemented")

    def CommandString(self, Command: str, Raw: bool = False) -> str:
        raise NotImplementedError("CommandString is not implemented")

    def Dispose(self) -> None:
        self._connected = False

    def _require_connected(self, member: str) -> None:
        if not self._connected:
            raise ConnectionError(f"{member}: {self._name} is not connected")


@dataclass
class _Move:
    start: int
    target: int
    started: float
    duration: float

    def position_at(self, now: float) -> int:
        if self.duration <= 0 or now >= self.started + self.duration:
            return self.target
        fraction = (now - self.started) / self.duration
        return self.start + round((self.target - self.start) * fraction)

    def done_at(self, now: float) -> bool:
        return now >= self.started + self.duration


class FilterWheelSimulator(SimulatedDevice):
    """Simulated filter wheel.

    Args:
        names: Filter names, one per slot.
        focus_offsets: Focus offsets, one per slot; defaults to multiples of 10.
        move_time: Seconds a filter change takes. ``Position`` reads -1 meanwhile.
        name: Device name.
    """

    category = DeviceCategory.FILTER_WHEEL

    def __init__(
        self,
        names: list[str] | tuple[str, ...] = DEFAULT_FILTERS,
        focus_offsets: list[int] | None = None,
        move_time: float = 0.5,
        name: str = "Simulated filter wheel",
    ) -> None:
        super().__init__(name)
        if not names:
            raise ValueError("A filter wheel needs at least one slot")
        self._names = list(names)
        self._offsets = (
            list(focus_offsets) if focus_offsets is not None else [10 * i for i in range(len(names))]
        )
        if len(self._offsets) != len(self._names):
            raise ValueError("names and focus_offsets must have the same length")
        self._move_time = move_time
        self._move = _Move(0, 0, 0.0, 0.0)

    @property
    def FocusOffsets(self) -> list[int]:
        self._require_connected("FocusOffsets")
        return list(self._offsets)

    @property
    def Names(self) -> list[str]:
        self._require_connected("Names")
        return list(self._names)

    @property
    def Position(self) -> int:
        self._require_connected("Position")
        with self._lock:
            if not self._move.done_at(time.monotonic()):
                return -1
            return self._move.target

    @Position.setter
    def Position(self, value: int) -> None:
        self._require_connected("Position")
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Position must be an integer, got {value!r}")
        if not 0 <= value < len(self._names):
            raise ValueError(f"Position {value} outside 0..{len(self._names) - 1}")
        with self._lock:
            now = time.monotonic()
            current = self._move.position_at(now)
            duration = 0.0 if value == current and self._move.done_at(now) else self._move_time
            self._move = _Move(current, value, now, duration)
        logger.debug("Filter wheel moving to %d", value)


class FocuserSimulator(SimulatedDevice):
    """Simulated focuser.

    Args:
        absolute: True for an absolute focuser, False for a relative one.
        max_step: Highest step position.
        max_increment: Largest single move.
        position: Initial position.
        speed: Steps per second.
        step_size: Step size in microns; None makes StepSize unimplemented.
        temperature: Reported temperature; None makes Temperature unimplemented.
        temp_comp_available: Whether temperature compensation can be enabled.
        name: Device name.
    """

    category = DeviceCategory.FOCUSER

    def __init__(
        self,
        absolute: bool = True,
        max_step: int = 50000,
        max_increment: int = 50000,
        position: int = 25000,
        speed: float = 20000.0,
        step_size: float | None = 1.5,
        temperature: float | None = 12.5,
        temp_comp_available: bool = True,
        name: str = "Simulated focuser",
    ) -> None:
        super().__init__(name)
        if not 0 < max_increment <= max_step:
            raise ValueError("max_increment must be within 1..max_step")
        if not 0 <= position <= max_step:
            raise ValueError("position must be within 0..max_step")
        if speed <= 0:
            raise ValueError("speed must be > 0")
        self._absolute = absolute
        self._max_step = max_step
        self._max_increment = max_increment
        self._speed = speed
        self._step_size = step_size
        self._temperature = temperature
        self._temp_comp_available = temp_comp_available
        self._temp_comp = False
        self._move = _Move(position, position, 0.0, 0.0)

    @property
    def Absolute(self) -> bool:
        return self._absolute

    @property
    def IsMoving(self) -> bool:
        self._require_connected("IsMoving")
        with self._lock:
            return not self._move.done_at(time.monotonic())

    @property
    def MaxIncrement(self) -> int:
        return self._max_increment

    @property
    def MaxStep(self) -> int:
        return self._max_step

    @property
    def Position(self) -> int:
        if not self._absolute:
            raise NotImplementedError("Position is not available on a relative focuser")
        self._require_connected("Position")
        with self._lock:
            return self._move.position_at(time.monotonic())

    @property
    def StepSize(self) -> float:
        if self._step_size is None:
            raise NotImplementedError("StepSize is not implemented")
        return self._step_size

    @property
    def TempComp(self) -> bool:
        return self._temp_comp

    @TempComp.setter
    def TempComp(self, value: bool) -> None:
        if not self._temp_comp_available:
            raise NotImplementedError("Temperature compensation is not available")
        if not isinstance(value, bool):
            raise ValueError(f"TempComp must be a boolean, got {value!r}")
        self._temp_comp = value

    @property
    def TempCompAvailable(self) -> bool:
        return self._temp_comp_available

    @property
    def Temperature(self) -> float:
        if self._temperature is None:
            raise NotImplementedError("Temperature is not implemented")
        self._require_connected("Temperature")
        return self._temperature

    def Halt(self) -> None:
        self._require_connected("Halt")
        with self._lock:
            now = time.monotonic()
            stopped = self._move.position_at(now)
            self._move = _Move(stopped, stopped, now, 0.0)
        logger.debug("Focuser halted at %d", stopped)

    def Move(self, Position: int) -> None:
        self._require_connected("Move")
        if isinstance(Position, bool) or not isinstance(Position, int):
            raise ValueError(f"Position must be an integer, got {Position!r}")
        with self._lock:
            now = time.monotonic()
            start = self._move.position_at(now)
            if self._absolute:
                if not 0 <= Position <= self._max_step:
                    raise ValueError(f"Position {Position} outside 0..{self._max_step}")
                target = Position
            else:
                if abs(Position) > self._max_increment:
                    raise ValueError(f"Move of {Position} exceeds MaxIncrement {self._max_increment}")
                target = min(max(start + Position, 0), self._max_step)
            self._move = _Move(start, target, now, abs(target - start) / self._speed)
        logger.debug("Focuser moving %d -> %d", start, target)


class SafetyMonitorSimulator(SimulatedDevice):
    """Simulated safety monitor.

    ``IsSafe`` reads False while disconnected, as the interface requires.

    Args:
        safe: Condition reported while connected.
        name: Device name.
    """

    category = DeviceCategory.SAFETY_MONITOR

    def __init__(self, safe: bool = True, name: str = "Simulated safety monitor") -> None:
        super().__init__(name)
        self.safe = safe

    @property
    def IsSafe(self) -> bool:
        return self._connected and self.safe


def create_filter_wheel(**options: Any) -> FilterWheelSimulator:
    """Factory for the local transport."""
    return FilterWheelSimulator(**options)


def create_focuser(**options: Any) -> FocuserSimulator:
    """Factory for the local transport."""
    return FocuserSimulator(**options)


def create_safety_monitor(**options: Any) -> SafetyMonitorSimulator:
    """Factory for the local transport."""
    return SafetyMonitorSimulator(**options)

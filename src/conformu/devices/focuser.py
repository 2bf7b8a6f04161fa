"""Focuser device facade."""

from __future__ import annotations

from conformu.devices.base import DeviceFacade
from conformu.types import DeviceCategory


class FocuserFacade(DeviceFacade):
    """Focuser interface.

    Absolute focusers move to a step position; relative focusers move by a
    signed step count and report ``position`` as unsupported.
    """

    category = DeviceCategory.FOCUSER

    @property
    def absolute(self) -> bool:
        return self._get("Absolute")

    @property
    def is_moving(self) -> bool:
        return self._get("IsMoving")

    @property
    def max_increment(self) -> int:
        return self._get("MaxIncrement")

    @property
    def max_step(self) -> int:
        return self._get("MaxStep")

    @property
    def position(self) -> int:
        return self._get("Position")

    @property
    def step_size(self) -> float:
        return self._get("StepSize")

    @property
    def temp_comp(self) -> bool:
        return self._get("TempComp")

    @temp_comp.setter
    def temp_comp(self, value: bool) -> None:
        self._set("TempComp", value)

    @property
    def temp_comp_available(self) -> bool:
        return self._get("TempCompAvailable")

    @property
    def temperature(self) -> float:
        return self._get("Temperature")

    def halt(self) -> None:
        """Stop any focuser motion immediately."""
        self._call("Halt")

    def move(self, position: int) -> None:
        """Start a move.

        Args:
            position: Target step for absolute focusers, or a signed step
                offset for relative focusers.
        """
        self._call("Move", Position=position)

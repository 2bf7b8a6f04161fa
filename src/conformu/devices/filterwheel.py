"""FilterWheel device facade."""

from __future__ import annotations

from conformu.devices.base import DeviceFacade
from conformu.types import DeviceCategory


class FilterWheelFacade(DeviceFacade):
    """Filter wheel interface.

    ``position`` reads -1 while the wheel is moving. Writing it starts a move
    and returns without waiting for the wheel to arrive.
    """

    category = DeviceCategory.FILTER_WHEEL

    @property
    def focus_offsets(self) -> list[int]:
        return self._get("FocusOffsets")

    @property
    def names(self) -> list[str]:
        return self._get("Names")

    @property
    def position(self) -> int:
        return self._get("Position")

    @position.setter
    def position(self, value: int) -> None:
        self._set("Position", value)

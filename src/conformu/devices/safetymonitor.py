"""SafetyMonitor device facade."""

from __future__ import annotations

from conformu.devices.base import DeviceFacade
from conformu.types import DeviceCategory


class SafetyMonitorFacade(DeviceFacade):
    category = DeviceCategory.SAFETY_MONITOR

    @property
    def is_safe(self) -> bool:
        return self._get("IsSafe")

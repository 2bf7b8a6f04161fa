"""Device facades: one uniform calling surface per device category."""

from conformu.devices.base import DeviceFacade
from conformu.devices.factory import create_facade, create_handle, is_supported, register_facade
from conformu.devices.filterwheel import FilterWheelFacade
from conformu.devices.focuser import FocuserFacade
from conformu.devices.safetymonitor import SafetyMonitorFacade

__all__ = [
    "DeviceFacade",
    "FilterWheelFacade",
    "FocuserFacade",
    "SafetyMonitorFacade",
    "create_facade",
    "create_handle",
    "is_supported",
    "register_facade",
]

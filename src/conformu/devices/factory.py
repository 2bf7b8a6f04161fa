"""Facade registry and driver handle construction.

Facades are selected by ``(DeviceCategory, TransportKind)``. Each transport
contributes its own error translator, so the same facade class is registered
once per transport it supports::

    register_facade(DeviceCategory.FILTER_WHEEL, FilterWheelFacade)

Supporting a new category means writing one facade class and registering it.
"""

from __future__ import annotations

import logging

from conformu.devices.base import DeviceFacade
from conformu.devices.filterwheel import FilterWheelFacade
from conformu.devices.focuser import FocuserFacade
from conformu.devices.safetymonitor import SafetyMonitorFacade
from conformu.settings import ConformSettings
from conformu.transport import alpaca, local
from conformu.transport.handle import DriverHandle, ErrorTranslator
from conformu.types import DeviceCategory, TransportKind

logger = logging.getLogger(__name__)

TRANSLATORS: dict[TransportKind, ErrorTranslator] = {
    TransportKind.LOCAL_INTEROP: local.translate_error,
    TransportKind.NETWORK_PROTOCOL: alpaca.translate_error,
}

_registry: dict[tuple[DeviceCategory, TransportKind], type[DeviceFacade]] = {}


def register_facade(
    category: DeviceCategory,
    facade_class: type[DeviceFacade],
    transports: tuple[TransportKind, ...] = tuple(TransportKind),
) -> None:
    """Register a facade class for a category.

    Args:
        category: Device category the facade implements.
        facade_class: The facade class.
        transports: Transports the facade is registered for (default: all).
    """
    for transport in transports:
        _registry[(category, transport)] = facade_class
        logger.debug(
            "Registered %s for %s over %s", facade_class.__name__, category.value, transport.value
        )


def is_supported(category: DeviceCategory, transport: TransportKind) -> bool:
    """Return True if a facade is registered for the category and transport."""
    return (category, transport) in _registry


def create_facade(
    category: DeviceCategory, transport: TransportKind, handle: DriverHandle
) -> DeviceFacade:
    """Create the facade for a category over an existing handle.

    Raises:
        KeyError: If no facade is registered for the combination.
    """
    try:
        facade_class = _registry[(category, transport)]
    except KeyError:
        raise KeyError(f"No facade registered for {category.value} over {transport.value}") from None
    return facade_class(handle, TRANSLATORS[transport])


def create_handle(settings: ConformSettings) -> DriverHandle:
    """Create the driver handle for the configured transport.

    For the local transport this imports and calls the driver factory; for
    the network transport it creates an HTTP client. No device traffic
    happens here.

    Raises:
        Exception: Whatever the driver factory or the client construction raises.
    """
    if settings.device.transport is TransportKind.LOCAL_INTEROP:
        return local.LocalDriverHandle.from_settings(settings.local)
    return alpaca.AlpacaDriverHandle(settings.alpaca, settings.device.category)


register_facade(DeviceCategory.FILTER_WHEEL, FilterWheelFacade)
register_facade(DeviceCategory.FOCUSER, FocuserFacade)
register_facade(DeviceCategory.SAFETY_MONITOR, SafetyMonitorFacade)

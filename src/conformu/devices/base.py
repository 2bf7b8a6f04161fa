"""Common device facade.

Every device category shares the ASCOM common device members (Connected,
Name, Description, Action, ...). :class:`DeviceFacade` implements them once
and provides the forwarding helpers that category facades build on.

Facades are pure conduits: each member is forwarded to the driver handle on
every access, with no caching, coalescing, retry or support pre-check. The
only thing a facade adds is error translation at its boundary, so that any
transport exception reaches the caller as a :class:`DeviceError` naming the
member that failed.
"""

from __future__ import annotations

import logging
from typing import Any

from conformu.errors import DeviceError, ErrorKind
from conformu.transport.handle import DriverHandle, ErrorTranslator
from conformu.types import DeviceCategory

logger = logging.getLogger(__name__)


class DeviceFacade:
    """Uniform calling surface over one driver handle.

    Args:
        handle: The transport-specific driver handle.
        translate: The transport's error translator.
    """

    category: DeviceCategory

    def __init__(self, handle: DriverHandle, translate: ErrorTranslator) -> None:
        self._handle = handle
        self._translate = translate

    @property
    def handle(self) -> DriverHandle:
        """Return the underlying driver handle."""
        return self._handle

    # -- Forwarding helpers --------------------------------------------------

    def _get(self, member: str) -> Any:
        logger.debug("GET %s", member)
        try:
            return self._handle.get_property(member)
        except DeviceError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            raise self._translate(member, exc) from exc

    def _set(self, member: str, value: Any) -> None:
        logger.debug("SET %s = %r", member, value)
        try:
            self._handle.set_property(member, value)
        except DeviceError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            raise self._translate(member, exc) from exc

    def _call(self, member: str, **parameters: Any) -> Any:
        logger.debug("CALL %s%r", member, tuple(parameters.values()))
        try:
            return self._handle.invoke(member, **parameters)
        except DeviceError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            raise self._translate(member, exc) from exc

    # -- Common device members -----------------------------------------------

    @property
    def connected(self) -> bool:
        return self._get("Connected")

    @connected.setter
    def connected(self, value: bool) -> None:
        self._set("Connected", value)

    @property
    def description(self) -> str:
        return self._get("Description")

    @property
    def driver_info(self) -> str:
        return self._get("DriverInfo")

    @property
    def driver_version(self) -> str:
        return self._get("DriverVersion")

    @property
    def interface_version(self) -> int:
        return self._get("InterfaceVersion")

    @property
    def name(self) -> str:
        return self._get("Name")

    @property
    def supported_actions(self) -> list[str]:
        return self._get("SupportedActions")

    def action(self, action_name: str, action_parameters: str = "") -> str:
        return self._call("Action", Action=action_name, Parameters=action_parameters)

    def command_blind(self, command: str, raw: bool = False) -> None:
        self._call("CommandBlind", Command=command, Raw=raw)

    def command_bool(self, command: str, raw: bool = False) -> bool:
        return self._call("CommandBool", Command=command, Raw=raw)

    def command_string(self, command: str, raw: bool = False) -> str:
        return self._call("CommandString", Command=command, Raw=raw)

    # -- Lifecycle -----------------------------------------------------------

    def connect(self) -> None:
        """Connect the device and confirm the driver reports it connected.

        Raises:
            DeviceError: If the driver fails, or reads back Connected as False.
        """
        self.connected = True
        if self.connected is not True:
            raise DeviceError(
                ErrorKind.NOT_CONNECTED, "Connected", "driver reports Connected False after connect"
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._handle.description!r})"

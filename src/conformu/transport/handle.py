"""Driver handle protocol definition.

This module defines the :class:`DriverHandle` protocol, which specifies the
interface that every transport implementation must provide. A handle owns the
live connection to one device instance; device facades forward interface
members to it by their interface names (``"Position"``, ``"Move"``, ...).

Handles raise their own transport-native exceptions. Translating those into
:class:`conformu.errors.DeviceError` is the job of the facade, using the
transport's ``translate_error`` function.

Implementations include:
- :class:`conformu.transport.local.LocalDriverHandle`: in-process driver objects
- :class:`conformu.transport.alpaca.AlpacaDriverHandle`: Alpaca REST devices
"""

# pylint: disable=unnecessary-ellipsis  # Ellipsis required for Protocol method stubs

from __future__ import annotations

from typing import Any, Callable, Protocol

from conformu.errors import DeviceError


class DriverHandle(Protocol):
    """Protocol for a transport-specific connection to one device.

    This is a structural subtyping protocol. Any class that implements these
    members with the correct signatures is a valid handle, which makes
    in-memory stubs trivial to write for tests.

    Example:
        >>> class StubHandle:
        ...     description = "stub"
        ...     def get_property(self, member: str) -> Any:
        ...         return {"Position": 0}[member]
        ...     def set_property(self, member: str, value: Any) -> None:
        ...         pass
        ...     def invoke(self, member: str, **parameters: Any) -> Any:
        ...         return None
        ...     def close(self) -> None:
        ...         pass
    """

    @property
    def description(self) -> str:
        """Human-readable identification of the connection target."""
        ...

    def get_property(self, member: str) -> Any:
        """Read an interface property.

        Args:
            member: Interface member name (e.g. ``"Position"``).

        Returns:
            The value reported by the driver.
        """
        ...

    def set_property(self, member: str, value: Any) -> None:
        """Write an interface property.

        Args:
            member: Interface member name.
            value: Value to write.
        """
        ...

    def invoke(self, member: str, **parameters: Any) -> Any:
        """Invoke an interface method.

        Args:
            member: Interface method name (e.g. ``"Move"``).
            **parameters: Method parameters by interface parameter name, in
                declaration order.

        Returns:
            The method's return value, or None.
        """
        ...

    def close(self) -> None:
        """Release the connection and any resources held by the handle."""
        ...


ErrorTranslator = Callable[[str, Exception], DeviceError]
"""Converts a transport-native exception raised for a member into a DeviceError."""

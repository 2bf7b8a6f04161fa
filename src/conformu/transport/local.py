"""In-process (local interop) driver transport.

A local driver is any Python object exposing the interface members of its
device category as attributes: properties are read and written with
``getattr``/``setattr`` and methods are called positionally. The object is
created by a factory named in settings as ``"module:function"`` (a class
works too, since classes are callable).

Drivers signal errors with ordinary Python exceptions. translate_error()
maps them onto the uniform error taxonomy:

    NotImplementedError, AttributeError -> UNSUPPORTED
    ValueError                          -> INVALID_VALUE
    TimeoutError                        -> TIMEOUT
    ConnectionError                     -> NOT_CONNECTED
    OSError                             -> TRANSPORT_FAILURE
    RuntimeError                        -> INVALID_OPERATION
    anything else                       -> DRIVER_ERROR
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable

from conformu.errors import DeviceError, ErrorKind
from conformu.settings import LocalSettings

logger = logging.getLogger(__name__)


def resolve_factory(target: str) -> Callable[..., Any]:
    """Import the driver factory named by ``target``.

    Args:
        target: ``"package.module:attribute"``; the attribute may be dotted
            (``"module:Class.create"``).

    Returns:
        The callable factory.

    Raises:
        ValueError: If ``target`` is not in ``module:attribute`` format.
        ImportError: If the module cannot be imported.
        AttributeError: If the attribute cannot be found.
        TypeError: If the attribute is not callable.
    """
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"Driver '{target}' must be given as 'module:attribute'")

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ImportError(f"Cannot import driver module '{module_name}': {exc}") from exc

    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise AttributeError(f"Driver '{target}' not found: no attribute '{part}'") from exc

    if not callable(obj):
        raise TypeError(f"Driver '{target}' is not callable")
    return obj


class LocalDriverHandle:
    """Handle wrapping an in-process driver object.

    Args:
        driver: The driver object.
        description: Identification used in logs and reports.
    """

    def __init__(self, driver: Any, description: str = "") -> None:
        self._driver = driver
        self._description = description or type(driver).__name__
        self._closed = False

    @classmethod
    def from_settings(cls, settings: LocalSettings) -> LocalDriverHandle:
        """Create the driver with its configured factory and wrap it.

        Raises:
            Exception: Whatever the factory import or the factory itself raises.
        """
        factory = resolve_factory(settings.driver)
        logger.info("Creating local driver %s", settings.driver)
        return cls(factory(**settings.options), description=settings.driver)

    @property
    def description(self) -> str:
        """Return the driver factory path."""
        return self._description

    @property
    def driver(self) -> Any:
        """Return the wrapped driver object."""
        return self._driver

    def get_property(self, member: str) -> Any:
        return getattr(self._driver, member)

    def set_property(self, member: str, value: Any) -> None:
        setattr(self._driver, member, value)

    def invoke(self, member: str, **parameters: Any) -> Any:
        method = getattr(self._driver, member)
        return method(*parameters.values())

    def close(self) -> None:
        """Dispose the driver if it supports it. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        for name in ("Dispose", "dispose", "close"):
            dispose = getattr(self._driver, name, None)
            if callable(dispose):
                dispose()
                break
        logger.debug("Released local driver %s", self._description)


def translate_error(member: str, exc: Exception) -> DeviceError:
    """Translate an exception raised by a local driver into a DeviceError.

    Args:
        member: Interface member being accessed.
        exc: The exception the driver raised.

    Returns:
        The classified device error.
    """
    if isinstance(exc, DeviceError):
        return exc
    # Order matters: NotImplementedError is a RuntimeError, TimeoutError and
    # ConnectionError are OSErrors.
    if isinstance(exc, (NotImplementedError, AttributeError)):
        kind = ErrorKind.UNSUPPORTED
    elif isinstance(exc, ValueError):
        kind = ErrorKind.INVALID_VALUE
    elif isinstance(exc, TimeoutError):
        kind = ErrorKind.TIMEOUT
    elif isinstance(exc, ConnectionError):
        kind = ErrorKind.NOT_CONNECTED
    elif isinstance(exc, OSError):
        kind = ErrorKind.TRANSPORT_FAILURE
    elif isinstance(exc, RuntimeError):
        kind = ErrorKind.INVALID_OPERATION
    else:
        kind = ErrorKind.DRIVER_ERROR
    return DeviceError(kind, member, f"{type(exc).__name__}: {exc}")

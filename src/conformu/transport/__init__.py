"""Driver transports for conformu.

Two transports reach a driver instance:

- :class:`LocalDriverHandle`: an in-process Python driver object created by a
  ``"module:function"`` factory
- :class:`AlpacaDriverHandle`: a remote device behind an Alpaca REST server

Both implement the :class:`DriverHandle` protocol and raise transport-native
exceptions. Each transport module provides a ``translate_error`` function that
device facades use to turn those exceptions into :class:`DeviceError`.
"""

from conformu.transport.alpaca import AlpacaDriverHandle, AlpacaError, AlpacaProtocolError
from conformu.transport.handle import DriverHandle, ErrorTranslator
from conformu.transport.local import LocalDriverHandle, resolve_factory

__all__ = [
    "AlpacaDriverHandle",
    "AlpacaError",
    "AlpacaProtocolError",
    "DriverHandle",
    "ErrorTranslator",
    "LocalDriverHandle",
    "resolve_factory",
]

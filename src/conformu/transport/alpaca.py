"""Alpaca REST transport.

This module provides :class:`AlpacaDriverHandle`, which reaches a device
through the ASCOM Alpaca device API over HTTP using httpx. Every interface
member maps to one endpoint::

    GET  /api/v1/{device_type}/{device_number}/{member}   (property read)
    PUT  /api/v1/{device_type}/{device_number}/{member}   (property write, method)

Requests carry ``ClientID`` and ``ClientTransactionID``; GET requests send
them as query parameters, PUT requests as form fields next to the member's
own parameters. Responses are JSON objects::

    {"Value": 3, "ErrorNumber": 0, "ErrorMessage": "",
     "ClientTransactionID": 12, "ServerTransactionID": 845}

A non-zero ``ErrorNumber`` raises :class:`AlpacaError`; anything that is not a
well-formed Alpaca response raises :class:`AlpacaProtocolError`. httpx
exceptions propagate unchanged. translate_error() maps all of these onto the
uniform error taxonomy.

Typical usage::

    from conformu.settings import AlpacaSettings
    from conformu.types import DeviceCategory

    handle = AlpacaDriverHandle(AlpacaSettings(host="192.168.1.20"), DeviceCategory.FILTER_WHEEL)
    handle.set_property("Connected", True)
    position = handle.get_property("Position")
    handle.close()
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any

import httpx

from conformu.errors import ConformError, DeviceError, ErrorKind
from conformu.settings import AlpacaSettings
from conformu.types import DeviceCategory

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# Alpaca error numbers
NOT_IMPLEMENTED = 0x400
INVALID_VALUE = 0x401
VALUE_NOT_SET = 0x402
NOT_CONNECTED = 0x407
INVALID_WHILE_PARKED = 0x408
INVALID_WHILE_SLAVED = 0x409
INVALID_OPERATION = 0x40B
ACTION_NOT_IMPLEMENTED = 0x40C
UNSPECIFIED_ERROR = 0x4FF
DRIVER_ERROR_BASE = 0x500
DRIVER_ERROR_MAX = 0xFFF

_ERROR_KINDS: dict[int, ErrorKind] = {
    NOT_IMPLEMENTED: ErrorKind.UNSUPPORTED,
    ACTION_NOT_IMPLEMENTED: ErrorKind.UNSUPPORTED,
    INVALID_VALUE: ErrorKind.INVALID_VALUE,
    VALUE_NOT_SET: ErrorKind.INVALID_OPERATION,
    NOT_CONNECTED: ErrorKind.NOT_CONNECTED,
    INVALID_WHILE_PARKED: ErrorKind.INVALID_OPERATION,
    INVALID_WHILE_SLAVED: ErrorKind.INVALID_OPERATION,
    INVALID_OPERATION: ErrorKind.INVALID_OPERATION,
}


class AlpacaError(ConformError):
    """Raised when an Alpaca response carries a non-zero ErrorNumber.

    Attributes:
        error_number: Alpaca error number (e.g. 0x400 for not implemented).
        error_message: Message supplied by the device.
    """

    def __init__(self, error_number: int, error_message: str) -> None:
        self.error_number = error_number
        self.error_message = error_message
        super().__init__(f"Alpaca error 0x{error_number:X}: {error_message}")


class AlpacaProtocolError(ConformError):
    """Raised when a response is not a well-formed Alpaca response."""


def format_parameter(value: Any) -> str:
    """Format a parameter value for an Alpaca form or query field.

    Booleans are sent as ``True``/``False``; sequences are comma-joined.
    """
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (list, tuple)):
        return ",".join(format_parameter(v) for v in value)
    return str(value)


class AlpacaDriverHandle:
    """Handle for one device exposed by an Alpaca server.

    Args:
        settings: Alpaca connection settings.
        category: Device category, which selects the URL device type.
        client: Optional pre-built httpx client. When omitted, a client is
            created from ``settings`` and closed by close(). A supplied client
            must have its base URL set to the Alpaca server.
    """

    def __init__(
        self,
        settings: AlpacaSettings,
        category: DeviceCategory,
        client: httpx.Client | None = None,
    ) -> None:
        self._settings = settings
        self._category = category
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=settings.base_url,
            timeout=settings.timeout,
        )
        self._path = f"{API_PREFIX}/{category.url_segment}/{settings.device_number}"
        self._transactions = itertools.count(1)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def description(self) -> str:
        """Return the device endpoint URL."""
        return str(self._client.base_url).rstrip("/") + self._path

    def get_property(self, member: str) -> Any:
        response = self._client.get(
            self._url(member),
            params=self._client_fields(),
        )
        payload = self._decode(member, response)
        if "Value" not in payload:
            raise AlpacaProtocolError(f"{member}: response has no Value field")
        return payload["Value"]

    def set_property(self, member: str, value: Any) -> None:
        self._put(member, {member: value})

    def invoke(self, member: str, **parameters: Any) -> Any:
        return self._put(member, parameters).get("Value")

    def close(self) -> None:
        """Close the HTTP client if this handle created it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_client:
            self._client.close()
        logger.debug("Closed Alpaca handle %s", self._path)

    # -- Private helpers -----------------------------------------------------

    def _url(self, member: str) -> str:
        return f"{self._path}/{member.lower()}"

    def _next_transaction_id(self) -> int:
        with self._lock:
            return next(self._transactions)

    def _client_fields(self) -> dict[str, str]:
        return {
            "ClientID": str(self._settings.client_id),
            "ClientTransactionID": str(self._next_transaction_id()),
        }

    def _put(self, member: str, parameters: dict[str, Any]) -> dict[str, Any]:
        form = {name: format_parameter(value) for name, value in parameters.items()}
        form.update(self._client_fields())
        response = self._client.put(self._url(member), data=form)
        return self._decode(member, response)

    @staticmethod
    def _decode(member: str, response: httpx.Response) -> dict[str, Any]:
        """Validate an Alpaca response and return its JSON body.

        Raises:
            AlpacaProtocolError: On HTTP error status or a malformed body.
            AlpacaError: If the device reports an error.
        """
        if response.status_code >= 400:
            raise AlpacaProtocolError(
                f"{member}: HTTP {response.status_code} {response.text.strip()[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise AlpacaProtocolError(f"{member}: response is not JSON") from exc
        if not isinstance(payload, dict):
            raise AlpacaProtocolError(f"{member}: response is not a JSON object")

        error_number = payload.get("ErrorNumber")
        if not isinstance(error_number, int) or isinstance(error_number, bool):
            raise AlpacaProtocolError(f"{member}: response has no integer ErrorNumber")
        if error_number != 0:
            raise AlpacaError(error_number, str(payload.get("ErrorMessage", "")))
        return payload


def translate_error(member: str, exc: Exception) -> DeviceError:
    """Translate an exception raised by the Alpaca transport into a DeviceError.

    Args:
        member: Interface member being accessed.
        exc: The exception raised by the handle or by httpx.

    Returns:
        The classified device error.
    """
    if isinstance(exc, DeviceError):
        return exc
    if isinstance(exc, AlpacaError):
        kind = _ERROR_KINDS.get(exc.error_number, ErrorKind.DRIVER_ERROR)
        return DeviceError(kind, member, str(exc))
    if isinstance(exc, httpx.TimeoutException):
        return DeviceError(ErrorKind.TIMEOUT, member, f"{type(exc).__name__}: {exc}")
    if isinstance(exc, (httpx.HTTPError, AlpacaProtocolError, OSError)):
        return DeviceError(ErrorKind.TRANSPORT_FAILURE, member, f"{type(exc).__name__}: {exc}")
    return DeviceError(ErrorKind.DRIVER_ERROR, member, f"{type(exc).__name__}: {exc}")

"""FastAPI Alpaca server for the simulated devices.

Serves any set of :class:`SimulatedDevice` instances over the Alpaca device
API, plus the Alpaca management API::

    GET  /api/v1/{device_type}/{device_number}/{member}
    PUT  /api/v1/{device_type}/{device_number}/{member}
    GET  /management/apiversions
    GET  /management/v1/description
    GET  /management/v1/configureddevices

Simulator exceptions become Alpaca error numbers in the response body; an
unknown device is an HTTP 400.
"""

from __future__ import annotations

import inspect
import itertools
import logging
import threading
from typing import Any, Callable, Mapping
from urllib.parse import parse_qs

import uvicorn
from fastapi import FastAPI, HTTPException, Request

from conformu import __version__
from conformu.simulator.devices import (
    FilterWheelSimulator,
    FocuserSimulator,
    SafetyMonitorSimulator,
    SimulatedDevice,
)
from conformu.simulator.models import (
    ApiVersionsResponse,
    ConfiguredDevice,
    ConfiguredDevicesResponse,
    DescriptionResponse,
    ServerDescription,
    ValueResponse,
)
from conformu.transport.alpaca import (
    DRIVER_ERROR_BASE,
    INVALID_OPERATION,
    INVALID_VALUE,
    NOT_CONNECTED,
    NOT_IMPLEMENTED,
)
from conformu.types import DeviceCategory

logger = logging.getLogger(__name__)

DeviceKey = tuple[DeviceCategory, int]


def _parse_bool(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered not in ("true", "false"):
        raise ValueError(f"{text!r} is not a boolean")
    return lowered == "true"


def _parse_int(text: str) -> int:
    return int(text.strip())


_PARAMETER_PARSERS: dict[str, Callable[[str], Any]] = {
    "connected": _parse_bool,
    "raw": _parse_bool,
    "tempcomp": _parse_bool,
    "position": _parse_int,
}


def error_number(exc: Exception) -> int:
    """Return the Alpaca error number for a simulator exception."""
    # NotImplementedError is a RuntimeError, ConnectionError an OSError.
    if isinstance(exc, NotImplementedError):
        return NOT_IMPLEMENTED
    if isinstance(exc, ValueError):
        return INVALID_VALUE
    if isinstance(exc, ConnectionError):
        return NOT_CONNECTED
    if isinstance(exc, RuntimeError):
        return INVALID_OPERATION
    return DRIVER_ERROR_BASE


def default_devices(move_time: float = 0.5) -> dict[DeviceKey, SimulatedDevice]:
    """Return one simulator of each supported category as device number 0."""
    return {
        (DeviceCategory.FILTER_WHEEL, 0): FilterWheelSimulator(move_time=move_time),
        (DeviceCategory.FOCUSER, 0): FocuserSimulator(),
        (DeviceCategory.SAFETY_MONITOR, 0): SafetyMonitorSimulator(),
    }


def _members(device: SimulatedDevice) -> dict[str, str]:
    """Map lower-cased member names to the device's attribute names."""
    return {
        name.lower(): name
        for name in dir(type(device))
        if name[:1].isupper() and not name.startswith("_")
    }


def _is_property(device: SimulatedDevice, name: str) -> bool:
    return isinstance(inspect.getattr_static(type(device), name), property)


def _parse_parameter(name: str, text: str) -> Any:
    parser = _PARAMETER_PARSERS.get(name.lower(), str)
    return parser(text)


def _transaction_id(fields: Mapping[str, str]) -> int:
    """Return the ClientTransactionID, tolerating a missing or bad value."""
    for key, value in fields.items():
        if key.lower() == "clienttransactionid":
            try:
                return int(value)
            except ValueError:
                return 0
    return 0


def create_app(devices: Mapping[DeviceKey, SimulatedDevice] | None = None) -> FastAPI:
    """Create the Alpaca server application.

    Args:
        devices: Devices to serve keyed by (category, device number);
            defaults to :func:`default_devices`.

    Returns:
        The FastAPI application.
    """
    registry = dict(devices) if devices is not None else default_devices()
    members = {key: _members(device) for key, device in registry.items()}
    transactions = itertools.count(1)
    transaction_lock = threading.Lock()

    app = FastAPI(
        title="conformu Alpaca simulator",
        description="Simulated ASCOM Alpaca devices for driver conformance testing",
        version=__version__,
    )

    def next_server_transaction() -> int:
        with transaction_lock:
            return next(transactions)

    def lookup(device_type: str, device_number: int) -> tuple[SimulatedDevice, dict[str, str]]:
        for key, device in registry.items():
            category, number = key
            if category.url_segment == device_type.lower() and number == device_number:
                return device, members[key]
        raise HTTPException(
            status_code=400, detail=f"No {device_type} device number {device_number}"
        )

    def respond(client_transaction: int, operation: Callable[[], Any]) -> ValueResponse:
        response = ValueResponse(
            ClientTransactionID=client_transaction,
            ServerTransactionID=next_server_transaction(),
        )
        try:
            response.Value = operation()
        except Exception as exc:  # pylint: disable=broad-except
            response.ErrorNumber = error_number(exc)
            response.ErrorMessage = str(exc)
            logger.debug("Alpaca error 0x%X: %s", response.ErrorNumber, exc)
        return response

    # -------------------------------------------------------------------------
    # Device API
    # -------------------------------------------------------------------------

    @app.get("/api/v1/{device_type}/{device_number}/{member}", response_model=ValueResponse)
    async def get_member(
        device_type: str, device_number: int, member: str, request: Request
    ) -> ValueResponse:
        """Read a device property."""
        device, names = lookup(device_type, device_number)
        name = names.get(member.lower())
        if name is not None and not _is_property(device, name):
            raise HTTPException(status_code=400, detail=f"{name} is a method; use PUT")

        def read() -> Any:
            if name is None:
                raise NotImplementedError(f"{member} is not implemented")
            return getattr(device, name)

        return respond(_transaction_id(request.query_params), read)

    @app.put("/api/v1/{device_type}/{device_number}/{member}", response_model=ValueResponse)
    async def put_member(
        device_type: str, device_number: int, member: str, request: Request
    ) -> ValueResponse:
        """Write a device property or invoke a device method."""
        device, names = lookup(device_type, device_number)
        try:
            body = (await request.body()).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise HTTPException(status_code=400, detail="Request body is not UTF-8") from exc
        form = {
            key.lower(): values[-1]
            for key, values in parse_qs(body, keep_blank_values=True).items()
        }
        name = names.get(member.lower())

        def write() -> Any:
            if name is None:
                raise NotImplementedError(f"{member} is not implemented")
            if _is_property(device, name):
                if name.lower() not in form:
                    raise ValueError(f"Missing parameter {name}")
                setattr(device, name, _parse_parameter(name, form[name.lower()]))
                return None
            method = getattr(device, name)
            arguments = []
            for parameter in inspect.signature(method).parameters.values():
                text = form.get(parameter.name.lower())
                if text is None:
                    if parameter.default is inspect.Parameter.empty:
                        raise ValueError(f"Missing parameter {parameter.name}")
                    arguments.append(parameter.default)
                else:
                    arguments.append(_parse_parameter(parameter.name, text))
            return method(*arguments)

        return respond(_transaction_id(form), write)

    # -------------------------------------------------------------------------
    # Management API
    # -------------------------------------------------------------------------

    @app.get("/management/apiversions", response_model=ApiVersionsResponse)
    async def get_api_versions(request: Request) -> ApiVersionsResponse:
        """List supported Alpaca API versions."""
        return ApiVersionsResponse(
            Value=[1],
            ClientTransactionID=_transaction_id(request.query_params),
            ServerTransactionID=next_server_transaction(),
        )

    @app.get("/management/v1/description", response_model=DescriptionResponse)
    async def get_description(request: Request) -> DescriptionResponse:
        """Describe the server."""
        return DescriptionResponse(
            Value=ServerDescription(
                ServerName="conformu simulator",
                Manufacturer="conformu",
                ManufacturerVersion=__version__,
                Location="localhost",
            ),
            ClientTransactionID=_transaction_id(request.query_params),
            ServerTransactionID=next_server_transaction(),
        )

    @app.get("/management/v1/configureddevices", response_model=ConfiguredDevicesResponse)
    async def get_configured_devices(request: Request) -> ConfiguredDevicesResponse:
        """List the served devices."""
        return ConfiguredDevicesResponse(
            Value=[
                ConfiguredDevice(
                    DeviceName=device.Name,
                    DeviceType=category.value,
                    DeviceNumber=number,
                    UniqueID=f"conformu-{category.url_segment}-{number}",
                )
                for (category, number), device in registry.items()
            ],
            ClientTransactionID=_transaction_id(request.query_params),
            ServerTransactionID=next_server_transaction(),
        )

    return app


def serve(host: str = "127.0.0.1", port: int = 11111, move_time: float = 0.5) -> None:
    """Serve the default simulated devices until interrupted."""
    app = create_app(default_devices(move_time))
    logger.info("Serving simulated devices on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port)

"""Pydantic models for the Alpaca simulator REST API.

Field names follow the Alpaca wire format, which is PascalCase.
"""

# pylint: disable=invalid-name

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class AlpacaResponse(BaseModel):
    """Fields common to every Alpaca response."""

    ClientTransactionID: int = 0
    ServerTransactionID: int = 0
    ErrorNumber: int = 0
    ErrorMessage: str = ""


class ValueResponse(AlpacaResponse):
    """Response carrying a value (property reads and methods that return one)."""

    Value: Any = None


class ServerDescription(BaseModel):
    """Server description returned by ``/management/v1/description``."""

    ServerName: str
    Manufacturer: str
    ManufacturerVersion: str
    Location: str


class ConfiguredDevice(BaseModel):
    """One entry of ``/management/v1/configureddevices``."""

    DeviceName: str
    DeviceType: str
    DeviceNumber: int
    UniqueID: str


class ApiVersionsResponse(AlpacaResponse):
    Value: list[int]


class DescriptionResponse(AlpacaResponse):
    Value: ServerDescription


class ConfiguredDevicesResponse(AlpacaResponse):
    Value: list[ConfiguredDevice]

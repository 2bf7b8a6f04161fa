"""Tests for the Alpaca simulator server."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conformu.simulator.devices import FilterWheelSimulator, FocuserSimulator, SafetyMonitorSimulator
from conformu.simulator.server import create_app, default_devices, error_number
from conformu.types import DeviceCategory

WHEEL = "/api/v1/filterwheel/0"
FOCUSER = "/api/v1/focuser/0"


@pytest.fixture
def client() -> TestClient:
    devices = {
        (DeviceCategory.FILTER_WHEEL, 0): FilterWheelSimulator(move_time=0.0),
        (DeviceCategory.FOCUSER, 0): FocuserSimulator(speed=1e6),
        (DeviceCategory.SAFETY_MONITOR, 1): SafetyMonitorSimulator(),
    }
    return TestClient(create_app(devices))


def connect(client: TestClient, path: str) -> None:
    response = client.put(f"{path}/connected", data={"Connected": "True"})
    assert response.json()["ErrorNumber"] == 0


class TestErrorNumber:
    """Tests for mapping simulator exceptions to Alpaca error numbers."""

    @pytest.mark.parametrize(
        "exc,number",
        [
            (NotImplementedError("x"), 0x400),
            (ValueError("x"), 0x401),
            (ConnectionError("x"), 0x407),
            (RuntimeError("x"), 0x40B),
            (KeyError("x"), 0x500),
        ],
    )
    def test_mapping(self, exc: Exception, number: int) -> None:
        assert error_number(exc) == number


class TestDeviceApi:
    """Tests for the device endpoints."""

    def test_get_property(self, client: TestClient) -> None:
        response = client.get(f"{WHEEL}/name", params={"ClientID": 1, "ClientTransactionID": 7})

        assert response.status_code == 200
        body = response.json()
        assert body["Value"] == "Simulated filter wheel"
        assert body["ClientTransactionID"] == 7
        assert body["ServerTransactionID"] >= 1
        assert body["ErrorNumber"] == 0

    def test_member_names_are_case_insensitive(self, client: TestClient) -> None:
        assert client.get(f"{WHEEL}/InterfaceVersion").json()["Value"] == 3

    def test_server_transaction_ids_increase(self, client: TestClient) -> None:
        first = client.get(f"{WHEEL}/name").json()["ServerTransactionID"]
        second = client.get(f"{WHEEL}/name").json()["ServerTransactionID"]
        assert second > first

    def test_not_connected(self, client: TestClient) -> None:
        body = client.get(f"{WHEEL}/names").json()
        assert body["ErrorNumber"] == 0x407

    def test_set_property(self, client: TestClient) -> None:
        connect(client, WHEEL)
        response = client.put(
            f"{WHEEL}/position", data={"Position": "2", "ClientTransactionID": "5"}
        )
        assert response.json()["ErrorNumber"] == 0
        assert response.json()["ClientTransactionID"] == 5
        assert client.get(f"{WHEEL}/position").json()["Value"] == 2

    def test_invalid_value(self, client: TestClient) -> None:
        connect(client, WHEEL)
        body = client.put(f"{WHEEL}/position", data={"Position": "8"}).json()
        assert body["ErrorNumber"] == 0x401
        assert "outside" in body["ErrorMessage"]

    def test_missing_parameter(self, client: TestClient) -> None:
        body = client.put(f"{WHEEL}/position", data={}).json()
        assert body["ErrorNumber"] == 0x401

    def test_invoke_method(self, client: TestClient) -> None:
        connect(client, FOCUSER)
        assert client.put(f"{FOCUSER}/move", data={"Position": "30000"}).json()["ErrorNumber"] == 0
        assert client.put(f"{FOCUSER}/halt").json()["ErrorNumber"] == 0

    def test_unknown_action(self, client: TestClient) -> None:
        body = client.put(f"{WHEEL}/action", data={"Action": "spin", "Parameters": ""}).json()
        assert body["ErrorNumber"] == 0x400

    def test_unknown_member(self, client: TestClient) -> None:
        assert client.get(f"{WHEEL}/tracking").json()["ErrorNumber"] == 0x400

    def test_get_on_method_is_bad_request(self, client: TestClient) -> None:
        assert client.get(f"{FOCUSER}/halt").status_code == 400

    def test_non_utf8_body_is_bad_request(self, client: TestClient) -> None:
        response = client.put(
            f"{WHEEL}/position",
            content=b"Position=\xff\xfe",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 400
        assert "UTF-8" in response.json()["detail"]

    def test_unknown_device_is_bad_request(self, client: TestClient) -> None:
        assert client.get("/api/v1/camera/0/name").status_code == 400
        assert client.get("/api/v1/safetymonitor/0/issafe").status_code == 400
        assert client.get("/api/v1/safetymonitor/1/issafe").status_code == 200


class TestManagementApi:
    """Tests for the management endpoints."""

    def test_api_versions(self, client: TestClient) -> None:
        assert client.get("/management/apiversions").json()["Value"] == [1]

    def test_description(self, client: TestClient) -> None:
        value = client.get("/management/v1/description").json()["Value"]
        assert value["ServerName"] == "conformu simulator"

    def test_configured_devices(self, client: TestClient) -> None:
        devices = client.get("/management/v1/configureddevices").json()["Value"]
        assert [(d["DeviceType"], d["DeviceNumber"]) for d in devices] == [
            ("FilterWheel", 0),
            ("Focuser", 0),
            ("SafetyMonitor", 1),
        ]
        assert devices[2]["UniqueID"] == "conformu-safetymonitor-1"


def test_default_devices() -> None:
    devices = default_devices(move_time=0.1)
    assert set(devices) == {
        (DeviceCategory.FILTER_WHEEL, 0),
        (DeviceCategory.FOCUSER, 0),
        (DeviceCategory.SAFETY_MONITOR, 0),
    }

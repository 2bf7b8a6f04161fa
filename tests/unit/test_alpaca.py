"""Tests for the Alpaca transport using httpx.MockTransport."""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from conformu.errors import ErrorKind
from conformu.settings import AlpacaSettings
from conformu.transport.alpaca import (
    AlpacaDriverHandle,
    AlpacaError,
    AlpacaProtocolError,
    format_parameter,
    translate_error,
)
from conformu.types import DeviceCategory


class Recorder:
    """Request handler that records requests and replies with a fixed body."""

    def __init__(self, body: Any = None, status_code: int = 200) -> None:
        self.body = body if body is not None else {"Value": 3, "ErrorNumber": 0, "ErrorMessage": ""}
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=str(self.body))

    def form(self, index: int = -1) -> dict[str, str]:
        content = self.requests[index].content.decode()
        return {k: v[-1] for k, v in parse_qs(content, keep_blank_values=True).items()}


def make_handle(recorder: Recorder, device_number: int = 0) -> AlpacaDriverHandle:
    client = httpx.Client(transport=httpx.MockTransport(recorder), base_url="http://alpaca.test")
    settings = AlpacaSettings(host="alpaca.test", device_number=device_number, client_id=42)
    return AlpacaDriverHandle(settings, DeviceCategory.FILTER_WHEEL, client=client)


class TestFormatParameter:
    """Tests for format_parameter."""

    def test_booleans(self) -> None:
        assert format_parameter(True) == "True"
        assert format_parameter(False) == "False"

    def test_scalars_and_lists(self) -> None:
        assert format_parameter(12) == "12"
        assert format_parameter(1.5) == "1.5"
        assert format_parameter([1, 2, 3]) == "1,2,3"


class TestRequests:
    """Tests for the requests the handle sends."""

    def test_get_property_url_and_query(self) -> None:
        recorder = Recorder()
        handle = make_handle(recorder, device_number=2)

        assert handle.get_property("Position") == 3

        request = recorder.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/v1/filterwheel/2/position"
        assert request.url.params["ClientID"] == "42"
        assert request.url.params["ClientTransactionID"] == "1"

    def test_transaction_ids_increase(self) -> None:
        recorder = Recorder()
        handle = make_handle(recorder)
        handle.get_property("Position")
        handle.get_property("Names")
        handle.set_property("Position", 1)

        ids = [
            int(recorder.requests[0].url.params["ClientTransactionID"]),
            int(recorder.requests[1].url.params["ClientTransactionID"]),
            int(recorder.form(2)["ClientTransactionID"]),
        ]
        assert ids == [1, 2, 3]

    def test_set_property_sends_form(self) -> None:
        recorder = Recorder({"ErrorNumber": 0, "ErrorMessage": ""})
        handle = make_handle(recorder)

        handle.set_property("Connected", True)

        request = recorder.requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/api/v1/filterwheel/0/connected"
        form = recorder.form()
        assert form["Connected"] == "True"
        assert form["ClientID"] == "42"

    def test_invoke_sends_parameters_and_returns_value(self) -> None:
        recorder = Recorder({"Value": "ok", "ErrorNumber": 0, "ErrorMessage": ""})
        handle = make_handle(recorder)

        assert handle.invoke("Action", Action="Lamp", Parameters="") == "ok"
        form = recorder.form()
        assert form["Action"] == "Lamp"
        assert form["Parameters"] == ""

    def test_description_is_endpoint(self) -> None:
        handle = make_handle(Recorder(), device_number=1)
        assert handle.description == "http://alpaca.test/api/v1/filterwheel/1"


class TestResponses:
    """Tests for response decoding."""

    def test_error_number_raises_alpaca_error(self) -> None:
        handle = make_handle(Recorder({"ErrorNumber": 0x401, "ErrorMessage": "bad slot"}))
        with pytest.raises(AlpacaError) as exc_info:
            handle.set_property("Position", 99)
        assert exc_info.value.error_number == 0x401
        assert exc_info.value.error_message == "bad slot"

    def test_missing_value_raises_protocol_error(self) -> None:
        handle = make_handle(Recorder({"ErrorNumber": 0, "ErrorMessage": ""}))
        with pytest.raises(AlpacaProtocolError, match="no Value"):
            handle.get_property("Position")

    def test_http_error_raises_protocol_error(self) -> None:
        handle = make_handle(Recorder("Bad request", status_code=400))
        with pytest.raises(AlpacaProtocolError, match="HTTP 400"):
            handle.get_property("Position")

    def test_non_json_raises_protocol_error(self) -> None:
        handle = make_handle(Recorder("<html>"))
        with pytest.raises(AlpacaProtocolError, match="not JSON"):
            handle.get_property("Position")

    def test_non_object_raises_protocol_error(self) -> None:
        handle = make_handle(Recorder([1, 2]))
        with pytest.raises(AlpacaProtocolError, match="not a JSON object"):
            handle.get_property("Position")

    def test_missing_error_number_raises_protocol_error(self) -> None:
        handle = make_handle(Recorder({"Value": 1}))
        with pytest.raises(AlpacaProtocolError, match="ErrorNumber"):
            handle.get_property("Position")


class TestClose:
    """Tests for client ownership."""

    def test_supplied_client_is_not_closed(self) -> None:
        recorder = Recorder()
        handle = make_handle(recorder)
        handle.close()
        handle.close()
        assert handle.get_property("Position") == 3

    def test_owned_client_is_closed(self) -> None:
        handle = AlpacaDriverHandle(AlpacaSettings(), DeviceCategory.FOCUSER)
        assert handle.description == "http://127.0.0.1:11111/api/v1/focuser/0"
        handle.close()
        with pytest.raises(RuntimeError):
            handle.get_property("Position")


class TestTranslateError:
    """Tests for Alpaca error translation."""

    @pytest.mark.parametrize(
        ("number", "kind"),
        [
            (0x400, ErrorKind.UNSUPPORTED),
            (0x40C, ErrorKind.UNSUPPORTED),
            (0x401, ErrorKind.INVALID_VALUE),
            (0x402, ErrorKind.INVALID_OPERATION),
            (0x407, ErrorKind.NOT_CONNECTED),
            (0x40B, ErrorKind.INVALID_OPERATION),
            (0x500, ErrorKind.DRIVER_ERROR),
            (0x4FF, ErrorKind.DRIVER_ERROR),
        ],
    )
    def test_error_numbers(self, number: int, kind: ErrorKind) -> None:
        error = translate_error("Position", AlpacaError(number, "message"))
        assert error.kind is kind
        assert "message" in error.detail

    def test_timeout(self) -> None:
        error = translate_error("Position", httpx.ReadTimeout("slow"))
        assert error.kind is ErrorKind.TIMEOUT

    def test_connection_and_protocol_errors(self) -> None:
        assert translate_error("Position", httpx.ConnectError("refused")).kind is (
            ErrorKind.TRANSPORT_FAILURE
        )
        assert translate_error("Position", AlpacaProtocolError("junk")).kind is (
            ErrorKind.TRANSPORT_FAILURE
        )

    def test_other_errors(self) -> None:
        assert translate_error("Position", KeyError("x")).kind is ErrorKind.DRIVER_ERROR

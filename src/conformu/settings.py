"""Settings loading for conformance runs.

A settings file names the device under test, the transport used to reach it,
connection parameters for that transport, and per-run options.

Example YAML:
    device:
      category: FilterWheel
      transport: network

    alpaca:
      host: 192.168.1.20
      port: 11111
      device_number: 0

    run:
      case_timeout: 120
      phases: [capabilities, properties, methods, state_transitions]

    filter_wheel:
      move_timeout: 30
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from conformu.errors import SettingsError
from conformu.types import DeviceCategory, Phase, TransportKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceSettings:
    """Device under test.

    Attributes:
        category: Interface contract the driver declares.
        transport: Mechanism used to reach the driver.
    """

    category: DeviceCategory
    transport: TransportKind


@dataclass(frozen=True)
class AlpacaSettings:
    """Connection parameters for the network (Alpaca) transport.

    Attributes:
        host: Host name or IP address of the Alpaca server.
        port: TCP port of the Alpaca server.
        device_number: Zero-based device number on the server.
        client_id: Client identifier sent with every request.
        timeout: HTTP timeout for a single request in seconds.
    """

    host: str = "127.0.0.1"
    port: int = 11111
    device_number: int = 0
    client_id: int = 1
    timeout: float = 10.0

    @property
    def base_url(self) -> str:
        """Return the server base URL (e.g. ``http://127.0.0.1:11111``)."""
        return f"http://{self.host}:{self.port}"


@dataclass(frozen=True)
class LocalSettings:
    """Parameters for the in-process (local interop) transport.

    Attributes:
        driver: Driver factory in ``"module:function"`` format.
        options: Keyword arguments passed to the factory.
    """

    driver: str = ""
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RunOptions:
    """Per-run execution options.

    Attributes:
        case_timeout: Default bound for a single test case in seconds.
        poll_interval: Interval at which cancellation is polled while a case runs.
        disconnect_timeout: Bound for leaving the device disconnected at the end.
        phases: Phases to execute, in execution order.
        results_file: Optional path the caller writes the JSON report to.
    """

    case_timeout: float = 120.0
    poll_interval: float = 0.1
    disconnect_timeout: float = 10.0
    phases: tuple[Phase, ...] = tuple(Phase)
    results_file: Path | None = None


@dataclass(frozen=True)
class FilterWheelOptions:
    """Filter wheel test options.

    Attributes:
        move_timeout: Maximum time a single filter change may take in seconds.
    """

    move_timeout: float = 30.0


@dataclass(frozen=True)
class FocuserOptions:
    """Focuser test options.

    Attributes:
        move_timeout: Maximum time a single focuser move may take in seconds.
        move_fraction: Fraction of MaxIncrement used for the test move.
    """

    move_timeout: float = 60.0
    move_fraction: float = 0.1


@dataclass(frozen=True)
class ConformSettings:
    """Complete settings for one conformance run."""

    device: DeviceSettings
    alpaca: AlpacaSettings = field(default_factory=AlpacaSettings)
    local: LocalSettings = field(default_factory=LocalSettings)
    run: RunOptions = field(default_factory=RunOptions)
    filter_wheel: FilterWheelOptions = field(default_factory=FilterWheelOptions)
    focuser: FocuserOptions = field(default_factory=FocuserOptions)
    source_path: Path | None = None

    def validate(self) -> list[str]:
        """Check the settings for inconsistencies.

        Returns:
            A list of human-readable issues; empty when the settings are usable.
        """
        # Imported here to avoid a cycle: devices and plans depend on settings.
        from conformu.devices.factory import is_supported
        from conformu.plans import has_test_plan

        issues: list[str] = []
        category = self.device.category
        transport = self.device.transport

        if not is_supported(category, transport):
            issues.append(
                f"No device facade is available for {category.value} over {transport.value}"
            )
        if not has_test_plan(category):
            issues.append(f"No test plan is available for {category.value}")

        if transport is TransportKind.NETWORK_PROTOCOL:
            if not self.alpaca.host:
                issues.append("alpaca.host must not be empty")
            if not 0 < self.alpaca.port < 65536:
                issues.append(f"alpaca.port out of range: {self.alpaca.port}")
            if self.alpaca.device_number < 0:
                issues.append("alpaca.device_number must be >= 0")
            if self.alpaca.timeout <= 0:
                issues.append("alpaca.timeout must be > 0")
        else:
            if ":" not in self.local.driver:
                issues.append("local.driver must be in 'module:function' format")

        if self.run.case_timeout <= 0:
            issues.append("run.case_timeout must be > 0")
        if self.run.poll_interval <= 0:
            issues.append("run.poll_interval must be > 0")
        if self.run.disconnect_timeout <= 0:
            issues.append("run.disconnect_timeout must be > 0")
        if not self.run.phases:
            issues.append("run.phases must name at least one phase")

        if self.filter_wheel.move_timeout <= 0:
            issues.append("filter_wheel.move_timeout must be > 0")
        if self.focuser.move_timeout <= 0:
            issues.append("focuser.move_timeout must be > 0")
        if not 0 < self.focuser.move_fraction <= 1:
            issues.append("focuser.move_fraction must be in (0, 1]")

        return issues

    @classmethod
    def from_dict(cls, data: dict[str, Any], source_path: Path | None = None) -> ConformSettings:
        """Parse settings from a dictionary.

        Args:
            data: Raw settings mapping (as loaded from YAML).
            source_path: File the data came from, if any.

        Returns:
            Parsed settings. Call validate() to check consistency.

        Raises:
            SettingsError: If a field is missing or cannot be parsed.
        """
        issues: list[str] = []

        device_data = _section(data, "device", issues)
        category_name = device_data.get("category")
        transport_name = device_data.get("transport", TransportKind.NETWORK_PROTOCOL.value)
        category = None
        transport = None
        if not category_name:
            issues.append("Missing required field: device.category")
        else:
            try:
                category = DeviceCategory.parse(str(category_name))
            except ValueError as exc:
                issues.append(str(exc))
        try:
            transport = TransportKind.parse(str(transport_name))
        except ValueError as exc:
            issues.append(str(exc))

        alpaca_data = _section(data, "alpaca", issues)
        local_data = _section(data, "local", issues)
        run_data = _section(data, "run", issues)
        wheel_data = _section(data, "filter_wheel", issues)
        focuser_data = _section(data, "focuser", issues)

        phases: tuple[Phase, ...] = tuple(Phase)
        if "phases" in run_data:
            try:
                requested = {Phase(str(p).lower()) for p in run_data["phases"]}
                phases = tuple(p for p in Phase if p in requested)
            except (TypeError, ValueError) as exc:
                issues.append(f"Invalid run.phases: {exc}")

        options = local_data.get("options") or {}
        if not isinstance(options, dict):
            issues.append("local.options must be a mapping")
            options = {}

        try:
            alpaca = AlpacaSettings(
                host=str(alpaca_data.get("host", AlpacaSettings.host)),
                port=int(alpaca_data.get("port", AlpacaSettings.port)),
                device_number=int(alpaca_data.get("device_number", AlpacaSettings.device_number)),
                client_id=int(alpaca_data.get("client_id", AlpacaSettings.client_id)),
                timeout=float(alpaca_data.get("timeout", AlpacaSettings.timeout)),
            )
            results_file = run_data.get("results_file")
            run = RunOptions(
                case_timeout=float(run_data.get("case_timeout", RunOptions.case_timeout)),
                poll_interval=float(run_data.get("poll_interval", RunOptions.poll_interval)),
                disconnect_timeout=float(
                    run_data.get("disconnect_timeout", RunOptions.disconnect_timeout)
                ),
                phases=phases,
                results_file=Path(results_file) if results_file else None,
            )
            filter_wheel = FilterWheelOptions(
                move_timeout=float(wheel_data.get("move_timeout", FilterWheelOptions.move_timeout)),
            )
            focuser = FocuserOptions(
                move_timeout=float(focuser_data.get("move_timeout", FocuserOptions.move_timeout)),
                move_fraction=float(
                    focuser_data.get("move_fraction", FocuserOptions.move_fraction)
                ),
            )
        except (TypeError, ValueError) as exc:
            issues.append(f"Invalid value: {exc}")

        if issues or category is None or transport is None:
            raise SettingsError(issues)

        return cls(
            device=DeviceSettings(category=category, transport=transport),
            alpaca=alpaca,
            local=LocalSettings(driver=str(local_data.get("driver", "")), options=dict(options)),
            run=run,
            filter_wheel=filter_wheel,
            focuser=focuser,
            source_path=source_path,
        )


def _section(data: dict[str, Any], name: str, issues: list[str]) -> dict[str, Any]:
    """Return a settings section as a mapping, recording an issue if malformed."""
    section = data.get(name) or {}
    if not isinstance(section, dict):
        issues.append(f"{name} must be a mapping")
        return {}
    return section


def load_settings(path: str | Path) -> ConformSettings:
    """Load and validate settings from a YAML file.

    Args:
        path: Path to the settings YAML file.

    Returns:
        Parsed and validated settings.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
        SettingsError: If the settings are malformed or fail validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise SettingsError(["Settings file must be a YAML mapping"])

    settings = ConformSettings.from_dict(data, source_path=path)
    issues = settings.validate()
    if issues:
        raise SettingsError(issues)

    logger.info(
        "Loaded settings for %s over %s from %s",
        settings.device.category.value,
        settings.device.transport.value,
        path,
    )
    return settings

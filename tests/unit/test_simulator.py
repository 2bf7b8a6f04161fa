"""Tests for the simulated devices."""

from __future__ import annotations

import time

import pytest

from conformu.simulator import (
    FilterWheelSimulator,
    FocuserSimulator,
    SafetyMonitorSimulator,
    create_filter_wheel,
)
from conformu.simulator.devices import DEFAULT_FILTERS


def connected(device):
    device.Connected = True
    return device


def wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "condition not reached"
        time.sleep(0.005)


class TestCommonMembers:
    """Tests for members every simulator shares."""

    def test_identity(self) -> None:
        wheel = FilterWheelSimulator(name="Wheel A")
        assert wheel.Name == "Wheel A"
        assert wheel.InterfaceVersion == 3
        assert wheel.Description == "Simulated FilterWheel"
        assert wheel.SupportedActions == []

    def test_connected_requires_bool(self) -> None:
        with pytest.raises(ValueError):
            FilterWheelSimulator().Connected = 1

    def test_actions_not_implemented(self) -> None:
        monitor = SafetyMonitorSimulator()
        with pytest.raises(NotImplementedError):
            monitor.Action("open")
        with pytest.raises(NotImplementedError):
            monitor.CommandBlind("X")

    def test_dispose_disconnects(self) -> None:
        wheel = connected(FilterWheelSimulator())
        wheel.Dispose()
        assert wheel.Connected is False


class TestFilterWheelSimulator:
    """Tests for FilterWheelSimulator."""

    def test_defaults(self) -> None:
        wheel = connected(create_filter_wheel())
        assert wheel.Names == list(DEFAULT_FILTERS)
        assert wheel.FocusOffsets == [10 * i for i in range(len(DEFAULT_FILTERS))]
        assert wheel.Position == 0

    def test_requires_connection(self) -> None:
        with pytest.raises(ConnectionError):
            FilterWheelSimulator().Names

    def test_move_reads_minus_one_then_target(self) -> None:
        wheel = connected(FilterWheelSimulator(move_time=0.1))
        wheel.Position = 3
        assert wheel.Position == -1
        wait_for(lambda: wheel.Position != -1)
        assert wheel.Position == 3

    def test_move_to_current_slot_is_instant(self) -> None:
        wheel = connected(FilterWheelSimulator(move_time=10.0))
        wheel.Position = 0
        assert wheel.Position == 0

    @pytest.mark.parametrize("value", [-1, 8, True, "2"])
    def test_invalid_position(self, value) -> None:
        wheel = connected(FilterWheelSimulator())
        with pytest.raises(ValueError):
            wheel.Position = value

    def test_mismatched_offsets_rejected(self) -> None:
        with pytest.raises(ValueError, match="same length"):
            FilterWheelSimulator(names=["L", "R"], focus_offsets=[0])


class TestFocuserSimulator:
    """Tests for FocuserSimulator."""

    def test_absolute_move(self) -> None:
        focuser = connected(FocuserSimulator(speed=1000.0, position=100))
        focuser.Move(200)
        assert focuser.IsMoving
        wait_for(lambda: not focuser.IsMoving)
        assert focuser.Position == 200

    def test_absolute_move_out_of_range(self) -> None:
        focuser = connected(FocuserSimulator(max_step=1000, max_increment=1000, position=0))
        with pytest.raises(ValueError):
            focuser.Move(1001)

    def test_halt_stops_motion(self) -> None:
        focuser = connected(FocuserSimulator(speed=100.0, position=0))
        focuser.Move(10000)
        time.sleep(0.02)
        focuser.Halt()
        assert not focuser.IsMoving
        assert 0 < focuser.Position < 10000

    def test_relative_focuser(self) -> None:
        focuser = connected(FocuserSimulator(absolute=False, max_increment=500, speed=1e6))
        with pytest.raises(NotImplementedError):
            focuser.Position
        focuser.Move(-400)
        with pytest.raises(ValueError, match="MaxIncrement"):
            focuser.Move(501)

    def test_temp_comp(self) -> None:
        focuser = FocuserSimulator()
        focuser.TempComp = True
        assert focuser.TempComp is True
        with pytest.raises(NotImplementedError):
            FocuserSimulator(temp_comp_available=False).TempComp = True

    def test_optional_members(self) -> None:
        focuser = connected(FocuserSimulator(step_size=None, temperature=None))
        with pytest.raises(NotImplementedError):
            focuser.StepSize
        with pytest.raises(NotImplementedError):
            focuser.Temperature

    def test_invalid_construction(self) -> None:
        with pytest.raises(ValueError):
            FocuserSimulator(max_step=100, max_increment=200)


class TestSafetyMonitorSimulator:
    """Tests for SafetyMonitorSimulator."""

    def test_unsafe_while_disconnected(self) -> None:
        monitor = SafetyMonitorSimulator(safe=True)
        assert monitor.IsSafe is False
        monitor.Connected = True
        assert monitor.IsSafe is True
        monitor.safe = False
        assert monitor.IsSafe is False

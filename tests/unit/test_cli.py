"""Tests for the command-line interface."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from conformu import cli
from conformu.cli import EXIT_INVALID_SETTINGS, build_parser, main
from conformu.manager import ConformanceManager
from conformu.plans import CheckContext, TestCase, TestPlan
from conformu.types import Phase


@pytest.fixture
def wheel_settings(tmp_path: Path) -> Path:
    """Settings for the local filter wheel simulator."""
    path = tmp_path / "wheel.yaml"
    path.write_text(
        textwrap.dedent(f"""\
        device:
          category: FilterWheel
          transport: local
        local:
          driver: conformu.simulator.devices:create_filter_wheel
          options:
            move_time: 0.02
        run:
          case_timeout: 10
          poll_interval: 0.01
          results_file: {tmp_path / "from-settings.json"}
        filter_wheel:
          move_timeout: 5
        """)
    )
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_run_arguments(self) -> None:
        args = build_parser().parse_args(
            ["run", "s.yaml", "--results", "r.json", "--stream", "r.jsonl", "--debug"]
        )
        assert args.command == "run"
        assert args.settings == Path("s.yaml")
        assert args.results == Path("r.json")
        assert args.stream == Path("r.jsonl")
        assert args.debug is True

    def test_simulate_defaults(self) -> None:
        args = build_parser().parse_args(["simulate"])
        assert args.host == "127.0.0.1"
        assert args.port == 11111
        assert args.move_time == 0.5
        assert args.debug is False


class TestRun:
    """Tests for the run command."""

    def test_passing_run_writes_report(
        self, wheel_settings: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        results = tmp_path / "reports" / "wheel.json"

        code = main(["run", str(wheel_settings), "--results", str(results)])

        assert code == 0
        report = json.loads(results.read_text())
        assert report["verdict"] == "pass"
        assert report["state"] == "completed"
        assert len(report["results"]) == 16
        out = capsys.readouterr().out
        assert "verdict PASS" in out
        assert f"Report written to {results}" in out

    def test_results_file_from_settings(self, wheel_settings: Path, tmp_path: Path) -> None:
        assert main(["run", str(wheel_settings)]) == 0
        assert (tmp_path / "from-settings.json").exists()

    def test_stream(self, wheel_settings: Path, tmp_path: Path) -> None:
        stream = tmp_path / "stream.jsonl"

        assert main(["run", str(wheel_settings), "--stream", str(stream)]) == 0

        lines = stream.read_text().splitlines()
        assert len(lines) == 16
        assert json.loads(lines[0])["case_id"] == "common.interface_version"

    def test_failing_driver_exit_code(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text(
            textwrap.dedent("""\
            device:
              category: SafetyMonitor
              transport: local
            local:
              driver: conformu.missing:create
            run:
              disconnect_timeout: 1
            """)
        )
        assert main(["run", str(path), "--results", str(tmp_path / "r.json")]) == 3

    def test_harness_error_writes_fatal_report(
        self,
        wheel_settings: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        def broken(_ctx: CheckContext) -> None:
            raise KeyError("slot")

        def manager_with_broken_plan(settings, sink, token) -> ConformanceManager:
            plan = TestPlan(
                settings.device.category,
                (TestCase("broken", "Broken check", Phase.PROPERTIES, broken),),
            )
            return ConformanceManager(settings, sink, token, plan=plan)

        monkeypatch.setattr(cli, "ConformanceManager", manager_with_broken_plan)
        results = tmp_path / "fatal.json"

        assert main(["run", str(wheel_settings), "--results", str(results)]) == 3

        report = json.loads(results.read_text())
        assert report["verdict"] == "fatal"
        assert report["results"][-1]["case_id"] == "broken"
        assert "verdict FATAL" in capsys.readouterr().out

    def test_invalid_settings(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("device:\n  category: Camera\n  transport: network\n")

        assert main(["run", str(path)]) == EXIT_INVALID_SETTINGS
        assert "No test plan is available for Camera" in capsys.readouterr().err

    def test_missing_settings_file(self, tmp_path: Path) -> None:
        assert main(["run", str(tmp_path / "missing.yaml")]) == EXIT_INVALID_SETTINGS


def test_no_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 1
    assert "run" in capsys.readouterr().out

"""Tests for result sinks."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from conformu.results import TestResult
from conformu.sinks import FanOutResultSink, JsonLinesResultSink, LoggingResultSink, MemoryResultSink
from conformu.types import Phase, Verdict


def make_result(case_id: str, verdict: Verdict, *details: str) -> TestResult:
    return TestResult(
        case_id=case_id,
        name=case_id,
        phase=Phase.PROPERTIES,
        verdict=verdict,
        message=f"{case_id} {verdict.value}",
        details=details,
    )


class TestLoggingResultSink:
    """Tests for LoggingResultSink."""

    @pytest.mark.parametrize(
        "verdict,level",
        [
            (Verdict.PASS, logging.INFO),
            (Verdict.WARNING, logging.WARNING),
            (Verdict.FAIL, logging.ERROR),
            (Verdict.FATAL, logging.CRITICAL),
        ],
    )
    def test_level_follows_verdict(
        self, caplog: pytest.LogCaptureFixture, verdict: Verdict, level: int
    ) -> None:
        log = logging.getLogger("test.sinks")
        with caplog.at_level(logging.DEBUG, logger="test.sinks"):
            LoggingResultSink(log).record(make_result("a", verdict))

        assert caplog.records[0].levelno == level
        assert "a: a " + verdict.value in caplog.records[0].getMessage()

    def test_details_logged_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="conformu.sinks"):
            LoggingResultSink().record(make_result("a", Verdict.PASS, "slot 0", "slot 1"))

        debug = [r.getMessage().strip() for r in caplog.records if r.levelno == logging.DEBUG]
        assert debug == ["slot 0", "slot 1"]


class TestJsonLinesResultSink:
    """Tests for JsonLinesResultSink."""

    def test_writes_one_line_per_result(self, tmp_path: Path) -> None:
        path = tmp_path / "stream" / "results.jsonl"
        with JsonLinesResultSink(path) as sink:
            sink.record(make_result("a", Verdict.PASS))
            sink.record(make_result("b", Verdict.FAIL))
            # Flushed per record, so readable before close.
            assert len(path.read_text().splitlines()) == 2

        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert [line["case_id"] for line in lines] == ["a", "b"]
        assert lines[1]["verdict"] == "fail"

    def test_record_after_close(self, tmp_path: Path) -> None:
        sink = JsonLinesResultSink(tmp_path / "results.jsonl")
        sink.close()
        sink.close()
        with pytest.raises(ValueError, match="closed"):
            sink.record(make_result("a", Verdict.PASS))


class TestFanOut:
    """Tests for FanOutResultSink."""

    def test_forwards_to_every_sink(self) -> None:
        first, second = MemoryResultSink(), MemoryResultSink()
        sink = FanOutResultSink(first, second)

        sink.record(make_result("a", Verdict.PASS))
        sink.record(make_result("b", Verdict.SKIPPED))

        assert first.case_ids == ["a", "b"]
        assert second.case_ids == ["a", "b"]

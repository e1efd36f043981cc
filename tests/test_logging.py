"""Tests for structlog configuration."""

from __future__ import annotations

import json

import pytest
import structlog

from asr_bench.logging import configure_logging


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_json_lines_carry_service_and_level(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("INFO", json_logs=True)
        structlog.get_logger().info("run_started", run_id="abc")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "run_started"
        assert record["run_id"] == "abc"
        assert record["level"] == "info"
        assert record["service"] == "asr-bench"
        assert "timestamp" in record

    def test_level_filtering(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("WARNING", json_logs=True)
        structlog.get_logger().info("hidden")
        assert "hidden" not in capsys.readouterr().out

    def test_unknown_level_falls_back_to_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("chatty", json_logs=True)
        structlog.get_logger().info("visible")
        assert "visible" in capsys.readouterr().out

    def test_console_renderer(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("INFO", json_logs=False)
        structlog.get_logger().info("plain_event", item_id="a")
        out = capsys.readouterr().out
        assert "plain_event" in out
        assert "item_id" in out

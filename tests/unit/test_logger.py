"""Structured logging setup: JSON / console rendering and run_id propagation."""

import json
import logging

import pytest

from trade_report.observability.logger import (
    get_logger,
    get_run_id,
    new_run_id,
    set_run_id,
    setup_logging,
)

pytestmark = pytest.mark.usefixtures("restore_logging")


def _json_lines(text: str) -> list[dict]:
    return [json.loads(line) for line in text.splitlines() if line.strip()]


class TestRunId:
    def test_generated_on_first_use(self):
        set_run_id("")
        rid = get_run_id()
        assert rid
        assert get_run_id() == rid

    def test_new_run_id_replaces(self):
        set_run_id("fixed")
        rid = new_run_id()
        assert rid != "fixed"
        assert get_run_id() == rid


class TestSetupLogging:
    def test_json_from_stdlib_logger(self, capsys):
        setup_logging("INFO", "json")
        set_run_id("run-123")
        logging.getLogger("trade_report.ingest.parser").info("parsed %d trades", 7)

        (entry,) = _json_lines(capsys.readouterr().err)
        assert entry["event"] == "parsed 7 trades"
        assert entry["run_id"] == "run-123"
        assert entry["level"] == "info"
        assert entry["logger"] == "trade_report.ingest.parser"
        assert "timestamp" in entry

    def test_structlog_key_values(self, capsys):
        setup_logging("DEBUG", "json")
        get_logger("trade_report.test").info("simulated", runs=100)

        (entry,) = _json_lines(capsys.readouterr().err)
        assert entry["event"] == "simulated"
        assert entry["runs"] == 100

    def test_level_filtering(self, capsys):
        setup_logging("WARNING", "json")
        log = logging.getLogger("trade_report.report")
        log.info("hidden")
        log.warning("shown")

        entries = _json_lines(capsys.readouterr().err)
        assert [e["event"] for e in entries] == ["shown"]

    def test_unknown_level_falls_back_to_info(self):
        setup_logging("LOUD", "json")
        assert logging.getLogger().level == logging.INFO

    def test_console_format(self, capsys):
        setup_logging("INFO", "console")
        logging.getLogger("trade_report.cli").info("hello console")
        assert "hello console" in capsys.readouterr().err

    def test_single_root_handler(self):
        setup_logging("INFO", "json")
        setup_logging("INFO", "json")
        assert len(logging.getLogger().handlers) == 1

"""Tests for logging setup."""

import json
import logging

import pytest

from showkeeper.utilities import logging as showkeeper_logging
from showkeeper.utilities.logging import JSONFormatter, setup_logging


@pytest.fixture
def package_logger(monkeypatch):
    """Package logger restored to its previous state after the test."""
    monkeypatch.setattr(showkeeper_logging, "_configured", False)
    logger = logging.getLogger("showkeeper")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate

    yield logger

    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class TestJSONFormatter:
    def test_fields(self):
        record = logging.LogRecord(
            "showkeeper.database", logging.WARNING, __file__, 12, "[RESET] %s", ("x",), None
        )
        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "showkeeper.database"
        assert data["message"] == "[RESET] x"
        assert data["timestamp"].endswith("Z")


class TestSetupLogging:
    def test_writes_log_files(self, package_logger, tmp_path):
        setup_logging(log_level="DEBUG", log_dir=tmp_path, use_json=False)

        logging.getLogger("showkeeper.database.migrations").error("[MIGRATE] boom")
        for handler in package_logger.handlers:
            handler.flush()

        assert "[MIGRATE] boom" in (tmp_path / "showkeeper.log").read_text()
        assert "[MIGRATE] boom" in (tmp_path / "showkeeper_errors.log").read_text()
        assert package_logger.propagate is False

    def test_second_call_is_noop(self, package_logger, tmp_path):
        setup_logging(log_dir=tmp_path / "first")
        setup_logging(log_dir=tmp_path / "second")

        assert (tmp_path / "first").exists()
        assert not (tmp_path / "second").exists()

    def test_environment_selects_json_and_level(self, package_logger, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "nonsense")
        setup_logging(log_dir=tmp_path)

        console = package_logger.handlers[0]
        assert console.level == logging.INFO
        assert all(isinstance(h.formatter, JSONFormatter) for h in package_logger.handlers)

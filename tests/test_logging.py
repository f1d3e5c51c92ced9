"""
Tests for logging setup.
"""

import logging
import sys
from pathlib import Path

import pytest

from appdeploy.core.observability.logging_config import _parse_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    def test_console_goes_to_stderr(self):
        setup_logging(level="INFO")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr
        assert root.level == logging.INFO

    def test_file_handler_with_own_level(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "appdeploy.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("appdeploy.test").debug("to file only")
        for h in root.handlers:
            h.flush()
        assert "to file only" in log_file.read_text(encoding="utf-8")

    def test_noisy_loggers_quieted(self):
        setup_logging(level="INFO")
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestParseLevel:
    def test_names(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level("ERROR") == logging.ERROR

    def test_unknown_defaults_to_warning(self):
        assert _parse_level("LOUD") == logging.WARNING
        assert _parse_level(None) == logging.WARNING


class TestFormats:
    def test_warning_console_shows_level(self):
        setup_logging(level="WARNING")
        handler = logging.getLogger().handlers[0]
        record = logging.LogRecord("appdeploy", logging.ERROR, __file__, 1, "boom", None, None)
        assert handler.format(record) == "ERROR: boom"


class TestUnusableLogFile:
    def test_falls_back_to_console(self, tmp_path: Path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        setup_logging(level="WARNING", log_file=str(blocker / "sub" / "appdeploy.log"))
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

"""
Tests for observability — logging setup and the line-oriented log sink.
"""

import logging
from pathlib import Path

import pytest

from toolwarden.core.observability.logging_config import (
    _parse_level,
    attach_log_sink,
    detach_log_sink,
    resolve_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("toolwarden").setLevel(logging.NOTSET)


class TestParseLevel:
    def test_names(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level("INFO") == logging.INFO

    def test_fallback(self):
        assert _parse_level(None) == logging.WARNING
        assert _parse_level("chatty") == logging.WARNING


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert root.handlers[0].level == logging.INFO

    def test_file_handler_lowers_root(self, tmp_path: Path):
        log_file = tmp_path / "tw.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        logging.getLogger("toolwarden.test").debug("hello file")
        for h in root.handlers:
            h.flush()
        assert "hello file" in log_file.read_text()

    def test_repeat_setup_does_not_duplicate(self):
        setup_logging("INFO")
        setup_logging("DEBUG")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG

    def test_leaves_library_loggers_alone(self):
        other = logging.getLogger("somelib")
        other.setLevel(logging.ERROR)
        try:
            setup_logging("DEBUG")
            assert other.level == logging.ERROR
        finally:
            other.setLevel(logging.NOTSET)


class TestLogSink:
    def test_forwards_lines(self):
        lines: list[str] = []
        handler = attach_log_sink(lines.append)
        try:
            logging.getLogger("toolwarden.core.x").info("installing %s", "gemini")
            logging.getLogger("toolwarden.core.x").debug("hidden")
        finally:
            detach_log_sink(handler)

        assert len(lines) == 1
        assert lines[0].endswith("installing gemini")

    def test_multiline_split(self):
        lines: list[str] = []
        handler = attach_log_sink(lines.append)
        try:
            logging.getLogger("toolwarden").warning("first\nsecond")
        finally:
            detach_log_sink(handler)
        assert lines[-1] == "second"

    def test_other_loggers_ignored(self):
        lines: list[str] = []
        handler = attach_log_sink(lines.append)
        try:
            logging.getLogger("somebody.else").warning("nope")
        finally:
            detach_log_sink(handler)
        assert lines == []

    def test_detach(self):
        lines: list[str] = []
        handler = attach_log_sink(lines.append)
        detach_log_sink(handler)
        logging.getLogger("toolwarden").warning("after")
        assert lines == []


class TestResolveLevel:
    def test_flags_win(self, monkeypatch):
        monkeypatch.setenv("TOOLWARDEN_LOG_LEVEL", "ERROR")
        assert resolve_level(debug=True, quiet=True) == "DEBUG"
        assert resolve_level(verbose=True) == "INFO"
        assert resolve_level(quiet=True) == "ERROR"

    def test_env_then_default(self, monkeypatch):
        monkeypatch.setenv("TOOLWARDEN_LOG_LEVEL", "INFO")
        assert resolve_level() == "INFO"
        monkeypatch.delenv("TOOLWARDEN_LOG_LEVEL")
        assert resolve_level() == "WARNING"

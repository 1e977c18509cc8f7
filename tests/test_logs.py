"""Tests for perch.logs: root handler setup and JSON output."""

import json
import logging
import sys
from collections.abc import Iterator

import pytest

from perch.logs import JSONFormatter, configure_logging


@pytest.fixture
def restore_root() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConfigureLogging:
    def test_text(self, restore_root: None) -> None:
        configure_logging("debug", "text")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_json(self, restore_root: None) -> None:
        configure_logging("warning", "json")
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_unknown_level(self, restore_root: None) -> None:
        with pytest.raises(ValueError, match="log level"):
            configure_logging("chatty")

    def test_unknown_format(self, restore_root: None) -> None:
        with pytest.raises(ValueError, match="log format"):
            configure_logging("info", "xml")


class TestJSONFormatter:
    def test_single_line_object(self) -> None:
        record = logging.LogRecord(
            "perch.access", logging.INFO, __file__, 1, "%s - [%s]", ("ts", "/"), None
        )
        payload = json.loads(JSONFormatter().format(record))
        assert payload["level"] == "info"
        assert payload["logger"] == "perch.access"
        assert payload["message"] == "ts - [/]"
        assert "exc" not in payload

    def test_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "perch.server", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        payload = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in payload["exc"]

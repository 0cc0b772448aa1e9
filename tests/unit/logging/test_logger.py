# tests/unit/logging/test_logger.py — v3
"""Tests for logging/logger.py — setup and formatters."""

from __future__ import annotations

import json
import logging
import sys

from scanflow.logging.context import clear_context, set_document_context
from scanflow.logging.logger import JsonFormatter, TextFormatter, setup_logging


def _record(msg: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="scanflow.test", level=level, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )


class TestJsonFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record("Hello")))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        set_document_context("12345.pdf", "Linearized")
        parsed = json.loads(JsonFormatter().format(_record("verifying")))
        assert parsed["context"] == {"document": "12345.pdf", "stage": "Linearized"}


class TestTextFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert output.startswith("[")
        assert "Hello text" in output
        assert "INFO" in output

    def test_format_with_context(self):
        set_document_context("12345.pdf", "Upload Folder")
        output = TextFormatter().format(_record("uploaded", logging.WARNING))
        assert "[Upload Folder]" in output
        assert "(12345.pdf)" in output
        assert "WARNING" in output

    def test_exception_appended(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record("failed", logging.ERROR)
            record.exc_info = sys.exc_info()
        output = TextFormatter().format(record)
        assert "RuntimeError: boom" in output


class TestSetupLogging:
    def teardown_method(self):
        root = logging.getLogger("scanflow")
        root.propagate = True
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

    def test_setup_json(self):
        setup_logging(level="DEBUG", log_format="json")
        root = logging.getLogger("scanflow")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_setup_text_with_file(self, tmp_path):
        log_file = tmp_path / "scan-log.txt"
        setup_logging(level="INFO", log_format="text", log_file=log_file)
        root = logging.getLogger("scanflow")
        assert root.level == logging.INFO
        assert len(root.handlers) == 2
        assert root.propagate is False

        logging.getLogger("scanflow.stages.intake").info("Folder detected")
        for handler in root.handlers:
            handler.flush()
        assert "Folder detected" in log_file.read_text(encoding="utf-8")

    def test_reinit_does_not_duplicate_handlers(self):
        setup_logging(level="INFO")
        setup_logging(level="INFO")
        assert len(logging.getLogger("scanflow").handlers) == 1
